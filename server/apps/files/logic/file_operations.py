"""Business logic for file and link operations."""

import logging
from typing import BinaryIO

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.files.base import File as DjangoFile
from django.core.validators import URLValidator
from django.db import transaction
from django.db.models import QuerySet

from server.apps.accounts.logic.actor import Actor, require_admin_or_owner
from server.apps.accounts.logic.group_operations import resolve_group
from server.apps.files.infrastructure.metadata import (
    classify_extension,
    classify_link,
    detect_mime_type,
    parse_tag_names,
    sanitize_filename,
)
from server.apps.files.infrastructure.storage import (
    DeleteOutcome,
    StorageProvider,
    get_storage_provider,
)
from server.apps.files.logic.tag_operations import find_or_create_tags
from server.apps.files.logic.visibility import (
    FileCriteria,
    build_criteria_filter,
    file_visibility,
)
from server.apps.files.models import File, Folder
from server.common.exceptions import (
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)
from server.common.identifiers import parse_id
from server.common.unset import UNSET, Unset

logger = logging.getLogger(__name__)

_validate_url = URLValidator(schemes=['http', 'https'])


def _require_folder(folder_id: object) -> Folder:
    """Validate a target folder id and load the folder.

    Args:
        folder_id: Raw folder id from the client.

    Returns:
        Existing Folder.

    Raises:
        ValidationError: If the id is missing or malformed.
        NotFoundError: If the folder does not exist.
    """
    folder_pk = parse_id(folder_id, 'folderId')
    try:
        return Folder.objects.get(pk=folder_pk)
    except Folder.DoesNotExist as error:
        raise NotFoundError('Folder not found') from error


def _load_file(file_id: object) -> File:
    file_pk = parse_id(file_id, 'fileId')
    try:
        return File.objects.get(pk=file_pk)
    except File.DoesNotExist as error:
        raise NotFoundError('File not found') from error


def _files_with_display_fields() -> QuerySet[File]:
    return File.objects.select_related(
        'uploaded_by',
        'assigned_group',
        'folder',
    ).prefetch_related('tags')


def upload_file(  # noqa: WPS211
    actor: Actor,
    file_obj: BinaryIO | DjangoFile | None,
    *,
    folder_id: object,
    description: str = '',
    tags_csv: str | None = None,
    assigned_group_id: object = None,
    original_name: str | None = None,
    storage: StorageProvider | None = None,
) -> File:
    """Upload a binary to storage and register it in a folder.

    Every input is validated before the storage provider is called.
    The object is stored first and the DB record is written afterwards
    in a transaction; if the DB write fails, the stored object is
    rolled back (best effort).

    Args:
        actor: Identity performing the upload, recorded as uploader.
        file_obj: Binary content.
        folder_id: Target folder (required).
        description: Free text description.
        tags_csv: Comma separated tag names, created when missing.
        assigned_group_id: Group restricting visibility, if any.
        original_name: Client filename, ``file_obj.name`` if None.
        storage: Storage provider, the configured one if None.

    Returns:
        Created File instance.

    Raises:
        ValidationError: If the file or folder id is missing.
        NotFoundError: If the folder or the group does not exist.
        ExternalServiceError: If the storage provider fails.
    """
    if folder_id is None or folder_id == '':
        raise ValidationError('folderId is required')
    if file_obj is None:
        raise ValidationError('No file was provided')
    folder = _require_folder(folder_id)
    group = resolve_group(assigned_group_id)

    raw_name = original_name or getattr(file_obj, 'name', None) or ''
    filename = sanitize_filename(raw_name.rsplit('/', 1)[-1])
    file_type = classify_extension(raw_name)
    mime_type = detect_mime_type(
        filename,
        getattr(file_obj, 'content_type', None),
    )
    tag_names = parse_tag_names(tags_csv)

    provider = storage or get_storage_provider()

    # Step 1: Upload to storage first
    stored = provider.store(file_obj, filename, mime_type)
    logger.info('File stored: %s -> %s', filename, stored.object_id)

    # Step 2: Create database record (in transaction)
    try:
        with transaction.atomic():
            file_instance = File.objects.create(
                filename=filename,
                description=(description or '').strip(),
                file_type=file_type,
                storage_object_id=stored.object_id,
                url=stored.url,
                mime_type=mime_type,
                size_bytes=stored.size_bytes,
                folder=folder,
                uploaded_by_id=actor.user_id,
                assigned_group=group,
            )
            file_instance.tags.set(
                find_or_create_tags(tag_names, actor.user_id),
            )
    except Exception:
        # Rollback: Delete file from storage since DB transaction failed
        logger.exception(
            'Database transaction failed, rolling back storage upload: %s',
            stored.object_id,
        )
        provider.rollback(stored.object_id)
        raise

    logger.info(
        'File record created in database: %s (ID: %d)',
        file_instance.filename,
        file_instance.pk,
    )
    return file_instance


def add_link(  # noqa: WPS211
    actor: Actor,
    *,
    url: str,
    title: str,
    folder_id: object,
    description: str = '',
    tags_csv: str | None = None,
    assigned_group_id: object = None,
) -> File:
    """Register an external link (YouTube video or generic URL).

    Args:
        actor: Identity performing the operation, recorded as uploader.
        url: Absolute http(s) URL.
        title: Display name stored as the filename.
        folder_id: Target folder (required).
        description: Free text description.
        tags_csv: Comma separated tag names, created when missing.
        assigned_group_id: Group restricting visibility, if any.

    Returns:
        Created File instance with a link type.

    Raises:
        ValidationError: If a required field is missing or the URL is
            malformed.
        NotFoundError: If the folder or the group does not exist.
    """
    link_url = (url or '').strip()
    link_title = (title or '').strip()
    if not link_url or not link_title or folder_id is None or folder_id == '':
        raise ValidationError('url, title and folderId are required')
    try:
        _validate_url(link_url)
    except DjangoValidationError as error:
        raise ValidationError('Invalid URL') from error

    folder = _require_folder(folder_id)
    group = resolve_group(assigned_group_id)
    tag_names = parse_tag_names(tags_csv)

    with transaction.atomic():
        link = File.objects.create(
            filename=link_title,
            description=(description or '').strip(),
            file_type=classify_link(link_url),
            storage_object_id=None,
            url=link_url,
            size_bytes=0,
            folder=folder,
            uploaded_by_id=actor.user_id,
            assigned_group=group,
        )
        link.tags.set(find_or_create_tags(tag_names, actor.user_id))

    logger.info('Link registered: %s (ID: %d)', link.url, link.pk)
    return link


def list_files(
    actor: Actor,
    folder_id: object,
    criteria: FileCriteria | None = None,
) -> QuerySet[File]:
    """List the files of a folder visible to the actor.

    Args:
        actor: Identity performing the listing.
        folder_id: Folder to list (required).
        criteria: Optional client narrowing and ordering.

    Returns:
        Files with uploader, tags and group loaded.

    Raises:
        ValidationError: If the folder id is missing or malformed.
        AuthorizationError: If the actor's role may not list.
    """
    folder_pk = parse_id(folder_id, 'folderId')
    criteria = criteria or FileCriteria()

    visible = file_visibility(actor, folder_pk)
    logger.debug('Listing files in folder %d for user %d', folder_pk, actor.user_id)
    return _files_with_display_fields().filter(visible).filter(
        build_criteria_filter(criteria),
    ).order_by(*criteria.ordering())


def get_file(actor: Actor, file_id: object) -> File:
    """Get one file the actor may see.

    Raises:
        NotFoundError: If the file is missing or hidden from the actor.
    """
    file_instance = _load_file(file_id)
    visible = file_visibility(actor, file_instance.folder_id)
    try:
        return _files_with_display_fields().filter(visible).get(
            pk=file_instance.pk,
        )
    except File.DoesNotExist as error:
        raise NotFoundError('File not found') from error


def update_file(  # noqa: WPS211
    actor: Actor,
    file_id: object,
    *,
    filename: str | Unset = UNSET,
    description: str | Unset = UNSET,
    tags_csv: str | Unset = UNSET,
    folder_id: object = UNSET,
    assigned_group_id: object = UNSET,
) -> File:
    """Change a file's metadata.

    Omitted fields are left untouched; ``tags_csv=''`` clears the tags.
    All provided fields are validated before anything is saved.

    Args:
        actor: Identity performing the operation (admin or uploader).
        file_id: File to update.
        filename: New display name.
        description: New description (may be empty).
        tags_csv: Complete comma separated list of tag names.
        folder_id: Folder to move the entry to.
        assigned_group_id: New group id, or None to unassign.

    Returns:
        Updated File with display fields loaded.

    Raises:
        AuthorizationError: If the actor is neither admin nor uploader.
        ValidationError: If a provided value is malformed.
        NotFoundError: If the file, folder or group does not exist.
    """
    file_instance = _load_file(file_id)
    require_admin_or_owner(
        actor,
        file_instance.uploaded_by_id,
        'modify this file',
    )

    if filename is not UNSET:
        new_name = (filename or '').strip()
        if not new_name:
            raise ValidationError('Filename cannot be empty')
        file_instance.filename = new_name
    if description is not UNSET:
        file_instance.description = (description or '').strip()
    if folder_id is not UNSET:
        file_instance.folder = _require_folder(folder_id)
    if assigned_group_id is not UNSET:
        file_instance.assigned_group = resolve_group(assigned_group_id)

    with transaction.atomic():
        file_instance.save()
        if tags_csv is not UNSET:
            file_instance.tags.set(
                find_or_create_tags(parse_tag_names(tags_csv), actor.user_id),
            )

    logger.info(
        'File updated: %s (ID: %d)',
        file_instance.filename,
        file_instance.pk,
    )
    return _files_with_display_fields().get(pk=file_instance.pk)


def delete_file(
    actor: Actor,
    file_id: object,
    *,
    storage: StorageProvider | None = None,
) -> None:
    """Delete a file record and, for binaries, its stored object.

    Deleting a missing file succeeds. The DB record is deleted first;
    storage deletion is best effort and its failures are only logged,
    leaving an orphaned object for manual reconciliation.

    Args:
        actor: Identity performing the operation (admin or uploader).
        file_id: File to delete.
        storage: Storage provider, the configured one if None.

    Raises:
        AuthorizationError: If the actor is neither admin nor uploader.
    """
    file_pk = parse_id(file_id, 'fileId')
    file_instance = File.objects.filter(pk=file_pk).first()
    if file_instance is None:
        logger.info('File already absent: ID=%d', file_pk)
        return
    require_admin_or_owner(
        actor,
        file_instance.uploaded_by_id,
        'delete this file',
    )

    object_id = file_instance.storage_object_id
    with transaction.atomic():
        file_instance.delete()
    logger.info('File record deleted from database: ID=%d', file_pk)

    if file_instance.is_link or not object_id:
        return

    provider = storage or get_storage_provider()
    try:
        outcome = provider.delete(object_id)
    except ExternalServiceError:
        logger.exception(
            'Failed to delete stored object (orphaned): %s',
            object_id,
        )
        return
    if outcome is DeleteOutcome.not_found:
        logger.warning('Stored object already gone: %s', object_id)
