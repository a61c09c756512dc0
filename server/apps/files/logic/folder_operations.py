"""Business logic for the folder tree."""

import logging

from django.db import IntegrityError, transaction
from django.db.models import ProtectedError, QuerySet

from server.apps.accounts.logic.actor import Actor, require_admin_or_owner
from server.apps.accounts.logic.group_operations import resolve_group
from server.apps.files.logic.visibility import folder_visibility
from server.apps.files.models import Folder
from server.common.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
)
from server.common.identifiers import coerce_id, parse_id
from server.common.unset import UNSET, Unset

logger = logging.getLogger(__name__)


def _clean_folder_name(name: str | None) -> str:
    folder_name = (name or '').strip()
    if not folder_name:
        raise ValidationError('Folder name is required')
    return folder_name


def _parse_parent_id(parent_folder_id: object) -> int | None:
    if parent_folder_id is None or parent_folder_id == '':
        return None
    parent_pk = coerce_id(parent_folder_id)
    if parent_pk is None:
        raise ValidationError('parentFolderId is not a valid identifier')
    return parent_pk


def _ensure_unique_sibling(
    name: str,
    parent_pk: int | None,
    exclude_id: int | None = None,
) -> None:
    siblings = Folder.objects.filter(name=name, parent_folder_id=parent_pk)
    if exclude_id is not None:
        siblings = siblings.exclude(pk=exclude_id)
    if siblings.exists():
        logger.warning(
            'Folder name clash: %s under parent %s',
            name,
            parent_pk,
        )
        raise ConflictError(f'A folder named "{name}" already exists here')


def _load_folder(folder_id: object) -> Folder:
    folder_pk = parse_id(folder_id, 'folderId')
    try:
        return Folder.objects.get(pk=folder_pk)
    except Folder.DoesNotExist as error:
        raise NotFoundError('Folder not found') from error


def create_folder(
    actor: Actor,
    name: str,
    parent_folder_id: object = None,
    assigned_group_id: object = None,
) -> Folder:
    """Create a folder at the root or inside another folder.

    Args:
        actor: Identity performing the operation, recorded as creator.
        name: Folder name; surrounding whitespace is dropped.
        parent_folder_id: Parent folder, None for a root folder.
        assigned_group_id: Group restricting visibility, if any.

    Returns:
        Created Folder.

    Raises:
        ValidationError: If the name is empty or an id is malformed.
        NotFoundError: If the parent folder or the group does not exist.
        ConflictError: If a sibling already uses the name.
    """
    folder_name = _clean_folder_name(name)
    parent_pk = _parse_parent_id(parent_folder_id)
    if parent_pk is not None and not Folder.objects.filter(pk=parent_pk).exists():
        raise NotFoundError('Parent folder not found')
    group = resolve_group(assigned_group_id)
    _ensure_unique_sibling(folder_name, parent_pk)

    try:
        with transaction.atomic():
            folder = Folder.objects.create(
                name=folder_name,
                parent_folder_id=parent_pk,
                created_by_id=actor.user_id,
                assigned_group=group,
            )
    except IntegrityError as error:
        raise ConflictError(
            f'A folder named "{folder_name}" already exists here',
        ) from error

    logger.info('Folder created: %s (ID: %d)', folder.name, folder.pk)
    return folder


def list_folders(
    actor: Actor,
    parent_folder_id: object = None,
) -> QuerySet[Folder]:
    """List the folders the actor may see on one level of the tree.

    Args:
        actor: Identity performing the listing.
        parent_folder_id: Level to list, None for the root.

    Returns:
        Folders ordered by name with creator and group loaded.

    Raises:
        AuthorizationError: If the actor's role may not list.
    """
    parent_pk = _parse_parent_id(parent_folder_id)
    visible = folder_visibility(actor, parent_pk)
    logger.debug('Listing folders under %s for user %d', parent_pk, actor.user_id)
    return Folder.objects.filter(visible).select_related(
        'created_by',
        'assigned_group',
    ).order_by('name')


def get_folder(actor: Actor, folder_id: object) -> Folder:
    """Get one folder the actor may see.

    Raises:
        NotFoundError: If the folder is missing or hidden from the actor.
    """
    folder = _load_folder(folder_id)
    visible = folder_visibility(actor, folder.parent_folder_id)
    try:
        return Folder.objects.filter(visible).select_related(
            'created_by',
            'assigned_group',
        ).get(pk=folder.pk)
    except Folder.DoesNotExist as error:
        raise NotFoundError('Folder not found') from error


def update_folder(
    actor: Actor,
    folder_id: object,
    *,
    name: str | Unset = UNSET,
    assigned_group_id: object = UNSET,
) -> Folder:
    """Rename a folder or change its assigned group.

    Args:
        actor: Identity performing the operation (admin or creator).
        folder_id: Folder to update.
        name: New name, unique among its siblings.
        assigned_group_id: New group id, or None to unassign.

    Returns:
        Updated Folder.

    Raises:
        AuthorizationError: If the actor is neither admin nor creator.
        NotFoundError: If the folder or the group does not exist.
        ConflictError: If a sibling already uses the new name.
    """
    folder = _load_folder(folder_id)
    require_admin_or_owner(actor, folder.created_by_id, 'update this folder')

    if name is not UNSET:
        folder_name = _clean_folder_name(name)
        _ensure_unique_sibling(
            folder_name,
            folder.parent_folder_id,
            exclude_id=folder.pk,
        )
        folder.name = folder_name
    if assigned_group_id is not UNSET:
        folder.assigned_group = resolve_group(assigned_group_id)

    try:
        with transaction.atomic():
            folder.save()
    except IntegrityError as error:
        raise ConflictError(
            f'A folder named "{folder.name}" already exists here',
        ) from error

    logger.info('Folder updated: %s (ID: %d)', folder.name, folder.pk)
    return folder


def delete_folder(actor: Actor, folder_id: object) -> None:
    """Delete an empty folder.

    Deleting a missing folder succeeds.

    Args:
        actor: Identity performing the operation (admin or creator).
        folder_id: Folder to delete.

    Raises:
        AuthorizationError: If the actor is neither admin nor creator.
        ConflictError: If the folder has subfolders or files.
    """
    folder_pk = parse_id(folder_id, 'folderId')
    folder = Folder.objects.filter(pk=folder_pk).first()
    if folder is None:
        logger.info('Folder already absent: ID=%d', folder_pk)
        return
    require_admin_or_owner(actor, folder.created_by_id, 'delete this folder')

    if folder.subfolders.exists() or folder.files.exists():
        logger.warning('Refusing to delete non-empty folder: ID=%d', folder_pk)
        raise ConflictError('Folder is not empty')

    try:
        with transaction.atomic():
            folder.delete()
    except ProtectedError as error:
        raise ConflictError('Folder is not empty') from error

    logger.info('Folder deleted: ID=%d', folder_pk)


def folder_path(folder: Folder) -> list[Folder]:
    """Breadcrumb from the root down to ``folder``.

    Args:
        folder: Folder whose ancestors are loaded.

    Returns:
        Folders from the root to ``folder`` inclusive.
    """
    path = [folder]
    current = folder
    while current.parent_folder_id is not None:
        current = Folder.objects.get(pk=current.parent_folder_id)
        path.append(current)
    path.reverse()
    return path
