"""Business logic for tags."""

import logging
from collections.abc import Iterable

from django.db import IntegrityError, transaction
from django.db.models import Count, QuerySet

from server.apps.accounts.logic.actor import Actor, require_admin_or_owner
from server.apps.files.models import Tag
from server.common.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
)
from server.common.identifiers import parse_id

logger = logging.getLogger(__name__)


def _clean_tag_name(name: str | None) -> str:
    tag_name = (name or '').strip().lower()
    if not tag_name:
        raise ValidationError('Tag name is required')
    return tag_name


def find_or_create_tags(
    names: Iterable[str],
    created_by_id: int | None,
) -> list[Tag]:
    """Resolve normalized tag names, creating the missing ones.

    Each name is an atomic upsert on the unique ``name`` column, so
    concurrent calls with the same name end up with a single tag.

    Args:
        names: Lowercase, trimmed tag names.
        created_by_id: User recorded as creator of new tags.

    Returns:
        Tags in the order of ``names``.
    """
    tags = []
    for tag_name in names:
        tag, created = Tag.objects.get_or_create(
            name=tag_name,
            defaults={'created_by_id': created_by_id},
        )
        if created:
            logger.info('Tag created: %s (ID: %d)', tag.name, tag.pk)
        tags.append(tag)
    return tags


def create_tag(actor: Actor, name: str) -> Tag:
    """Create a tag explicitly.

    Args:
        actor: Identity performing the operation, recorded as creator.
        name: Tag name; stored trimmed and lowercase.

    Returns:
        Created Tag.

    Raises:
        ValidationError: If the name is empty.
        ConflictError: If the tag already exists.
    """
    tag_name = _clean_tag_name(name)
    if Tag.objects.filter(name=tag_name).exists():
        raise ConflictError(f'Tag "{tag_name}" already exists')

    try:
        with transaction.atomic():
            tag = Tag.objects.create(name=tag_name, created_by_id=actor.user_id)
    except IntegrityError as error:
        raise ConflictError(f'Tag "{tag_name}" already exists') from error

    logger.info('Tag created: %s (ID: %d)', tag.name, tag.pk)
    return tag


def list_tags() -> QuerySet[Tag]:
    """All tags by name, annotated with ``file_count``."""
    return Tag.objects.select_related('created_by').annotate(
        file_count=Count('files'),
    ).order_by('name')


def update_tag(actor: Actor, tag_id: object, name: str) -> Tag:
    """Rename a tag.

    Raises:
        AuthorizationError: If the actor is neither admin nor creator.
        NotFoundError: If the tag does not exist.
        ConflictError: If another tag already uses the name.
    """
    tag_pk = parse_id(tag_id, 'tagId')
    tag_name = _clean_tag_name(name)
    try:
        tag = Tag.objects.get(pk=tag_pk)
    except Tag.DoesNotExist as error:
        raise NotFoundError('Tag not found') from error
    require_admin_or_owner(actor, tag.created_by_id, 'modify this tag')

    if Tag.objects.filter(name=tag_name).exclude(pk=tag.pk).exists():
        raise ConflictError(f'Tag "{tag_name}" already exists')

    tag.name = tag_name
    try:
        with transaction.atomic():
            tag.save(update_fields=['name'])
    except IntegrityError as error:
        raise ConflictError(f'Tag "{tag_name}" already exists') from error

    logger.info('Tag renamed: %s (ID: %d)', tag.name, tag.pk)
    return tag


def delete_tag(actor: Actor, tag_id: object) -> None:
    """Detach a tag from every file and delete it.

    Deleting a missing tag succeeds.

    Raises:
        AuthorizationError: If the actor is neither admin nor creator.
    """
    tag_pk = parse_id(tag_id, 'tagId')
    tag = Tag.objects.filter(pk=tag_pk).first()
    if tag is None:
        logger.info('Tag already absent: ID=%d', tag_pk)
        return
    require_admin_or_owner(actor, tag.created_by_id, 'delete this tag')

    with transaction.atomic():
        detached = Tag.files.through.objects.filter(tag_id=tag.pk).delete()[0]
        tag.delete()

    logger.info('Tag deleted: ID=%d (detached from %d files)', tag_pk, detached)
