"""Business logic for groups and their membership ledger.

A membership is a single ``Membership`` row, so a user's groups and a
group's members are two views of the same relation. This module is the
only writer of that relation: every change goes through ``_attach`` and
``_detach``, which are single atomic statements at the database level.
"""

import logging
from collections.abc import Iterable

from django.db import IntegrityError, transaction
from django.db.models import Count, ProtectedError, QuerySet

from server.apps.accounts.logic.actor import Actor, require_admin
from server.apps.accounts.models import Group, Membership, User
from server.apps.files.models import File, Folder
from server.common.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
)
from server.common.identifiers import coerce_id, parse_id
from server.common.unset import UNSET, Unset

logger = logging.getLogger(__name__)


def _groups_with_member_count() -> QuerySet[Group]:
    return Group.objects.select_related('created_by').annotate(
        member_count=Count('memberships'),
    )


def _clean_group_name(name: str | None) -> str:
    group_name = (name or '').strip()
    if not group_name:
        raise ValidationError('Group name is required')
    return group_name


def _ensure_name_available(name: str, exclude_id: int | None = None) -> None:
    duplicates = Group.objects.filter(name=name)
    if exclude_id is not None:
        duplicates = duplicates.exclude(pk=exclude_id)
    if duplicates.exists():
        raise ConflictError(f'Group "{name}" already exists')


def _load_group(group_id: object) -> Group:
    group_pk = parse_id(group_id, 'groupId')
    try:
        return Group.objects.get(pk=group_pk)
    except Group.DoesNotExist as error:
        raise NotFoundError('Group not found') from error


def _load_user(user_id: object) -> User:
    user_pk = parse_id(user_id, 'userId')
    try:
        return User.objects.get(pk=user_pk)
    except User.DoesNotExist as error:
        raise NotFoundError('User not found') from error


def _attach(group_id: int, user_id: int) -> bool:
    """Add one membership row; safe under concurrent identical calls."""
    _, created = Membership.objects.get_or_create(
        group_id=group_id,
        user_id=user_id,
    )
    return created


def _detach(group_id: int, user_id: int) -> bool:
    """Remove one membership row with a single DELETE statement."""
    deleted, _ = Membership.objects.filter(
        group_id=group_id,
        user_id=user_id,
    ).delete()
    return deleted > 0


def resolve_group(group_id: object) -> Group | None:
    """Validate an ``assignedGroupId`` input.

    Args:
        group_id: Raw group id, or None/empty for "no group".

    Returns:
        Existing Group, or None when no group was requested.

    Raises:
        ValidationError: If the id is malformed.
        NotFoundError: If no such group exists.
    """
    if group_id is None or group_id == '':
        return None
    group_pk = coerce_id(group_id)
    if group_pk is None:
        raise ValidationError('assignedGroupId is not a valid identifier')
    try:
        return Group.objects.get(pk=group_pk)
    except Group.DoesNotExist as error:
        raise NotFoundError('Assigned group does not exist') from error


def create_group(actor: Actor, name: str, description: str = '') -> Group:
    """Create a new, empty group.

    Args:
        actor: Identity performing the operation (must be admin).
        name: Unique group name; surrounding whitespace is dropped.
        description: Optional free text.

    Returns:
        Created Group.

    Raises:
        AuthorizationError: If the actor is not an admin.
        ValidationError: If the name is empty.
        ConflictError: If a group with that name exists.
    """
    require_admin(actor, 'create groups')
    group_name = _clean_group_name(name)
    _ensure_name_available(group_name)

    try:
        with transaction.atomic():
            group = Group.objects.create(
                name=group_name,
                description=(description or '').strip(),
                created_by_id=actor.user_id,
            )
    except IntegrityError as error:
        raise ConflictError(f'Group "{group_name}" already exists') from error

    logger.info('Group created: %s (ID: %d)', group.name, group.pk)
    return group


def list_groups(actor: Actor) -> QuerySet[Group]:
    """List all groups with their member counts.

    Args:
        actor: Identity performing the operation (must be admin).

    Returns:
        Groups ordered by name, annotated with ``member_count``.
    """
    require_admin(actor, 'list groups')
    return _groups_with_member_count().order_by('name')


def get_group(actor: Actor, group_id: object) -> Group:
    """Get one group with its member count."""
    require_admin(actor, 'view groups')
    group_pk = parse_id(group_id, 'groupId')
    try:
        return _groups_with_member_count().get(pk=group_pk)
    except Group.DoesNotExist as error:
        raise NotFoundError('Group not found') from error


def add_member(actor: Actor, group_id: object, user_id: object) -> Group:
    """Add a user to a group.

    Adding an existing member is a no-op.

    Args:
        actor: Identity performing the operation (must be admin).
        group_id: Target group id.
        user_id: User to add.

    Returns:
        Group annotated with the updated ``member_count``.

    Raises:
        NotFoundError: If the group or the user does not exist.
    """
    require_admin(actor, 'manage group members')
    group = _load_group(group_id)
    user = _load_user(user_id)

    if _attach(group.pk, user.pk):
        logger.info('User %d added to group %d', user.pk, group.pk)
    else:
        logger.debug('User %d already in group %d', user.pk, group.pk)

    return _groups_with_member_count().get(pk=group.pk)


def remove_member(actor: Actor, group_id: object, user_id: object) -> Group:
    """Remove a user from a group.

    Removing a non-member is a no-op.

    Args:
        actor: Identity performing the operation (must be admin).
        group_id: Target group id.
        user_id: User to remove.

    Returns:
        Group annotated with the updated ``member_count``.

    Raises:
        NotFoundError: If the group does not exist.
    """
    require_admin(actor, 'manage group members')
    group = _load_group(group_id)
    user_pk = parse_id(user_id, 'userId')

    if _detach(group.pk, user_pk):
        logger.info('User %d removed from group %d', user_pk, group.pk)

    return _groups_with_member_count().get(pk=group.pk)


def update_group(
    actor: Actor,
    group_id: object,
    *,
    name: str | Unset = UNSET,
    description: str | Unset = UNSET,
) -> Group:
    """Rename a group or change its description.

    Raises:
        ConflictError: If another group already uses the new name.
    """
    require_admin(actor, 'update groups')
    group = _load_group(group_id)

    if name is not UNSET:
        group_name = _clean_group_name(name)
        _ensure_name_available(group_name, exclude_id=group.pk)
        group.name = group_name
    if description is not UNSET:
        group.description = (description or '').strip()

    try:
        with transaction.atomic():
            group.save()
    except IntegrityError as error:
        raise ConflictError(f'Group "{group.name}" already exists') from error

    logger.info('Group updated: %s (ID: %d)', group.name, group.pk)
    return _groups_with_member_count().get(pk=group.pk)


def delete_group(actor: Actor, group_id: object) -> None:
    """Delete an empty group, unassigning it from folders and files.

    Deleting a missing group succeeds. The group row is locked while the
    unassignment runs, and memberships protect the group from deletion,
    so a member added concurrently makes the delete fail with
    ConflictError and nothing is changed.

    Args:
        actor: Identity performing the operation (must be admin).
        group_id: Group to delete.

    Raises:
        ConflictError: If the group still has members.
    """
    require_admin(actor, 'delete groups')
    group_pk = parse_id(group_id, 'groupId')

    try:
        with transaction.atomic():
            group = Group.objects.select_for_update().filter(
                pk=group_pk,
            ).first()
            if group is None:
                logger.info('Group already absent: ID=%d', group_pk)
                return

            if group.memberships.exists():
                logger.warning(
                    'Refusing to delete non-empty group: ID=%d',
                    group_pk,
                )
                raise ConflictError(
                    'Group still has members; remove them first',
                )

            folders = Folder.objects.filter(
                assigned_group=group,
            ).update(assigned_group=None)
            files = File.objects.filter(
                assigned_group=group,
            ).update(assigned_group=None)
            group.delete()
    except ProtectedError as error:
        raise ConflictError(
            'Group gained members while being deleted',
        ) from error

    logger.info(
        'Group deleted: ID=%d (unassigned %d folders, %d files)',
        group_pk,
        folders,
        files,
    )


def set_memberships(user: User, group_ids: Iterable[int]) -> None:
    """Make the user's memberships match ``group_ids`` exactly.

    Callers validate that every id refers to an existing group.

    Args:
        user: User whose memberships change.
        group_ids: Complete set of groups the user should belong to.
    """
    requested = set(group_ids)
    current = set(
        Membership.objects.filter(user=user).values_list(
            'group_id',
            flat=True,
        ),
    )

    with transaction.atomic():
        for group_pk in sorted(requested - current):
            _attach(group_pk, user.pk)
        for group_pk in sorted(current - requested):
            _detach(group_pk, user.pk)

    logger.info(
        'Memberships synced for user %d: +%d -%d',
        user.pk,
        len(requested - current),
        len(current - requested),
    )
