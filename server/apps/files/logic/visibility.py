"""Role based visibility and listing criteria for folders and files.

Every function here is pure: it takes resolved identity data and client
parameters and returns Django ``Q`` objects or orderings for the caller
to apply. Criteria are always ANDed with the permission filter.
"""

import datetime as dt
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Final, Self

from django.db.models import Q
from django.utils.dateparse import parse_date, parse_datetime

from server.apps.accounts.logic.actor import Actor
from server.apps.accounts.models import Role
from server.apps.files.models import File, FileType
from server.common.exceptions import AuthorizationError
from server.common.identifiers import parse_id_list

logger = logging.getLogger(__name__)

TAG_MATCH_ALL: Final = 'all'
TAG_MATCH_ANY: Final = 'any'

_DEFAULT_SORT: Final = 'created_at'
_DEFAULT_DIRECTION: Final = 'desc'

# Client sort names mapped to model fields
_SORT_FIELDS: Final = {
    'created_at': 'created_at',
    'createdAt': 'created_at',
    'modified_at': 'modified_at',
    'modifiedAt': 'modified_at',
    'filename': 'filename',
    'size': 'size_bytes',
    'size_bytes': 'size_bytes',
    'sizeBytes': 'size_bytes',
    'file_type': 'file_type',
    'fileType': 'file_type',
}
_DIRECTIONS: Final = frozenset(('asc', 'desc'))


def build_visibility_filter(
    actor: Actor,
    base_scope: Q,
    *,
    owner_field: str,
) -> Q:
    """Combine a listing scope with the actor's role permissions.

    Args:
        actor: Identity performing the listing.
        base_scope: Structural filter (e.g. one folder level).
        owner_field: Model field holding the creator/uploader.

    Returns:
        ``base_scope`` for admins, otherwise ``base_scope`` ANDed with the
        role's permission clause.

    Raises:
        AuthorizationError: If the role may not list anything.
    """
    role = actor.canonical_role
    if role == Role.ADMIN:
        return base_scope

    in_my_groups = Q(assigned_group__in=sorted(actor.group_ids))
    if role == Role.RESIDENT:
        return base_scope & (Q(assigned_group__isnull=True) | in_my_groups)
    if role == Role.TEACHER:
        return base_scope & (Q(**{owner_field: actor.user_id}) | in_my_groups)

    logger.warning(
        'Listing refused for user %d with role %s',
        actor.user_id,
        actor.role,
    )
    raise AuthorizationError('Role not permitted to list')


def folder_visibility(actor: Actor, parent_folder_id: int | None) -> Q:
    """Visible folders directly below ``parent_folder_id`` (root if None)."""
    if parent_folder_id is None:
        scope = Q(parent_folder__isnull=True)
    else:
        scope = Q(parent_folder_id=parent_folder_id)
    return build_visibility_filter(actor, scope, owner_field='created_by')


def file_visibility(actor: Actor, folder_id: int) -> Q:
    """Visible files inside ``folder_id``."""
    return build_visibility_filter(
        actor,
        Q(folder_id=folder_id),
        owner_field='uploaded_by',
    )


def _parse_day(raw_value: object) -> dt.date | None:
    if isinstance(raw_value, dt.datetime):
        moment = raw_value
    elif isinstance(raw_value, dt.date):
        return raw_value
    elif isinstance(raw_value, str) and raw_value.strip():
        text = raw_value.strip()
        try:
            moment = parse_datetime(text)
            if moment is None:
                return parse_date(text)
        except ValueError:
            return None
    else:
        return None
    if moment.tzinfo is not None:
        moment = moment.astimezone(dt.UTC)
    return moment.date()


@dataclass(frozen=True, slots=True)
class FileCriteria:
    """Optional narrowing of a file listing chosen by the client."""

    file_type: str | None = None
    tag_ids: tuple[int, ...] = field(default_factory=tuple)
    tag_match: str = TAG_MATCH_ALL
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    search: str | None = None
    sort: str = _DEFAULT_SORT
    direction: str = _DEFAULT_DIRECTION

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> Self:
        """Build criteria from raw query parameters.

        Unknown file types, sort fields and directions are ignored with a
        warning; malformed tag ids and dates are dropped.

        Args:
            params: Mapping with any of ``fileType``, ``tags`` (csv of
                ids), ``tagMatch``, ``startDate``, ``endDate``,
                ``search``, ``sortBy`` and ``sortOrder``.

        Returns:
            Normalized criteria.
        """
        file_type = params.get('fileType') or None
        if file_type is not None and file_type not in FileType.values:
            logger.warning('Ignoring unknown file type filter: %s', file_type)
            file_type = None

        raw_tags = params.get('tags') or ''
        tag_ids = tuple(parse_id_list(raw_tags))

        tag_match = str(params.get('tagMatch') or TAG_MATCH_ALL).lower()
        if tag_match not in {TAG_MATCH_ALL, TAG_MATCH_ANY}:
            logger.warning('Ignoring unknown tag match mode: %s', tag_match)
            tag_match = TAG_MATCH_ALL

        sort = _DEFAULT_SORT
        raw_sort = params.get('sortBy')
        if raw_sort:
            if raw_sort in _SORT_FIELDS:
                sort = _SORT_FIELDS[raw_sort]
            else:
                logger.warning('Ignoring unknown sort field: %s', raw_sort)

        direction = _DEFAULT_DIRECTION
        raw_direction = params.get('sortOrder')
        if raw_direction:
            if str(raw_direction).lower() in _DIRECTIONS:
                direction = str(raw_direction).lower()
            else:
                logger.warning('Ignoring unknown sort order: %s', raw_direction)

        search = str(params.get('search') or '').strip() or None

        return cls(
            file_type=file_type,
            tag_ids=tag_ids,
            tag_match=tag_match,
            start_date=_parse_day(params.get('startDate')),
            end_date=_parse_day(params.get('endDate')),
            search=search,
            sort=sort,
            direction=direction,
        )

    def ordering(self) -> tuple[str, ...]:
        """Order-by expression, newest first unless the client chose."""
        prefix = '-' if self.direction == 'desc' else ''
        return (f'{prefix}{self.sort}', f'{prefix}pk')


def _tag_filter(tag_ids: tuple[int, ...], tag_match: str) -> Q:
    tagged = File.tags.through.objects
    if tag_match == TAG_MATCH_ANY:
        return Q(pk__in=tagged.filter(tag_id__in=tag_ids).values('file_id'))
    condition = Q()
    for tag_id in tag_ids:
        condition &= Q(pk__in=tagged.filter(tag_id=tag_id).values('file_id'))
    return condition


def build_criteria_filter(criteria: FileCriteria) -> Q:
    """Translate listing criteria into a filter.

    Args:
        criteria: Parsed client criteria.

    Returns:
        Filter matching every criterion (empty Q when none is set).
    """
    condition = Q()
    if criteria.file_type:
        condition &= Q(file_type=criteria.file_type)
    if criteria.tag_ids:
        condition &= _tag_filter(criteria.tag_ids, criteria.tag_match)
    if criteria.start_date:
        condition &= Q(created_at__gte=dt.datetime.combine(
            criteria.start_date,
            dt.time.min,
            tzinfo=dt.UTC,
        ))
    if criteria.end_date:
        condition &= Q(created_at__lte=dt.datetime.combine(
            criteria.end_date,
            dt.time(23, 59, 59, 999000),
            tzinfo=dt.UTC,
        ))
    if criteria.search:
        condition &= (
            Q(filename__icontains=criteria.search)
            | Q(description__icontains=criteria.search)
        )
    logger.debug('File criteria filter: %s', condition)
    return condition
