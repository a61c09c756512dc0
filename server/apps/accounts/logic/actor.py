"""Resolved identity on whose behalf an operation runs."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Self

from server.apps.accounts.models import Membership, Role
from server.common.exceptions import AuthorizationError

if TYPE_CHECKING:
    from server.apps.accounts.models import User


@dataclass(frozen=True, slots=True)
class Actor:
    """Authenticated identity: user id, role and group memberships.

    Operations consume only this resolved data and never look at the
    credential that produced it.
    """

    user_id: int
    role: str
    group_ids: frozenset[int] = field(default_factory=frozenset)

    @classmethod
    def for_user(cls, user: 'User') -> Self:
        """Build the actor for a stored user.

        Args:
            user: User whose role and memberships are loaded.

        Returns:
            Actor snapshot of the user.
        """
        group_ids = Membership.objects.filter(
            user_id=user.pk,
        ).values_list('group_id', flat=True)
        return cls(
            user_id=user.pk,
            role=user.role,
            group_ids=frozenset(group_ids),
        )

    @property
    def canonical_role(self) -> Role | None:
        """Role member for the stored name, None when it is unknown."""
        try:
            return Role.parse(self.role)
        except ValueError:
            return None

    @property
    def is_admin(self) -> bool:
        """Whether the actor holds the admin role."""
        return self.canonical_role == Role.ADMIN

    def owns(self, owner_id: int | None) -> bool:
        """Whether the actor is the recorded owner of a record."""
        return owner_id is not None and owner_id == self.user_id


def require_admin(actor: Actor, action: str) -> None:
    """Reject actors without the admin role.

    Args:
        actor: Identity performing the operation.
        action: Description of the attempted action, for the message.

    Raises:
        AuthorizationError: If the actor is not an admin.
    """
    if not actor.is_admin:
        raise AuthorizationError(f'Only administrators may {action}')


def require_admin_or_owner(
    actor: Actor,
    owner_id: int | None,
    action: str,
) -> None:
    """Reject actors that are neither admin nor the record owner.

    Args:
        actor: Identity performing the operation.
        owner_id: Id of the user recorded as creator/uploader.
        action: Description of the attempted action, for the message.

    Raises:
        AuthorizationError: If the actor may not modify the record.
    """
    if not (actor.is_admin or actor.owns(owner_id)):
        raise AuthorizationError(f'Not authorized to {action}')
