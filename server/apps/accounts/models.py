"""Database models for accounts app: users, roles and groups."""

from typing import ClassVar, Final, Self, final, override

from django.conf import settings
from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models

# Constants for field max lengths
_ROLE_MAX_LENGTH: Final = 20
_GROUP_NAME_MAX_LENGTH: Final = 150

# Spelling used by older records for the resident/student role
_LEGACY_RESIDENT: Final = 'residente/alumno'


class Role(models.TextChoices):
    """Roles that drive folder and file visibility."""

    ADMIN = 'admin', 'Administrador'
    TEACHER = 'docente', 'Docente'
    RESIDENT = 'residente', 'Residente/Alumno'
    USER = 'usuario', 'Usuario'

    @classmethod
    def parse(cls, raw_role: str) -> Self:
        """Map a stored or client supplied role name to a Role.

        Args:
            raw_role: Role name, possibly using the legacy spelling.

        Returns:
            Matching Role member.

        Raises:
            ValueError: If the name is not a known role.
        """
        normalized = raw_role.strip().lower()
        if normalized == _LEGACY_RESIDENT:
            normalized = cls.RESIDENT.value
        return cls(normalized)


class LibraryUserManager(UserManager['User']):
    """User manager whose superusers get the admin role."""

    @override
    def create_superuser(
        self,
        username: str,
        email: str | None = None,
        password: str | None = None,
        **extra_fields: object,
    ) -> 'User':
        extra_fields.setdefault('role', Role.ADMIN)
        extra_fields.setdefault('is_email_verified', True)
        return super().create_superuser(
            username,
            email,
            password,
            **extra_fields,
        )


@final
class User(AbstractUser):
    """Library user.

    The ``role`` decides which folders and files the user may list.
    Group memberships are stored in ``Membership`` rows, reachable as
    ``user.library_groups``.
    """

    email = models.EmailField(unique=True)

    role = models.CharField(
        max_length=_ROLE_MAX_LENGTH,
        choices=Role.choices,
        default=Role.USER,
    )

    is_email_verified = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LibraryUserManager()

    class Meta:
        """Model metadata."""

        verbose_name = 'User'  # type: ignore[mutable-override]
        verbose_name_plural = 'Users'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['username']

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.username} ({self.role})'

    @property
    def is_admin(self) -> bool:
        """Whether the user holds the admin role."""
        return self.role == Role.ADMIN


@final
class Group(models.Model):
    """Named collection of users used to restrict folders and files.

    A folder or file with ``assigned_group`` set is visible to the
    members of that group (plus admins and, for teachers, its owner).
    """

    name = models.CharField(
        max_length=_GROUP_NAME_MAX_LENGTH,
        unique=True,
    )

    description = models.TextField(blank=True, default='')

    members = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through='Membership',
        related_name='library_groups',
        blank=True,
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_groups',
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Group'  # type: ignore[mutable-override]
        verbose_name_plural = 'Groups'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['name']

    @override
    def __str__(self) -> str:
        """String representation."""
        return self.name


@final
class Membership(models.Model):
    """A user's membership in a group.

    One row is both an entry of ``Group.members`` and of the user's
    groups, so the two sides cannot drift apart. Rows are created and
    removed only by the group ledger operations.
    """

    group = models.ForeignKey(
        Group,
        # Deleting a group with members must fail, see delete_group
        on_delete=models.PROTECT,
        related_name='memberships',
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='memberships',
    )

    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Membership'  # type: ignore[mutable-override]
        verbose_name_plural = 'Memberships'  # type: ignore[mutable-override]

        constraints: ClassVar[list[models.BaseConstraint]] = [
            models.UniqueConstraint(
                fields=['group', 'user'],
                name='memberships_group_user_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user_id}@{self.group_id}'
