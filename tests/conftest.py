"""Fixtures shared by every app: one user per role and their actors."""

import pytest

from server.apps.accounts.logic.actor import Actor
from server.apps.accounts.models import Group, Role, User

_PASSWORD = 'testpass123'


def _create_user(username: str, role: str) -> User:
    return User.objects.create_user(
        username=username,
        password=_PASSWORD,
        email=f'{username}@example.com',
        role=role,
        is_email_verified=True,
    )


@pytest.fixture
def password():
    """Plain-text password of every fixture user."""
    return _PASSWORD


@pytest.fixture
def library_admin(db):
    """Create a user with the admin role.

    Returns:
        Admin user.
    """
    return _create_user('admin', Role.ADMIN)


@pytest.fixture
def teacher(db):
    """Create a user with the teacher role.

    Returns:
        Teacher user.
    """
    return _create_user('docente', Role.TEACHER)


@pytest.fixture
def other_teacher(db):
    """Create a second teacher for ownership isolation tests.

    Returns:
        Teacher user.
    """
    return _create_user('docente2', Role.TEACHER)


@pytest.fixture
def resident(db):
    """Create a user with the resident role.

    Returns:
        Resident user.
    """
    return _create_user('residente', Role.RESIDENT)


@pytest.fixture
def plain_user(db):
    """Create a user with the default role.

    Returns:
        User without listing permissions.
    """
    return _create_user('usuario', Role.USER)


@pytest.fixture
def group(library_admin):
    """Create an empty group.

    Returns:
        Group created by the admin.
    """
    return Group.objects.create(
        name='Residentes R1',
        description='Primer año',
        created_by=library_admin,
    )


@pytest.fixture
def other_group(library_admin):
    """Create a second, unrelated group.

    Returns:
        Group created by the admin.
    """
    return Group.objects.create(name='Residentes R2', created_by=library_admin)


@pytest.fixture
def admin_actor(library_admin):
    """Actor for the admin user."""
    return Actor.for_user(library_admin)


@pytest.fixture
def teacher_actor(teacher):
    """Actor for the teacher user."""
    return Actor.for_user(teacher)


@pytest.fixture
def resident_actor(resident):
    """Actor for the resident user."""
    return Actor.for_user(resident)


@pytest.fixture
def plain_actor(plain_user):
    """Actor for the default-role user."""
    return Actor.for_user(plain_user)
