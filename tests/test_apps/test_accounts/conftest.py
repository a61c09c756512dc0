"""Shared fixtures for accounts app tests."""

from unittest import mock

import pytest

from server.apps.accounts.infrastructure.mail import DjangoMailDispatcher
from server.apps.accounts.models import Membership


@pytest.fixture
def mailer():
    """Mock mail dispatcher recording every message.

    Returns:
        Autospecced DjangoMailDispatcher.
    """
    return mock.create_autospec(DjangoMailDispatcher, instance=True)


@pytest.fixture
def member(resident, group):
    """Resident that belongs to ``group``.

    Returns:
        Resident user.
    """
    Membership.objects.create(group=group, user=resident)
    return resident
