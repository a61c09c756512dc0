"""Tests for bearer tokens and login."""

import pytest
from django.core import signing

from server.apps.accounts.logic.authentication import (
    SignedTokenResolver,
    get_authentication_resolver,
    issue_token,
    login,
)
from server.apps.accounts.models import Membership, User
from server.common.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ValidationError,
)


@pytest.mark.django_db
def test_login_issues_resolvable_token(member, group, password):
    """Test that a login token resolves to the user's actor."""
    token = login('RESIDENTE@example.com', password)

    actor = get_authentication_resolver().resolve(f'Bearer {token}')

    assert actor.user_id == member.pk
    assert actor.role == 'residente'
    assert actor.group_ids == frozenset({group.pk})


@pytest.mark.django_db
def test_login_wrong_credentials(resident, password):
    """Test unknown e-mails and wrong passwords."""
    with pytest.raises(AuthenticationError):
        login(resident.email, 'wrong-password')
    with pytest.raises(AuthenticationError):
        login('nadie@example.com', password)
    with pytest.raises(ValidationError):
        login('', password)


@pytest.mark.django_db
def test_login_unverified(resident, password):
    """Test that unverified accounts cannot log in."""
    User.objects.filter(pk=resident.pk).update(is_email_verified=False)

    with pytest.raises(AuthorizationError):
        login(resident.email, password)


@pytest.mark.django_db
def test_resolve_rejects_bad_tokens(resident):
    """Test missing, tampered and foreign tokens."""
    resolver = SignedTokenResolver()

    with pytest.raises(AuthenticationError):
        resolver.resolve(None)
    with pytest.raises(AuthenticationError):
        resolver.resolve(issue_token(resident) + 'x')
    with pytest.raises(AuthenticationError):
        resolver.resolve(signing.dumps({'uid': resident.pk}, salt='other'))


@pytest.mark.django_db
def test_resolve_expired_token(resident):
    """Test that tokens older than max_age are rejected."""
    token = issue_token(resident)
    resolver = SignedTokenResolver(max_age=-1)

    with pytest.raises(AuthenticationError, match='expired'):
        resolver.resolve(token)


@pytest.mark.django_db
def test_resolve_inactive_user(resident):
    """Test that deactivated users cannot authenticate."""
    token = issue_token(resident)
    User.objects.filter(pk=resident.pk).update(is_active=False)

    with pytest.raises(AuthenticationError):
        SignedTokenResolver().resolve(token)


@pytest.mark.django_db
def test_resolve_reflects_new_groups(resident, group):
    """Test that memberships are read when the token is resolved."""
    token = issue_token(resident)
    Membership.objects.create(group=group, user=resident)

    actor = SignedTokenResolver().resolve(token)

    assert actor.group_ids == frozenset({group.pk})
