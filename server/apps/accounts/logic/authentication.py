"""Bearer token issuing, resolution and login.

Tokens are opaque ``django.core.signing`` payloads carrying the user id.
Operations never look at tokens: transport code resolves a credential
into an ``Actor`` through an ``AuthenticationResolver`` first.
"""

import functools
import logging
from typing import Final, Protocol, final

from django.conf import settings
from django.contrib.auth import authenticate
from django.core import signing

from server.apps.accounts.logic.actor import Actor
from server.apps.accounts.models import User
from server.common.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_TOKEN_SALT: Final = 'server.apps.accounts.bearer'
_BEARER_PREFIX: Final = 'Bearer '


class AuthenticationResolver(Protocol):
    """Turns a presented credential into a resolved identity."""

    def resolve(self, credential: str | None) -> Actor:
        """Resolve the credential or raise AuthenticationError."""


@final
class SignedTokenResolver:
    """Resolver for tokens produced by ``issue_token``."""

    def __init__(self, max_age: int | None = None) -> None:
        """Initialize SignedTokenResolver.

        Args:
            max_age: Token lifetime in seconds, from settings if None.
        """
        self.max_age = max_age or settings.LIBRARY_TOKEN_MAX_AGE

    def resolve(self, credential: str | None) -> Actor:
        """Resolve a bearer credential into an Actor.

        Args:
            credential: Raw token, optionally prefixed with ``Bearer``.

        Returns:
            Actor for the token's user.

        Raises:
            AuthenticationError: If the credential is missing, tampered,
                expired or names an unknown or inactive user.
        """
        if not credential:
            raise AuthenticationError('Missing credentials')
        token = credential.removeprefix(_BEARER_PREFIX).strip()

        try:
            payload = signing.loads(
                token,
                salt=_TOKEN_SALT,
                max_age=self.max_age,
            )
        except signing.SignatureExpired as error:
            logger.warning('Rejected expired token')
            raise AuthenticationError('Token expired') from error
        except signing.BadSignature as error:
            logger.warning('Rejected invalid token')
            raise AuthenticationError('Invalid token') from error

        user = User.objects.filter(
            pk=payload.get('uid'),
            is_active=True,
        ).first()
        if user is None:
            logger.warning('Token for unknown user: %s', payload.get('uid'))
            raise AuthenticationError('Invalid token')
        return Actor.for_user(user)


@functools.cache
def get_authentication_resolver() -> AuthenticationResolver:
    """Build the process-wide resolver."""
    return SignedTokenResolver()


def issue_token(user: User) -> str:
    """Sign a bearer token for the user.

    Args:
        user: User the token identifies.

    Returns:
        Opaque token string.
    """
    return signing.dumps({'uid': user.pk}, salt=_TOKEN_SALT)


def login(email: str, password: str) -> str:
    """Check credentials and issue a bearer token.

    Args:
        email: Account e-mail (case-insensitive).
        password: Plain-text password.

    Returns:
        Bearer token for the user.

    Raises:
        ValidationError: If e-mail or password is missing.
        AuthenticationError: If the credentials are wrong.
        AuthorizationError: If the e-mail has not been verified.
    """
    if not email or not password:
        raise ValidationError('E-mail and password are required')

    account = User.objects.filter(email=email.strip().lower()).first()
    user = None
    if account is not None:
        user = authenticate(username=account.username, password=password)
    if user is None:
        logger.warning('Failed login for %s', email)
        raise AuthenticationError('Incorrect e-mail or password')

    if not user.is_email_verified:
        logger.warning('Login before e-mail verification: user %d', user.pk)
        raise AuthorizationError(
            'Verify your e-mail address before logging in',
        )

    logger.info('User logged in: %d', user.pk)
    return issue_token(user)
