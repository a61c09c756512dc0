"""Business logic for user accounts.

Covers self-service flows (registration, e-mail verification, password
reset and change) and the admin-only user directory. Group membership
changes are delegated to the group ledger.
"""

import logging
from collections.abc import Iterable
from typing import Final

from django.conf import settings
from django.contrib.auth.password_validation import validate_password
from django.contrib.auth.tokens import default_token_generator
from django.core import signing
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import IntegrityError, transaction
from django.db.models import Q, QuerySet
from django.utils.encoding import force_bytes, force_str
from django.utils.http import urlsafe_base64_decode, urlsafe_base64_encode

from server.apps.accounts.infrastructure.mail import (
    MailDispatcher,
    get_mail_dispatcher,
    send_password_reset_email,
    send_verification_email,
)
from server.apps.accounts.logic.actor import Actor, require_admin
from server.apps.accounts.logic.group_operations import set_memberships
from server.apps.accounts.models import Group, Role, User
from server.common.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from server.common.identifiers import coerce_id, parse_id
from server.common.unset import UNSET, Unset

logger = logging.getLogger(__name__)

_VERIFICATION_SALT: Final = 'server.apps.accounts.verify-email'


def _normalize_email(email: str | None) -> str:
    address = (email or '').strip().lower()
    try:
        validate_email(address)
    except DjangoValidationError as error:
        raise ValidationError('Invalid e-mail address') from error
    return address


def _check_password(password: str, user: User | None = None) -> None:
    try:
        validate_password(password, user)
    except DjangoValidationError as error:
        raise ValidationError(' '.join(error.messages)) from error


def _check_confirmation(password: str, confirm_password: str) -> None:
    if not password or not confirm_password:
        raise ValidationError('Password and confirmation are required')
    if password != confirm_password:
        raise ValidationError('Passwords do not match')


def _users_with_groups() -> QuerySet[User]:
    return User.objects.prefetch_related('library_groups')


def _load_user(user_id: object) -> User:
    user_pk = parse_id(user_id, 'userId')
    try:
        return _users_with_groups().get(pk=user_pk)
    except User.DoesNotExist as error:
        raise NotFoundError('User not found') from error


def _verification_token(user: User) -> str:
    return signing.dumps(
        {'uid': user.pk, 'email': user.email},
        salt=_VERIFICATION_SALT,
    )


def register_user(
    username: str,
    email: str,
    password: str,
    *,
    mailer: MailDispatcher | None = None,
) -> User:
    """Create an unverified account and send the verification e-mail.

    A failed e-mail send is logged; registration still succeeds.

    Args:
        username: Unique login name.
        email: Unique e-mail address, stored lowercase.
        password: Plain-text password, checked by the password validators.
        mailer: Dispatcher for the verification e-mail.

    Returns:
        Created User (role ``usuario``, e-mail not verified).

    Raises:
        ValidationError: If a field is missing or invalid.
        ConflictError: If the username or e-mail is taken.
    """
    username = (username or '').strip()
    if not username or not email or not password:
        raise ValidationError('Username, e-mail and password are required')
    address = _normalize_email(email)

    if User.objects.filter(Q(username=username) | Q(email=address)).exists():
        raise ConflictError('E-mail or username already in use')
    _check_password(password, User(username=username, email=address))

    try:
        with transaction.atomic():
            user = User.objects.create_user(
                username=username,
                email=address,
                password=password,
            )
    except IntegrityError as error:
        raise ConflictError('E-mail or username already in use') from error

    logger.info('User registered: %s (ID: %d)', user.username, user.pk)
    send_verification_email(
        mailer or get_mail_dispatcher(),
        user.email,
        _verification_token(user),
    )
    return user


def verify_email(token: str) -> User:
    """Mark the e-mail of the token's user as verified.

    Args:
        token: Token from the verification link.

    Returns:
        Verified User.

    Raises:
        ValidationError: If the token is missing, invalid or expired.
    """
    if not token:
        raise ValidationError('Verification token is required')
    try:
        payload = signing.loads(
            token,
            salt=_VERIFICATION_SALT,
            max_age=settings.LIBRARY_EMAIL_VERIFICATION_MAX_AGE,
        )
    except signing.BadSignature as error:
        raise ValidationError('Invalid or expired verification token') from error

    user = User.objects.filter(
        pk=payload.get('uid'),
        email=payload.get('email'),
    ).first()
    if user is None:
        raise ValidationError('Invalid or expired verification token')

    if not user.is_email_verified:
        user.is_email_verified = True
        user.save(update_fields=['is_email_verified', 'updated_at'])
        logger.info('E-mail verified for user %d', user.pk)
    return user


def resend_verification_email(
    email: str,
    *,
    mailer: MailDispatcher | None = None,
) -> None:
    """Send a fresh verification link.

    Unknown addresses are ignored so callers cannot probe for accounts.

    Raises:
        ValidationError: If the address is missing or already verified.
    """
    if not email:
        raise ValidationError('E-mail is required')
    user = User.objects.filter(email=email.strip().lower()).first()
    if user is None:
        logger.info('Verification resend for unknown e-mail')
        return
    if user.is_email_verified:
        raise ValidationError('This e-mail address is already verified')

    send_verification_email(
        mailer or get_mail_dispatcher(),
        user.email,
        _verification_token(user),
    )


def request_password_reset(
    email: str,
    *,
    mailer: MailDispatcher | None = None,
) -> None:
    """Send a password reset link if the address belongs to an account.

    The outcome is the same whether or not the account exists.

    Raises:
        ValidationError: If the address is missing.
    """
    if not email:
        raise ValidationError('E-mail is required')
    user = User.objects.filter(email=email.strip().lower()).first()
    if user is None:
        logger.info('Password reset requested for unknown e-mail')
        return

    send_password_reset_email(
        mailer or get_mail_dispatcher(),
        user.email,
        urlsafe_base64_encode(force_bytes(user.pk)),
        default_token_generator.make_token(user),
    )
    logger.info('Password reset requested for user %d', user.pk)


def reset_password(
    uidb64: str,
    token: str,
    password: str,
    confirm_password: str,
) -> User:
    """Set a new password from a reset link.

    Resetting the password also marks the e-mail as verified.

    Raises:
        ValidationError: If the passwords differ or fail validation, or
            the link is invalid or expired.
    """
    _check_confirmation(password, confirm_password)

    try:
        user_pk = coerce_id(force_str(urlsafe_base64_decode(uidb64 or '')))
    except ValueError:
        user_pk = None
    user = None
    if user_pk is not None:
        user = User.objects.filter(pk=user_pk).first()
    if user is None or not default_token_generator.check_token(user, token):
        raise ValidationError('Invalid or expired reset link')

    _check_password(password, user)
    user.set_password(password)
    user.is_email_verified = True
    user.save()
    logger.info('Password reset for user %d', user.pk)
    return user


def change_password(
    actor: Actor,
    current_password: str,
    new_password: str,
    confirm_password: str,
) -> None:
    """Change the actor's own password.

    Raises:
        ValidationError: If a field is missing, the new passwords differ
            or fail validation.
        AuthenticationError: If the current password is wrong or the
            account was deleted.
    """
    if not current_password:
        raise ValidationError('Current password is required')
    _check_confirmation(new_password, confirm_password)

    try:
        user = User.objects.get(pk=actor.user_id)
    except User.DoesNotExist as error:
        logger.warning('Password change for missing user %d', actor.user_id)
        raise AuthenticationError('Account no longer exists') from error
    if not user.check_password(current_password):
        logger.warning('Wrong current password for user %d', user.pk)
        raise AuthenticationError('Current password is incorrect')

    _check_password(new_password, user)
    user.set_password(new_password)
    user.save()
    logger.info('Password changed for user %d', user.pk)


def get_profile(actor: Actor) -> User:
    """Return the actor's own account with its groups loaded."""
    return _load_user(actor.user_id)


def list_users(actor: Actor) -> QuerySet[User]:
    """List every user with their groups (admin only)."""
    require_admin(actor, 'list users')
    return _users_with_groups().order_by('username')


def get_user(actor: Actor, user_id: object) -> User:
    """Get one user with their groups (admin only).

    Raises:
        NotFoundError: If the user does not exist.
    """
    require_admin(actor, 'view users')
    return _load_user(user_id)


def _resolve_group_ids(group_ids: Iterable[object]) -> list[int]:
    resolved: list[int] = []
    for raw_id in group_ids:
        group_pk = coerce_id(raw_id)
        if group_pk is None:
            raise ValidationError(f'Invalid group id: {raw_id}')
        if not Group.objects.filter(pk=group_pk).exists():
            raise NotFoundError(f'Group not found: {group_pk}')
        resolved.append(group_pk)
    return resolved


def update_user(  # noqa: WPS211
    actor: Actor,
    user_id: object,
    *,
    username: str | Unset = UNSET,
    email: str | Unset = UNSET,
    role: str | Unset = UNSET,
    group_ids: Iterable[object] | Unset = UNSET,
) -> User:
    """Change a user's identity fields, role or group memberships.

    Every provided field is validated before anything is saved.

    Args:
        actor: Identity performing the operation (must be admin).
        user_id: User to update.
        username: New unique username.
        email: New unique e-mail address.
        role: New role name (legacy spelling accepted).
        group_ids: Complete list of groups the user should belong to.

    Returns:
        Updated User with groups loaded.

    Raises:
        ValidationError: If a value is malformed.
        NotFoundError: If the user or a listed group does not exist.
        ConflictError: If the username or e-mail belongs to another user.
    """
    require_admin(actor, 'update users')
    user = _load_user(user_id)
    others = User.objects.exclude(pk=user.pk)

    if username is not UNSET:
        new_username = (username or '').strip()
        if not new_username:
            raise ValidationError('Username cannot be empty')
        if others.filter(username=new_username).exists():
            raise ConflictError('Username already in use')
        user.username = new_username

    if email is not UNSET:
        address = _normalize_email(email)
        if others.filter(email=address).exists():
            raise ConflictError('E-mail already in use')
        user.email = address

    if role is not UNSET:
        try:
            user.role = Role.parse(role or '')
        except ValueError as error:
            allowed = ', '.join(Role.values)
            raise ValidationError(
                f'Invalid role. Allowed roles: {allowed}',
            ) from error

    requested_groups = None
    if group_ids is not UNSET:
        if isinstance(group_ids, str):
            raise ValidationError('groups must be a list of group ids')
        requested_groups = _resolve_group_ids(group_ids)

    try:
        with transaction.atomic():
            user.save()
            if requested_groups is not None:
                set_memberships(user, requested_groups)
    except IntegrityError as error:
        raise ConflictError('Username or e-mail already in use') from error

    logger.info('User updated: %s (ID: %d)', user.username, user.pk)
    return _load_user(user.pk)


def delete_user(actor: Actor, user_id: object) -> None:
    """Delete a user account (admin only).

    Deleting a missing user succeeds. Memberships are removed with the
    user; folders, files, groups and tags they created stay with the
    owner reference cleared.

    Raises:
        ConflictError: If an admin deletes themselves as the only admin.
    """
    require_admin(actor, 'delete users')
    user_pk = parse_id(user_id, 'userId')

    if user_pk == actor.user_id:
        admin_count = User.objects.filter(role=Role.ADMIN).count()
        if admin_count <= 1:
            raise ConflictError(
                'You cannot delete yourself while being the only admin',
            )

    deleted, _ = User.objects.filter(pk=user_pk).delete()
    if deleted:
        logger.info('User deleted: ID=%d', user_pk)
    else:
        logger.info('User already absent: ID=%d', user_pk)

