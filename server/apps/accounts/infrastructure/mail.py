"""Outgoing e-mail for account flows."""

import functools
import logging
from typing import Protocol, final

from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string
from django.utils.html import strip_tags
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


class MailDispatcher(Protocol):
    """Sends one HTML e-mail to one recipient."""

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        """Deliver the message or raise on failure."""


@final
class DjangoMailDispatcher:
    """Mail dispatcher backed by Django's configured e-mail backend."""

    def __init__(self, from_address: str | None = None) -> None:
        """Initialize DjangoMailDispatcher.

        Args:
            from_address: Sender address, ``DEFAULT_FROM_EMAIL`` if None.
        """
        self.from_address = from_address or settings.DEFAULT_FROM_EMAIL

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        """Send HTML plus a plain-text alternative.

        Args:
            to_address: Recipient address.
            subject: Message subject.
            html_body: Rendered HTML body.
        """
        send_mail(
            subject=subject,
            message=strip_tags(html_body),
            from_email=self.from_address,
            recipient_list=[to_address],
            html_message=html_body,
        )
        logger.info('E-mail sent to %s: %s', to_address, subject)


@functools.cache
def get_mail_dispatcher() -> MailDispatcher:
    """Build the process-wide dispatcher named by settings.

    Returns:
        Instance of ``settings.LIBRARY_MAIL_DISPATCHER``.
    """
    dispatcher_class = import_string(settings.LIBRARY_MAIL_DISPATCHER)
    return dispatcher_class()


def send_quietly(
    mailer: MailDispatcher,
    to_address: str,
    subject: str,
    html_body: str,
) -> bool:
    """Send an e-mail without letting delivery failures propagate.

    Args:
        mailer: Dispatcher to use.
        to_address: Recipient address.
        subject: Message subject.
        html_body: Rendered HTML body.

    Returns:
        True if the dispatcher accepted the message.
    """
    try:
        mailer.send(to_address, subject, html_body)
    except Exception:
        logger.exception('Failed to send e-mail to %s: %s', to_address, subject)
        return False
    return True


def _frontend_link(path: str) -> str:
    return '{base}/{path}'.format(
        base=settings.LIBRARY_FRONTEND_URL.rstrip('/'),
        path=path.lstrip('/'),
    )


def send_verification_email(
    mailer: MailDispatcher,
    to_address: str,
    token: str,
) -> bool:
    """Send the e-mail verification link.

    Args:
        mailer: Dispatcher to use.
        to_address: Address being verified.
        token: Signed verification token.

    Returns:
        True if the dispatcher accepted the message.
    """
    html_body = render_to_string(
        'accounts/emails/verify_email.html',
        {
            'link': _frontend_link(f'verify-email/{token}'),
            'expiry_hours': settings.LIBRARY_EMAIL_VERIFICATION_MAX_AGE // 3600,
        },
    )
    return send_quietly(
        mailer,
        to_address,
        'Verifica tu dirección de correo electrónico',
        html_body,
    )


def send_password_reset_email(
    mailer: MailDispatcher,
    to_address: str,
    uidb64: str,
    token: str,
) -> bool:
    """Send the password reset link.

    Args:
        mailer: Dispatcher to use.
        to_address: Account address.
        uidb64: Base64 encoded user id.
        token: Password reset token.

    Returns:
        True if the dispatcher accepted the message.
    """
    html_body = render_to_string(
        'accounts/emails/password_reset.html',
        {
            'link': _frontend_link(f'reset-password/{uidb64}/{token}'),
            'expiry_hours': settings.PASSWORD_RESET_TIMEOUT // 3600,
        },
    )
    return send_quietly(
        mailer,
        to_address,
        'Restablecimiento de contraseña',
        html_body,
    )
