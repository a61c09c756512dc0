"""Tests for outgoing account e-mail."""

from django.core import mail

from server.apps.accounts.infrastructure.mail import (
    DjangoMailDispatcher,
    send_password_reset_email,
    send_quietly,
    send_verification_email,
)


def test_django_dispatcher_sends_html_and_text(settings):
    """Test that messages carry an HTML body and a plain alternative."""
    settings.EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
    dispatcher = DjangoMailDispatcher(from_address='biblioteca@example.com')

    dispatcher.send('a@example.com', 'Asunto', '<p>Hola <b>mundo</b></p>')

    message = mail.outbox[0]
    assert message.from_email == 'biblioteca@example.com'
    assert message.to == ['a@example.com']
    assert message.body == 'Hola mundo'
    assert message.alternatives[0][0] == '<p>Hola <b>mundo</b></p>'


def test_send_quietly_swallows_failures(mailer):
    """Test that delivery errors are reported as False."""
    mailer.send.side_effect = OSError('smtp down')

    assert not send_quietly(mailer, 'a@example.com', 'Asunto', '<p>x</p>')


def test_verification_email_link(mailer, settings):
    """Test the verification link and subject."""
    settings.LIBRARY_FRONTEND_URL = 'https://biblioteca.example.com/'

    assert send_verification_email(mailer, 'a@example.com', 'tok:en')

    to_address, subject, html_body = mailer.send.call_args.args
    assert to_address == 'a@example.com'
    assert subject == 'Verifica tu dirección de correo electrónico'
    assert 'https://biblioteca.example.com/verify-email/tok:en' in html_body
    assert '24 horas' in html_body


def test_password_reset_email_link(mailer, settings):
    """Test the reset link and subject."""
    settings.LIBRARY_FRONTEND_URL = 'https://biblioteca.example.com'

    send_password_reset_email(mailer, 'a@example.com', 'MQ', 'abc-123')

    _, subject, html_body = mailer.send.call_args.args
    assert subject == 'Restablecimiento de contraseña'
    assert 'https://biblioteca.example.com/reset-password/MQ/abc-123' in html_body
