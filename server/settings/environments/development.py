"""Overrides used during development and tests."""

DEBUG = True

# Emails are printed instead of being sent
EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'

# Faster hashing keeps the test suite quick
PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
    'django.contrib.auth.hashers.PBKDF2PasswordHasher',
]
