"""Media library settings: collaborators, tokens and links."""

from server.settings.components import config

# Collaborator classes, built once per process by the factory functions
LIBRARY_STORAGE_PROVIDER = config(
    'LIBRARY_STORAGE_PROVIDER',
    default='server.apps.files.infrastructure.storage.S3StorageProvider',
)
LIBRARY_MAIL_DISPATCHER = config(
    'LIBRARY_MAIL_DISPATCHER',
    default='server.apps.accounts.infrastructure.mail.DjangoMailDispatcher',
)

# Key prefix for uploaded objects inside the bucket
LIBRARY_STORAGE_PREFIX = config(
    'LIBRARY_STORAGE_PREFIX',
    default='imagenologia_recursos',
)

# Bearer token lifetime in seconds (30 days)
LIBRARY_TOKEN_MAX_AGE = config(
    'LIBRARY_TOKEN_MAX_AGE',
    cast=int,
    default=30 * 24 * 60 * 60,
)

# Email verification link lifetime in seconds (24 hours)
LIBRARY_EMAIL_VERIFICATION_MAX_AGE = config(
    'LIBRARY_EMAIL_VERIFICATION_MAX_AGE',
    cast=int,
    default=24 * 60 * 60,
)

# Password reset links expire after one hour
PASSWORD_RESET_TIMEOUT = config(
    'PASSWORD_RESET_TIMEOUT',
    cast=int,
    default=60 * 60,
)

# Frontend base URL used to build links sent by email
LIBRARY_FRONTEND_URL = config(
    'FRONTEND_URL',
    default='http://localhost:5173',
)
