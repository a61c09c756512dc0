"""Error taxonomy shared by all library operations.

Every error raised across an operation boundary derives from
``LibraryError`` and carries a stable ``kind`` plus a human-readable
message. Transport layers render ``as_dict()`` and map ``status_code``;
tracebacks and provider payloads stay in the server logs.
"""

from typing import ClassVar


class LibraryError(Exception):
    """Base class for errors surfaced to library clients."""

    kind: ClassVar[str] = 'library_error'
    status_code: ClassVar[int] = 500

    def __init__(self, message: str) -> None:
        """Initialize LibraryError.

        Args:
            message: Human-readable description safe to show to clients.
        """
        self.message = message
        super().__init__(message)

    def as_dict(self) -> dict[str, str]:
        """User-visible payload for this error.

        Returns:
            Dictionary with the stable kind and the message.
        """
        return {'kind': self.kind, 'message': self.message}


class ValidationError(LibraryError):
    """Raised when client input is malformed or missing."""

    kind = 'validation_error'
    status_code = 400


class AuthenticationError(LibraryError):
    """Raised when the caller's identity cannot be established."""

    kind = 'authentication_error'
    status_code = 401


class AuthorizationError(LibraryError):
    """Raised when the actor lacks the role or ownership required."""

    kind = 'authorization_error'
    status_code = 403


class NotFoundError(LibraryError):
    """Raised when a referenced folder, group, file or user is absent."""

    kind = 'not_found'
    status_code = 404


class ConflictError(LibraryError):
    """Raised on uniqueness or state-invariant violations."""

    kind = 'conflict'
    status_code = 409


class ExternalServiceError(LibraryError):
    """Raised when a collaborator call (storage, provider) fails."""

    kind = 'external_service_error'
    status_code = 502
