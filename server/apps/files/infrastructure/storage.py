"""Storage provider for uploaded library files.

``StorageProvider`` is the interface the file registry depends on.
``S3StorageProvider`` implements it on top of ``FileStorage``, a
django-storages backend for S3-compatible services (AWS S3, MinIO, R2).
"""

import enum
import functools
import logging
import uuid
from dataclasses import dataclass
from typing import Any, BinaryIO, Final, Protocol, final, override

from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings
from django.core.files.base import File as DjangoFile
from django.core.files.storage import storages
from django.utils.module_loading import import_string
from storages.backends.s3 import S3Storage

from server.apps.files.infrastructure.metadata import sanitize_filename
from server.common.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

_MISSING_OBJECT_CODES: Final = frozenset(('404', 'NoSuchKey', 'NotFound'))


@dataclass(frozen=True, slots=True)
class StoredObject:
    """Result of storing an upload."""

    object_id: str
    url: str
    size_bytes: int


class DeleteOutcome(enum.Enum):
    """Result of deleting a stored object."""

    deleted = 'deleted'
    not_found = 'not_found'


class StorageProvider(Protocol):
    """Remote storage for uploaded binaries."""

    def store(
        self,
        stream: BinaryIO | DjangoFile,
        filename: str,
        mime_type: str,
    ) -> StoredObject:
        """Store the stream or raise ExternalServiceError."""

    def delete(self, object_id: str) -> DeleteOutcome:
        """Delete the object or raise ExternalServiceError."""

    def rollback(self, object_id: str) -> None:
        """Remove a just-stored object, logging instead of raising."""


@final
class FileStorage(S3Storage):
    """Custom S3 storage backend for library files.

    Extends django-storages S3Storage with:
    - Rollback support for uploads whose DB record failed
    - Error logging around every remote call
    """

    @override
    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Save file to S3 with error handling and logging.

        Args:
            name: Storage path for the file.
            content: File content (file-like object).
            max_length: Optional maximum length for the filename.

        Returns:
            Actual storage path used (may differ from name if conflicts).

        Raises:
            Exception: If S3 upload fails.
        """
        try:
            logger.info('Uploading file to storage: %s', name)
            saved_name = super().save(name, content, max_length)
            logger.info('Successfully uploaded file: %s', saved_name)
        except Exception:
            logger.exception('Failed to upload file to storage: %s', name)
            raise
        else:
            return saved_name

    @override
    def delete(self, name: str) -> None:
        """Delete file from S3 with error handling and logging.

        Args:
            name: Storage path of file to delete.

        Raises:
            Exception: If S3 delete fails.
        """
        try:
            logger.info('Deleting file from storage: %s', name)
            super().delete(name)
            logger.info('Successfully deleted file: %s', name)
        except Exception:
            logger.exception('Failed to delete file from storage: %s', name)
            raise

    def rollback_upload(self, name: str) -> None:
        """Delete an uploaded file whose DB record could not be written.

        This is a best-effort operation: if deletion fails, the error
        is logged but not raised, and the object stays orphaned in
        storage.

        Args:
            name: Storage path of file to delete.
        """
        try:
            logger.warning('Rolling back upload, deleting file: %s', name)
            self.delete(name)
            logger.info('Successfully rolled back file upload: %s', name)
        except Exception:
            logger.exception(
                'Failed to rollback upload, orphaned file: %s',
                name,
            )


@final
class S3StorageProvider:
    """StorageProvider backed by the default ``FileStorage``.

    Objects are stored under ``<prefix>/<uuid>/<sanitized filename>`` so
    two uploads with the same name never overwrite each other.
    """

    def __init__(
        self,
        backend: FileStorage | None = None,
        prefix: str | None = None,
    ) -> None:
        """Initialize S3StorageProvider.

        Args:
            backend: Storage backend, ``STORAGES['default']`` if None.
            prefix: Key prefix, ``LIBRARY_STORAGE_PREFIX`` if None.
        """
        self.backend = backend or storages['default']
        self.prefix = (prefix or settings.LIBRARY_STORAGE_PREFIX).strip('/')

    def _object_key(self, filename: str) -> str:
        return '{prefix}/{unique}/{name}'.format(
            prefix=self.prefix,
            unique=uuid.uuid4().hex,
            name=sanitize_filename(filename),
        )

    def store(
        self,
        stream: BinaryIO | DjangoFile,
        filename: str,
        mime_type: str,
    ) -> StoredObject:
        """Upload the stream and describe the stored object.

        Args:
            stream: Binary content to upload.
            filename: Original filename, used in the object key.
            mime_type: Content type recorded on the object.

        Returns:
            Key, retrieval URL and size of the stored object.

        Raises:
            ExternalServiceError: If the provider rejects the upload.
        """
        content = stream if isinstance(stream, DjangoFile) else DjangoFile(stream)
        content.content_type = mime_type  # type: ignore[attr-defined]

        size_bytes = content.size

        try:
            object_id = self.backend.save(self._object_key(filename), content)
            url = self.backend.url(object_id)
        except (BotoCoreError, ClientError) as error:
            raise ExternalServiceError('File storage upload failed') from error

        return StoredObject(object_id=object_id, url=url, size_bytes=size_bytes)

    def delete(self, object_id: str) -> DeleteOutcome:
        """Delete a stored object.

        Args:
            object_id: Key returned by ``store``.

        Returns:
            ``not_found`` if the object was already gone.

        Raises:
            ExternalServiceError: On network or authorization failures.
        """
        try:
            if not self.backend.exists(object_id):
                logger.warning('Storage object not found: %s', object_id)
                return DeleteOutcome.not_found
            self.backend.delete(object_id)
        except ClientError as error:
            code = str(error.response.get('Error', {}).get('Code', ''))
            if code in _MISSING_OBJECT_CODES:
                return DeleteOutcome.not_found
            raise ExternalServiceError('File storage delete failed') from error
        except BotoCoreError as error:
            raise ExternalServiceError('File storage delete failed') from error
        return DeleteOutcome.deleted

    def rollback(self, object_id: str) -> None:
        """Best-effort removal of an object whose record was not saved."""
        self.backend.rollback_upload(object_id)


@functools.cache
def get_storage_provider() -> StorageProvider:
    """Build the process-wide provider named by settings.

    Returns:
        Instance of ``settings.LIBRARY_STORAGE_PROVIDER``.
    """
    provider_class = import_string(settings.LIBRARY_STORAGE_PROVIDER)
    return provider_class()
