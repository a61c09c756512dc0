"""Shared fixtures for files app tests."""

import itertools
from unittest import mock

import boto3
import pytest
from django.core.files.base import ContentFile
from moto import mock_aws

from server.apps.files.infrastructure.storage import (
    DeleteOutcome,
    FileStorage,
    S3StorageProvider,
    StoredObject,
)
from server.apps.files.models import File, FileType, Folder

_TEST_BUCKET = 'media-library'


@pytest.fixture
def mock_s3():
    """Mock S3 service with media-library bucket.

    Yields:
        boto3 S3 resource with media-library bucket created.
    """
    with mock_aws():
        # Create S3 resource
        conn = boto3.resource('s3', region_name='us-east-1')

        # Create bucket
        conn.create_bucket(Bucket=_TEST_BUCKET)

        yield conn


@pytest.fixture
def file_storage(mock_s3):
    """FileStorage backend pointed at the mocked bucket.

    Returns:
        FileStorage instance.
    """
    return FileStorage(
        bucket_name=_TEST_BUCKET,
        access_key='testing',
        secret_key='testing',
        region_name='us-east-1',
        file_overwrite=False,
        querystring_auth=False,
    )


@pytest.fixture
def s3_provider(file_storage):
    """S3StorageProvider writing to the mocked bucket.

    Returns:
        Provider with the ``test`` key prefix.
    """
    return S3StorageProvider(backend=file_storage, prefix='test')


@pytest.fixture
def storage_provider():
    """Mock storage provider that accepts every upload.

    Returns:
        Autospecced provider; ``store`` returns a new object id per call.
    """
    counter = itertools.count(1)

    def store(stream, filename, mime_type):
        object_id = f'test/{next(counter)}/{filename}'
        return StoredObject(
            object_id=object_id,
            url=f'https://storage.example.com/{object_id}',
            size_bytes=stream.size,
        )

    provider = mock.create_autospec(S3StorageProvider, instance=True)
    provider.store.side_effect = store
    provider.delete.return_value = DeleteOutcome.deleted
    return provider


@pytest.fixture
def sample_file_content():
    """Sample file content for testing.

    Returns:
        ContentFile with test data.
    """
    return ContentFile(b'%PDF-1.4 test file content', name='informe.pdf')


@pytest.fixture
def folder(teacher):
    """Root folder created by the teacher.

    Returns:
        Folder named Radiology.
    """
    return Folder.objects.create(name='Radiology', created_by=teacher)


@pytest.fixture
def make_file(db):
    """Factory for binary file records that skip the storage provider.

    Returns:
        Callable creating a File in the given folder.
    """
    counter = itertools.count(1)

    def factory(
        folder,
        uploaded_by,
        *,
        filename='scan.pdf',
        file_type=FileType.PDF,
        assigned_group=None,
        description='',
        size_bytes=100,
    ):
        object_id = f'test/{next(counter)}/{filename}'
        return File.objects.create(
            filename=filename,
            description=description,
            file_type=file_type,
            storage_object_id=object_id,
            url=f'https://storage.example.com/{object_id}',
            mime_type='application/pdf',
            size_bytes=size_bytes,
            folder=folder,
            uploaded_by=uploaded_by,
            assigned_group=assigned_group,
        )

    return factory
