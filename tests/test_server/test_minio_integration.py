"""Integration tests for MinIO S3 storage.

These tests verify that MinIO is properly configured and accessible
when running in Docker Compose, first with boto3 and then through the
library's storage provider.
"""
import os
from typing import Final

import boto3
import pytest
from botocore.client import BaseClient
from botocore.exceptions import ClientError
from django.core.files.base import ContentFile

from server.apps.files.infrastructure.storage import (
    DeleteOutcome,
    FileStorage,
    S3StorageProvider,
)

_TEST_BUCKET: Final = 'media-library'
_TEST_FILE_KEY: Final = 'test-file.txt'
_TEST_FILE_CONTENT: Final = b'Hello from MinIO integration test!'


def _minio_credentials() -> dict[str, str]:
    return {
        'endpoint_url': os.getenv('MINIO_ENDPOINT', 'http://minio:9000'),
        'access_key': os.getenv('MINIO_ROOT_USER', 'minioadmin'),
        'secret_key': os.getenv('MINIO_ROOT_PASSWORD', 'minioadmin'),
    }


@pytest.fixture
def s3_client() -> BaseClient:
    """Create S3 client for MinIO.

    Returns:
        Configured boto3 S3 client for MinIO.
    """
    credentials = _minio_credentials()
    return boto3.client(
        's3',
        endpoint_url=credentials['endpoint_url'],
        aws_access_key_id=credentials['access_key'],
        aws_secret_access_key=credentials['secret_key'],
        region_name='us-east-1',
    )


@pytest.fixture
def test_bucket(s3_client: BaseClient) -> str:
    """Ensure test bucket exists.

    Args:
        s3_client: boto3 S3 client.

    Returns:
        Name of the test bucket.
    """
    try:
        s3_client.head_bucket(Bucket=_TEST_BUCKET)
    except ClientError:
        s3_client.create_bucket(Bucket=_TEST_BUCKET)

    return _TEST_BUCKET


@pytest.fixture
def minio_provider(test_bucket: str) -> S3StorageProvider:
    """Storage provider writing to the MinIO test bucket.

    Args:
        test_bucket: Name of the test bucket.

    Returns:
        S3StorageProvider with the ``integration`` key prefix.
    """
    backend = FileStorage(
        bucket_name=test_bucket,
        region_name='us-east-1',
        file_overwrite=False,
        querystring_auth=False,
        **_minio_credentials(),
    )
    return S3StorageProvider(backend=backend, prefix='integration')


@pytest.mark.integration
def test_s3_client_connection(s3_client: BaseClient) -> None:
    """Test that S3 client can connect to MinIO."""
    # List buckets to verify connection
    response = s3_client.list_buckets()
    assert 'Buckets' in response


@pytest.mark.integration
def test_upload_object(s3_client: BaseClient, test_bucket: str) -> None:
    """Test uploading an object to MinIO.

    Args:
        s3_client: boto3 S3 client.
        test_bucket: Name of the test bucket.
    """
    s3_client.put_object(
        Bucket=test_bucket,
        Key=_TEST_FILE_KEY,
        Body=_TEST_FILE_CONTENT,
    )

    # Verify object exists
    response = s3_client.head_object(Bucket=test_bucket, Key=_TEST_FILE_KEY)
    assert response['ResponseMetadata']['HTTPStatusCode'] == 200
    assert response['ContentLength'] == len(_TEST_FILE_CONTENT)


@pytest.mark.integration
def test_provider_store_and_delete(
    s3_client: BaseClient,
    test_bucket: str,
    minio_provider: S3StorageProvider,
) -> None:
    """Test a full store/delete cycle through the storage provider.

    Args:
        s3_client: boto3 S3 client.
        test_bucket: Name of the test bucket.
        minio_provider: Provider under test.
    """
    stored = minio_provider.store(
        ContentFile(_TEST_FILE_CONTENT),
        'informe final.pdf',
        'application/pdf',
    )

    response = s3_client.head_object(Bucket=test_bucket, Key=stored.object_id)
    assert response['ContentLength'] == len(_TEST_FILE_CONTENT)
    assert response['ContentType'] == 'application/pdf'
    assert stored.size_bytes == len(_TEST_FILE_CONTENT)

    assert minio_provider.delete(stored.object_id) is DeleteOutcome.deleted
    assert minio_provider.delete(stored.object_id) is DeleteOutcome.not_found

    # Verify object is deleted
    with pytest.raises(ClientError) as exc_info:
        s3_client.head_object(Bucket=test_bucket, Key=stored.object_id)

    assert exc_info.value.response['Error']['Code'] == '404'
