"""Fixtures shared by the files and shares app tests."""

from typing import Final

import boto3
import pytest
from django.contrib.auth import get_user_model
from moto import mock_aws

from blobdrive.apps.files.infrastructure.tenants import (
    get_tenant_storage,
    tenants,
)

User = get_user_model()

TEST_REGION: Final = 'us-east-1'


@pytest.fixture(autouse=True)
def drive_settings(settings):
    """Point tenant storages at moto with test credentials.

    Returns:
        Overridden settings.
    """
    settings.DRIVE_STORAGE = {
        'access_key': 'testing',
        'secret_key': 'testing',
        'endpoint_url': None,
        'region_name': TEST_REGION,
        'signature_version': 's3v4',
        'container_prefix': 'drive',
    }
    settings.DRIVE_READ_URL_TTL = 900
    settings.DRIVE_SHARE_DEFAULT_EXPIRY_DAYS = 7
    settings.DRIVE_APP_URL = 'http://drive.test'
    settings.DRIVE_QUOTA_BYTES = 10 * 1024 * 1024
    settings.DRIVE_RECYCLE_RETENTION_DAYS = 30
    return settings


@pytest.fixture(autouse=True)
def clear_tenants():
    """Start and end every test with an empty tenant registry.

    Storages hold boto3 connections bound to the moto mock of one test.
    """
    tenants.clear()
    yield
    tenants.clear()


@pytest.fixture
def mock_s3():
    """Mock S3 service.

    Yields:
        boto3 S3 resource for assertions.
    """
    with mock_aws():
        yield boto3.resource('s3', region_name=TEST_REGION)


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='alice',
        password='testpass123',
        email='alice@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='bob',
        password='testpass123',
        email='bob@example.com',
    )


@pytest.fixture
def storage(mock_s3, user):
    """Initialized tenant storage of the test user.

    Returns:
        TenantStorage with its bucket created.
    """
    return get_tenant_storage(user.email)


@pytest.fixture
def other_storage(mock_s3, other_user):
    """Initialized tenant storage of the second user.

    Returns:
        TenantStorage with its bucket created.
    """
    return get_tenant_storage(other_user.email)
