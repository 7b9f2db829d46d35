"""Shared fixtures for files app tests."""

import pytest
from django.core.files.base import ContentFile

from blobdrive.apps.files.logic.object_operations import upload_file


@pytest.fixture
def sample_file_content():
    """Sample file content for testing.

    Returns:
        ContentFile with test data.
    """
    return ContentFile(b'test file content', name='test.txt')


@pytest.fixture
def report(storage):
    """Upload alice's 10 byte report into docs/.

    Returns:
        FileItem of the uploaded report.
    """
    return upload_file(
        storage,
        ContentFile(b'0123456789', name='report.pdf'),
        folder_path='docs',
    )
