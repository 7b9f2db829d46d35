"""Shared fixtures for shares app tests."""

import pytest
from django.core.files.base import ContentFile

from blobdrive.apps.files.logic.object_operations import upload_file


@pytest.fixture
def shared_file(storage):
    """Upload a file that alice can share.

    Returns:
        FileItem of the uploaded file.
    """
    return upload_file(
        storage,
        ContentFile(b'shared content', name='plan.pdf'),
        folder_path='docs',
    )
