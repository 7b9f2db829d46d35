"""Tests for the admin viewers of the registry and share links."""

import pytest
from django.contrib import admin
from django.urls import reverse

from blobdrive.apps.files.admin import FileRecordAdmin
from blobdrive.apps.files.models import FileRecord
from blobdrive.apps.shares.admin import ShareLinkAdmin
from blobdrive.apps.shares.models import ShareLink


def test_models_registered():
    """Test both models are registered with their admin classes."""
    assert isinstance(admin.site._registry[FileRecord], FileRecordAdmin)
    assert isinstance(admin.site._registry[ShareLink], ShareLinkAdmin)


@pytest.mark.django_db
@pytest.mark.parametrize('url_name', [
    'admin:files_filerecord_changelist',
    'admin:shares_sharelink_changelist',
])
def test_changelist_renders(admin_client, url_name):
    """Test the admin changelists load."""
    response = admin_client.get(reverse(url_name))

    assert response.status_code == 200
