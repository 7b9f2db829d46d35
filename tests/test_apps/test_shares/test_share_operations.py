"""Tests for share link business logic."""

from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import pytest
from django.core.files.base import ContentFile
from django.utils import timezone

from blobdrive.apps.files.exceptions import (
    ForbiddenError,
    NotFoundError,
    ShareLinkExpiredError,
    UnauthorizedError,
)
from blobdrive.apps.files.infrastructure.tenants import get_tenant_storage
from blobdrive.apps.files.logic.object_operations import soft_delete, upload_file
from blobdrive.apps.shares.logic.share_operations import (
    create_share_link,
    resolve_share_link,
)
from blobdrive.apps.shares.models import AccessType, ShareLink

_ALICE = 'alice@example.com'
_BOB = 'bob@example.com'


@pytest.mark.django_db
class TestCreateShareLink:
    """Tests for create_share_link function."""

    def test_creates_link(self, shared_file):
        """Test a link is stored with defaults and a public URL."""
        grant = create_share_link(_ALICE, shared_file.id)

        link = ShareLink.objects.get(share_id=grant.share_id)
        assert grant.share_url == f'http://drive.test/share/{grant.share_id}'
        assert link.file_id == shared_file.id
        assert link.created_by == _ALICE
        assert link.access_type == AccessType.VIEW
        assert link.requires_auth is True

    def test_default_expiry(self, shared_file):
        """Test links live seven days by default."""
        before = timezone.now()

        grant = create_share_link(_ALICE, shared_file.id)

        lifetime = grant.expiry - before
        assert timedelta(days=7) - timedelta(minutes=1) < lifetime
        assert lifetime <= timedelta(days=7, minutes=1)

    def test_custom_expiry(self, shared_file):
        """Test an explicit lifetime is honored."""
        before = timezone.now()

        grant = create_share_link(_ALICE, shared_file.id, ttl_days=1)

        assert grant.expiry - before < timedelta(days=1, minutes=1)

    def test_unique_unguessable_tokens(self, shared_file):
        """Test every link gets a fresh long token."""
        first = create_share_link(_ALICE, shared_file.id)
        second = create_share_link(_ALICE, shared_file.id)

        assert first.share_id != second.share_id
        assert len(first.share_id) >= 43

    def test_relative_path_accepted(self, shared_file):
        """Test owners may name the file by its relative path."""
        grant = create_share_link(_ALICE, 'docs/plan.pdf')

        assert ShareLink.objects.get(share_id=grant.share_id).file_id == shared_file.id

    def test_not_owner(self, shared_file, other_user):
        """Test others cannot share alice's file."""
        with pytest.raises(NotFoundError):
            create_share_link(_BOB, shared_file.id)

    def test_deleted_file(self, storage, shared_file):
        """Test files in the recycle bin cannot be shared."""
        soft_delete(storage, shared_file.id)

        with pytest.raises(NotFoundError):
            create_share_link(_ALICE, shared_file.id)

    def test_unknown_file(self, storage):
        """Test unknown files cannot be shared."""
        with pytest.raises(NotFoundError):
            create_share_link(_ALICE, 'missing.pdf')

    @pytest.mark.parametrize('ttl_days', [0, -1])
    def test_non_positive_ttl(self, shared_file, ttl_days):
        """Test lifetimes must be positive."""
        with pytest.raises(ValueError, match='at least one day'):
            create_share_link(_ALICE, shared_file.id, ttl_days=ttl_days)

    def test_colliding_tenant_folders(self, mock_s3):
        """Test an identity sharing a tenant folder cannot take over files."""
        dotted = get_tenant_storage('a.b@example.com')
        underscored = get_tenant_storage('a_b@example.com')
        item = upload_file(
            dotted,
            ContentFile(b'mine', name='plan.pdf'),
            folder_path='docs',
        )
        upload_file(
            underscored,
            ContentFile(b'theirs', name='plan.pdf'),
            folder_path='docs',
        )
        soft_delete(underscored, item.id)

        grant = create_share_link('a.b@example.com', item.id)

        assert ShareLink.objects.get(share_id=grant.share_id).created_by == (
            'a.b@example.com'
        )

    def test_anonymous(self, shared_file):
        """Test sharing needs an identity."""
        with pytest.raises(UnauthorizedError):
            create_share_link('', shared_file.id)


@pytest.mark.django_db
class TestResolveShareLink:
    """Tests for resolve_share_link function."""

    def test_any_identity_resolves(self, storage, shared_file):
        """Test another user gets a presigned URL for alice's bucket."""
        grant = create_share_link(_ALICE, shared_file.id)

        resolved = resolve_share_link(_BOB, grant.share_id)

        parsed = urlparse(resolved.url)
        query = parse_qs(parsed.query)
        assert resolved.file_id == shared_file.id
        assert resolved.name == 'plan.pdf'
        assert storage.bucket_name in resolved.url
        assert parsed.path.endswith('/alice_example_com/docs/plan.pdf')
        assert 'X-Amz-Signature' in query

    def test_url_lives_as_long_as_link(self, shared_file):
        """Test capability TTL is the remaining link lifetime."""
        grant = create_share_link(_ALICE, shared_file.id, ttl_days=1)

        resolved = resolve_share_link(_BOB, grant.share_id)

        expires = int(parse_qs(urlparse(resolved.url).query)['X-Amz-Expires'][0])
        assert 24 * 60 * 60 - 60 < expires <= 24 * 60 * 60

    def test_unknown_share(self, storage):
        """Test unknown tokens raise NotFoundError."""
        with pytest.raises(NotFoundError):
            resolve_share_link(_BOB, 'no-such-token')

    def test_expired_share(self, shared_file):
        """Test links past expiry are forbidden."""
        grant = create_share_link(_ALICE, shared_file.id)
        ShareLink.objects.filter(share_id=grant.share_id).update(
            expiry=timezone.now() - timedelta(seconds=1),
        )

        with pytest.raises(ShareLinkExpiredError) as exc_info:
            resolve_share_link(_BOB, grant.share_id)

        assert isinstance(exc_info.value, ForbiddenError)
        assert exc_info.value.share_id == grant.share_id

    def test_anonymous(self, shared_file):
        """Test resolving needs an identity."""
        grant = create_share_link(_ALICE, shared_file.id)

        with pytest.raises(UnauthorizedError):
            resolve_share_link('', grant.share_id)


@pytest.mark.django_db
class TestShareLinkModel:
    """Tests for ShareLink model."""

    def test_is_expired(self):
        """Test expiry is strict: valid up to and including expiry."""
        expiry = timezone.now()
        link = ShareLink(
            share_id='token',
            file_id='alice_example_com/a.txt',
            created_by=_ALICE,
            expiry=expiry,
        )

        assert not link.is_expired(expiry)
        assert link.is_expired(expiry + timedelta(microseconds=1))
        assert not link.is_expired(expiry - timedelta(days=1))

    def test_str(self):
        """Test ShareLink __str__ method."""
        link = ShareLink(
            share_id='token',
            file_id='alice_example_com/a.txt',
            created_by=_ALICE,
            expiry=timezone.now(),
        )

        assert str(link) == 'alice@example.com:alice_example_com/a.txt'
