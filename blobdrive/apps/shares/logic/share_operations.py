"""Business logic for share links."""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Final

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from blobdrive.apps.files.exceptions import (
    NotFoundError,
    ShareLinkExpiredError,
    UnauthorizedError,
)
from blobdrive.apps.files.infrastructure.metadata import extract_filename
from blobdrive.apps.files.infrastructure.signing import SigningEngine
from blobdrive.apps.files.infrastructure.tenants import (
    get_shared_access_storage,
    tenants,
)
from blobdrive.apps.files.models import FileRecord
from blobdrive.apps.shares.models import AccessType, ShareLink

logger = logging.getLogger(__name__)

# 32 random bytes, 43 URL-safe characters
_TOKEN_BYTES: Final = 32


@dataclass(frozen=True, slots=True)
class ShareGrant:
    """Result of creating a share link."""

    share_url: str
    share_id: str
    expiry: datetime

    def as_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        return {
            'share_url': self.share_url,
            'share_id': self.share_id,
            'expiry': self.expiry.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class ResolvedShare:
    """Read access handed out for a valid share link."""

    file_id: str
    name: str
    url: str
    expiry: datetime

    def as_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        return {
            'file_id': self.file_id,
            'name': self.name,
            'url': self.url,
            'expiry': self.expiry.isoformat(),
        }


def share_url_for(share_id: str) -> str:
    """Public URL of a share link in the client application."""
    return '{app_url}/share/{share_id}'.format(
        app_url=settings.DRIVE_APP_URL.rstrip('/'),
        share_id=share_id,
    )


def create_share_link(
    identity: str,
    file_id: str,
    ttl_days: int | None = None,
) -> ShareGrant:
    """Create a share link for an object owned by the caller.

    Ownership is checked against the file registry: the object must be
    recorded under the caller's identity and not be soft-deleted.

    Args:
        identity: Caller identity, the owner of the object.
        file_id: Object key or path relative to the caller's root.
        ttl_days: Link lifetime, defaults to
            ``settings.DRIVE_SHARE_DEFAULT_EXPIRY_DAYS``.

    Returns:
        ShareGrant with the public URL.

    Raises:
        UnauthorizedError: If there is no identity.
        ValueError: If the lifetime is not positive.
        NotFoundError: If the caller owns no live object under the id.
    """
    if not identity:
        raise UnauthorizedError('Authentication required to share files')
    if ttl_days is None:
        ttl_days = settings.DRIVE_SHARE_DEFAULT_EXPIRY_DAYS
    if ttl_days <= 0:
        raise ValueError('Share link lifetime must be at least one day')

    key = tenants.get(identity).qualify(file_id)
    owned = FileRecord.objects.filter(
        key=key,
        owner_email=identity,
        is_deleted=False,
    ).exists()
    if not owned:
        raise NotFoundError(f'File not found: {file_id}')

    expiry = timezone.now() + timedelta(days=ttl_days)
    with transaction.atomic():
        link = ShareLink.objects.create(
            share_id=secrets.token_urlsafe(_TOKEN_BYTES),
            file_id=key,
            created_by=identity,
            access_type=AccessType.VIEW,
            requires_auth=True,
            expiry=expiry,
        )
    logger.info(
        'Share link created for %s by %s, expires %s',
        key,
        identity,
        expiry.isoformat(),
    )
    return ShareGrant(
        share_url=share_url_for(link.share_id),
        share_id=link.share_id,
        expiry=link.expiry,
    )


def resolve_share_link(identity: str, share_id: str) -> ResolvedShare:
    """Turn a share token into a fresh read capability.

    Any authenticated identity may resolve a link; the owner is not
    re-checked. The capability is issued for the owner's bucket under the
    neutral shared-access principal and lives as long as the link has
    left.

    Args:
        identity: Caller identity, '' when anonymous.
        share_id: Public share token.

    Returns:
        ResolvedShare with a presigned URL.

    Raises:
        UnauthorizedError: If the caller is anonymous.
        NotFoundError: If no link has this token.
        ShareLinkExpiredError: If the link is past its expiry.
    """
    if not identity:
        raise UnauthorizedError('Authentication required to open share links')

    link = ShareLink.objects.filter(share_id=share_id).first()
    if link is None:
        raise NotFoundError('Share link not found')

    now = timezone.now()
    if link.is_expired(now):
        logger.info('Expired share link requested by %s', identity)
        raise ShareLinkExpiredError(share_id, link.expiry)

    storage = get_shared_access_storage(link.created_by)
    remaining_seconds = int((link.expiry - now).total_seconds())
    url = SigningEngine.from_settings().issue_read_capability(
        storage,
        link.file_id,
        remaining_seconds,
    )
    logger.debug(
        'Share link resolved for %s: %s as %s',
        identity,
        link.file_id,
        storage.principal,
    )
    return ResolvedShare(
        file_id=link.file_id,
        name=extract_filename(link.file_id),
        url=url,
        expiry=link.expiry,
    )
