"""Project the flat object namespace into folders, files and views over it.

Nothing here is cached: every call lists the tenant bucket and reads the
metadata of each object again, so cost grows with the number of objects.
"""

import logging
from dataclasses import dataclass
from typing import final

from django.conf import settings

from blobdrive.apps.files.infrastructure.metadata import (
    PATH_SEPARATOR,
    extract_filename,
    is_deleted,
)
from blobdrive.apps.files.infrastructure.storage import TenantStorage
from blobdrive.apps.files.logic.items import (
    FileItem,
    deleted_item,
    file_item,
    folder_item,
    is_folder_marker,
)

logger = logging.getLogger(__name__)


@final
@dataclass(frozen=True, slots=True)
class QuotaUsage:
    """Storage used by a tenant against its limit."""

    used_bytes: int
    quota_bytes: int

    def available_bytes(self) -> int:
        """Calculate available storage space.

        Returns:
            Bytes available, never negative.
        """
        return max(0, self.quota_bytes - self.used_bytes)

    def has_space_for(self, size_bytes: int) -> bool:
        """Check if there is enough space for a file of given size.

        Args:
            size_bytes: Size of file to check.

        Returns:
            True if there is enough space, False otherwise.
        """
        return self.used_bytes + size_bytes <= self.quota_bytes

    def as_dict(self) -> dict[str, int]:
        """Serialize for JSON responses."""
        return {
            'used_bytes': self.used_bytes,
            'quota_bytes': self.quota_bytes,
            'available_bytes': self.available_bytes(),
        }


def level_prefix(storage: TenantStorage, prefix: str = '') -> str:
    """Normalize a folder path or id into a listing prefix.

    '', 'docs', 'docs/' and 'alice_example_com/docs/' all work.

    Returns:
        Full key prefix ending with the separator.
    """
    relative = storage.relative(storage.qualify(prefix)).strip(PATH_SEPARATOR)
    if not relative:
        return storage.root_prefix
    return f'{storage.root_prefix}{relative}{PATH_SEPARATOR}'


def list_level(storage: TenantStorage, prefix: str = '') -> list[FileItem]:
    """List the direct children of a folder.

    Folders come from delimiter grouping of deeper keys; files are the
    objects right at this level. Soft-deleted objects and folder markers
    are left out, and so are folders holding nothing but soft-deleted
    objects. Every file carries a read capability.

    Args:
        storage: Tenant storage.
        prefix: Folder path relative to the tenant root, or a folder id.

    Returns:
        Folders first, then files, each group ordered by name.
    """
    full_prefix = level_prefix(storage, prefix)
    logger.debug('Listing level: %s/%s', storage.container, full_prefix)
    level = storage.list_hierarchy(full_prefix)

    folders = [
        folder_item(storage, sub_prefix)
        for sub_prefix in sorted(set(level.prefixes))
        if _has_live_objects(storage, sub_prefix)
    ]
    files = [
        file_item(storage, properties)
        for properties in level.objects
        if not is_deleted(properties.metadata)
        and not is_folder_marker(properties)
    ]
    files.sort(key=lambda item: item.name)
    return folders + files


def search(storage: TenantStorage, query: str) -> list[FileItem]:
    """Find live files whose name contains the query, case-insensitively.

    This scans the whole namespace.

    Args:
        storage: Tenant storage.
        query: Substring to look for in the final path segment.

    Returns:
        Matching files with read capabilities, blank query matches nothing.
    """
    needle = query.strip().lower()
    if not needle:
        return []
    logger.debug('Searching %s for %r', storage.container, needle)
    return [
        file_item(storage, properties)
        for properties in storage.list_flat(storage.root_prefix)
        if not is_deleted(properties.metadata)
        and not is_folder_marker(properties)
        and needle in extract_filename(properties.key).lower()
    ]


def recycle_bin(storage: TenantStorage) -> list[FileItem]:
    """List every soft-deleted object of the tenant.

    Deleted folder markers are reported as folders so a deleted folder can
    be restored as a whole.

    Returns:
        Deleted items, most recently deleted first.
    """
    items = [
        deleted_item(storage, properties)
        for properties in storage.list_flat(storage.root_prefix)
        if is_deleted(properties.metadata)
    ]
    items.sort(key=lambda item: item.deleted_date, reverse=True)
    return items


def quota(storage: TenantStorage) -> QuotaUsage:
    """Compute storage used by live objects against the configured quota.

    Soft-deleted objects do not count.

    Returns:
        Current QuotaUsage.
    """
    used_bytes = sum(
        properties.size
        for properties in storage.list_flat(storage.root_prefix)
        if not is_deleted(properties.metadata)
    )
    return QuotaUsage(
        used_bytes=used_bytes,
        quota_bytes=settings.DRIVE_QUOTA_BYTES,
    )


def _has_live_objects(storage: TenantStorage, prefix: str) -> bool:
    # Stops at the first live object, a live marker counts
    return any(
        not is_deleted(properties.metadata)
        for properties in storage.list_flat(prefix)
    )
