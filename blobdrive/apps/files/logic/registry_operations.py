"""Keep the FileRecord mirror in step with the object store.

Rows here only back the ownership check of share-link creation; the
object store stays authoritative for everything else.
"""

import logging
from collections.abc import Iterable

from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from blobdrive.apps.files.infrastructure.metadata import (
    extract_filename,
    extract_folder_path,
)
from blobdrive.apps.files.infrastructure.storage import TenantStorage
from blobdrive.apps.files.models import FileRecord, ItemType

logger = logging.getLogger(__name__)


def record_object(
    storage: TenantStorage,
    key: str,
    item_type: ItemType,
    mime_type: str = '',
    size: int = 0,
) -> FileRecord:
    """Create or refresh the registry row of an object.

    Args:
        storage: Tenant storage holding the object.
        key: Full object key.
        item_type: File or folder.
        mime_type: Content type of the object.
        size: Object size in bytes.

    Returns:
        Saved FileRecord.
    """
    parent = extract_folder_path(key)
    if item_type == ItemType.FOLDER:
        # Marker keys look like <folder>/.folder
        name = extract_filename(parent)
        parent = extract_folder_path(parent)
    else:
        name = extract_filename(key)

    with transaction.atomic():
        record, created = FileRecord.objects.update_or_create(
            owner_email=storage.owner,
            key=key,
            defaults={
                'name': name,
                'type': item_type,
                'mime_type': mime_type,
                'size': size,
                'parent_id': parent if parent != storage.tenant_folder else None,
                'storage_path': f'{storage.container}/{key}',
                'is_deleted': False,
            },
        )
    logger.debug(
        'File record %s: %s',
        'created' if created else 'updated',
        key,
    )
    return record


def mark_deleted(
    storage: TenantStorage,
    keys: Iterable[str],
    deleted: bool,
) -> int:
    """Flip the soft-delete flag of the tenant's registry rows.

    Returns:
        Number of rows updated.
    """
    return _owned_by(storage, keys).update(
        is_deleted=deleted,
        modified_at=timezone.now(),
    )


def forget(storage: TenantStorage, keys: Iterable[str]) -> int:
    """Remove the tenant's registry rows of hard-deleted objects.

    Returns:
        Number of rows deleted.
    """
    deleted_count, _ = _owned_by(storage, keys).delete()
    return deleted_count


def _owned_by(
    storage: TenantStorage,
    keys: Iterable[str],
) -> QuerySet[FileRecord]:
    return FileRecord.objects.filter(
        owner_email=storage.owner,
        key__in=list(keys),
    )
