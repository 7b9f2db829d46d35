"""Business logic for tagging objects."""

import logging
from collections.abc import Iterable

from blobdrive.apps.files.infrastructure.metadata import (
    META_TAGS,
    META_TAGS_UPDATED,
    join_tags,
    merge_metadata,
    timestamp,
)
from blobdrive.apps.files.infrastructure.storage import TenantStorage
from blobdrive.apps.files.logic.items import FileItem, file_item

logger = logging.getLogger(__name__)


def set_tags(
    storage: TenantStorage,
    path: str,
    tags: Iterable[str],
) -> FileItem:
    """Replace the tags of an object.

    Metadata is read fresh from the backend and merged, so soft-delete
    state and other keys survive. Concurrent writers race last-write-wins.

    Args:
        storage: Tenant storage.
        path: Relative path or full key of the object.
        tags: New tags; blanks are dropped and entries trimmed.

    Returns:
        Updated FileItem.

    Raises:
        NotFoundError: If the object does not exist.
    """
    key = storage.qualify(path)
    current = storage.properties(key)
    metadata = merge_metadata(
        current.metadata,
        {META_TAGS: join_tags(tags), META_TAGS_UPDATED: timestamp()},
    )
    storage.set_metadata(key, metadata, current.content_type)
    logger.info('Tags updated: %s -> %s', key, metadata[META_TAGS])
    return file_item(storage, storage.properties(key))
