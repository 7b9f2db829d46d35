"""File item projection.

A FileItem is what listings, searches and mutations hand back to callers.
It is derived from object keys and metadata on every call and never
stored.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from django.conf import settings

from blobdrive.apps.files.infrastructure.metadata import (
    FOLDER_MARKER,
    META_DELETED_DATE,
    META_IS_FOLDER,
    META_ORIGINAL_PATH,
    TRUE,
    extract_filename,
    extract_folder_path,
    parse_tags,
    parse_timestamp,
)
from blobdrive.apps.files.infrastructure.signing import SigningEngine
from blobdrive.apps.files.infrastructure.storage import (
    ObjectProperties,
    TenantStorage,
)
from blobdrive.apps.files.models import ItemType


@dataclass(frozen=True, slots=True)
class FileItem:
    """File or folder as seen by a client."""

    id: str  # noqa: WPS125
    name: str
    type: ItemType  # noqa: WPS125
    size: int
    last_modified: datetime
    path: str
    tags: tuple[str, ...] = ()
    download_url: str | None = None
    deleted_date: datetime | None = None
    original_path: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        payload: dict[str, Any] = {
            'id': self.id,
            'name': self.name,
            'type': str(self.type),
            'size': self.size,
            'last_modified': self.last_modified.isoformat(),
            'path': self.path,
            'tags': list(self.tags),
        }
        if self.download_url is not None:
            payload['download_url'] = self.download_url
        if self.deleted_date is not None:
            payload['deleted_date'] = self.deleted_date.isoformat()
        if self.original_path is not None:
            payload['original_path'] = self.original_path
        return payload


def is_folder_marker(properties: ObjectProperties) -> bool:
    """Tell whether an object is a folder marker."""
    return (
        properties.metadata.get(META_IS_FOLDER) == TRUE
        or extract_filename(properties.key) == FOLDER_MARKER
    )


def read_url(storage: TenantStorage, key: str) -> str:
    """Issue a short-lived read capability for a listed object."""
    return SigningEngine.from_settings().issue_read_capability(
        storage,
        key,
        settings.DRIVE_READ_URL_TTL,
    )


def file_item(
    storage: TenantStorage,
    properties: ObjectProperties,
    with_url: bool = True,
) -> FileItem:
    """Project a stored object into a file item.

    Folder markers are projected as the folder they materialize.

    Args:
        storage: Tenant storage holding the object.
        properties: Object properties with metadata.
        with_url: Attach a read capability.

    Returns:
        FileItem for the object.
    """
    relative_path = storage.relative(properties.key)
    if is_folder_marker(properties):
        folder_path = extract_folder_path(relative_path)
        return FileItem(
            id=properties.key,
            name=extract_filename(folder_path),
            type=ItemType.FOLDER,
            size=0,
            last_modified=properties.last_modified,
            path=extract_folder_path(folder_path),
        )
    return FileItem(
        id=properties.key,
        name=extract_filename(relative_path),
        type=ItemType.FILE,
        size=properties.size,
        last_modified=properties.last_modified,
        path=extract_folder_path(relative_path),
        tags=tuple(parse_tags(properties.metadata)),
        download_url=read_url(storage, properties.key) if with_url else None,
    )


def folder_item(storage: TenantStorage, prefix: str) -> FileItem:
    """Project an inferred folder (a key prefix) into a folder item.

    Args:
        storage: Tenant storage.
        prefix: Folder key prefix, e.g. 'alice_example_com/docs/'.

    Returns:
        FileItem of type folder.
    """
    relative_path = storage.relative(prefix)
    return FileItem(
        id=prefix,
        name=extract_filename(relative_path),
        type=ItemType.FOLDER,
        size=0,
        last_modified=datetime.now(tz=UTC),
        path=extract_folder_path(relative_path),
    )


def deleted_item(
    storage: TenantStorage,
    properties: ObjectProperties,
) -> FileItem:
    """Project a soft-deleted object into a recycle-bin item.

    ``deleted_date`` and ``original_path`` come from metadata; when they
    are absent the modification time and the parent path stand in.
    """
    item = file_item(storage, properties)
    metadata = properties.metadata
    deleted_date = parse_timestamp(metadata.get(META_DELETED_DATE))
    return FileItem(
        id=item.id,
        name=item.name,
        type=item.type,
        size=item.size,
        last_modified=item.last_modified,
        path=item.path,
        tags=item.tags,
        download_url=item.download_url,
        deleted_date=deleted_date or properties.last_modified,
        original_path=metadata.get(META_ORIGINAL_PATH) or item.path,
    )
