"""Business logic for the object lifecycle.

Objects live in the tenant bucket; folders are key prefixes, optionally
materialized by a marker object. Item ids handed out by listings are full
object keys (files, folder markers) or key prefixes ending with '/'
(inferred folders); relative paths are accepted wherever an id is.

Operations that touch several keys (rename, copy, move and anything on a
folder) are plain sequences of backend calls. There is no transaction:
a failure halfway leaves the keys processed so far in their new state.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import BinaryIO

from blobdrive.apps.files.exceptions import NotFoundError, QuotaExceededError
from blobdrive.apps.files.infrastructure.metadata import (
    DELETION_KEYS,
    FOLDER_MARKER,
    META_CREATED_DATE,
    META_DELETED,
    META_DELETED_DATE,
    META_IS_FOLDER,
    META_ORIGINAL_NAME,
    META_ORIGINAL_PATH,
    META_RENAMED_DATE,
    META_TENANT_FOLDER,
    META_UPLOAD_DATE,
    PATH_SEPARATOR,
    TRUE,
    detect_mime_type,
    extract_filename,
    extract_folder_path,
    folder_prefix,
    is_deleted,
    is_folder_id,
    merge_metadata,
    timestamp,
)
from blobdrive.apps.files.infrastructure.storage import (
    ObjectProperties,
    StoredObject,
    TenantStorage,
)
from blobdrive.apps.files.logic import registry_operations
from blobdrive.apps.files.logic.hierarchy import level_prefix, quota
from blobdrive.apps.files.logic.items import (
    FileItem,
    file_item,
    folder_item,
    is_folder_marker,
)
from blobdrive.apps.files.models import ItemType

logger = logging.getLogger(__name__)

_ROOT_ID = 'root'


@dataclass(frozen=True, slots=True)
class DownloadedFile:
    """Content of a downloaded object, ready to stream to a client."""

    content: bytes
    content_type: str
    file_name: str


def init_tenant(storage: TenantStorage) -> None:
    """Make sure the tenant bucket exists.

    Idempotent; safe to call from concurrent requests.
    """
    storage.ensure_container()


def put_object(
    storage: TenantStorage,
    path: str,
    content: bytes,
    content_type: str,
    metadata: Mapping[str, str] | None = None,
) -> str:
    """Write an object, replacing whatever is stored under its key.

    Returns:
        Full object key.
    """
    key = storage.qualify(path)
    storage.put(key, content, content_type, metadata or {})
    return key


def get_object(storage: TenantStorage, path: str) -> StoredObject:
    """Read content and properties of an object.

    Raises:
        NotFoundError: If the object does not exist.
    """
    return storage.fetch(storage.qualify(path))


def remove_object(storage: TenantStorage, path: str) -> None:
    """Hard-delete one object. Irreversible."""
    storage.delete(storage.qualify(path))


def upload_file(
    storage: TenantStorage,
    file_obj: BinaryIO,
    folder_path: str = '',
    file_name: str | None = None,
    content_type: str | None = None,
) -> FileItem:
    """Upload file into a folder and record it in the registry.

    Transaction safety: Upload to storage first, then write the registry
    row. If the registry write fails, the uploaded object is deleted
    from storage (rollback).

    Args:
        storage: Tenant storage.
        file_obj: File-like object to upload (e.g. an UploadedFile).
        folder_path: Destination folder, relative or as a folder id.
        file_name: Name of the new object, defaults to the file's name.
        content_type: MIME type sent by the client, detected from the
            name when missing.

    Returns:
        FileItem of the uploaded object.

    Raises:
        ValueError: If there is no usable file name.
        QuotaExceededError: If upload would exceed the tenant's quota.
    """
    name = extract_filename(file_name or getattr(file_obj, 'name', '') or '')
    if not name or name == FOLDER_MARKER:
        raise ValueError('A file name is required')

    content = file_obj.read()
    key = f'{destination_prefix(storage, folder_path)}{name}'
    usage = quota(storage)
    if not usage.has_space_for(len(content) - _replaced_size(storage, key)):
        logger.warning(
            'Quota exceeded for %s: need %d, have %d available',
            storage.owner,
            len(content),
            usage.available_bytes(),
        )
        raise QuotaExceededError(
            quota_bytes=usage.quota_bytes,
            used_bytes=usage.used_bytes,
            required_bytes=len(content),
        )

    mime_type = content_type or detect_mime_type(file_obj, name)
    storage.put(
        key,
        content,
        mime_type,
        {
            META_ORIGINAL_NAME: name,
            META_UPLOAD_DATE: timestamp(),
            META_TENANT_FOLDER: storage.tenant_folder,
        },
    )
    logger.info('File uploaded successfully: %s', key)

    try:
        registry_operations.record_object(
            storage,
            key,
            ItemType.FILE,
            mime_type=mime_type,
            size=len(content),
        )
    except Exception:
        logger.exception(
            'Registry write failed, rolling back storage upload: %s',
            key,
        )
        storage.delete(key)
        raise

    return file_item(storage, storage.properties(key))


def download_file(storage: TenantStorage, path: str) -> DownloadedFile:
    """Read an object for download.

    Raises:
        NotFoundError: If the object does not exist.
    """
    stored = get_object(storage, path)
    name = (
        stored.properties.metadata.get(META_ORIGINAL_NAME)
        or extract_filename(stored.properties.key)
    )
    return DownloadedFile(
        content=stored.content,
        content_type=stored.properties.content_type,
        file_name=name,
    )


def create_folder(storage: TenantStorage, path: str) -> FileItem:
    """Materialize a folder with a marker object.

    Creating an existing folder rewrites its marker.

    Args:
        storage: Tenant storage.
        path: Folder path relative to the tenant root, e.g. 'docs/reports'.

    Returns:
        FileItem of the folder.

    Raises:
        ValueError: If the path names the tenant root.
    """
    prefix = level_prefix(storage, path)
    if prefix == storage.root_prefix:
        raise ValueError('Folder path cannot be empty')

    key = f'{prefix}{FOLDER_MARKER}'
    storage.put(
        key,
        b'',
        'application/x-directory',
        {META_IS_FOLDER: TRUE, META_CREATED_DATE: timestamp()},
    )
    registry_operations.record_object(storage, key, ItemType.FOLDER)
    logger.info('Folder created: %s', prefix)
    return file_item(storage, storage.properties(key))


def soft_delete(storage: TenantStorage, item_id: str) -> list[str]:
    """Move an object, or every object of a folder, to the recycle bin.

    Content is kept; metadata gains ``deleted``, ``deleted-date`` and
    ``original-path`` (the parent folder at deletion time).

    Returns:
        Keys that were marked deleted.

    Raises:
        NotFoundError: If nothing exists under the id.
    """
    deleted_date = timestamp()
    marked: list[str] = []
    for properties in _expand(storage, item_id):
        if is_deleted(properties.metadata):
            continue
        storage.set_metadata(
            properties.key,
            merge_metadata(
                properties.metadata,
                {
                    META_DELETED: TRUE,
                    META_DELETED_DATE: deleted_date,
                    META_ORIGINAL_PATH: _original_path(storage, properties),
                },
            ),
            properties.content_type,
        )
        marked.append(properties.key)

    registry_operations.mark_deleted(storage, marked, deleted=True)
    logger.info('Soft-deleted %d object(s) under %s', len(marked), item_id)
    return marked


def restore(storage: TenantStorage, item_id: str) -> list[str]:
    """Take an object, or every deleted object of a folder, out of the bin.

    Exactly the three deletion keys are dropped; other metadata stays.

    Returns:
        Keys that were restored.

    Raises:
        NotFoundError: If nothing exists under the id.
    """
    restored: list[str] = []
    for properties in _expand(storage, item_id):
        if not is_deleted(properties.metadata):
            continue
        storage.set_metadata(
            properties.key,
            merge_metadata(properties.metadata, remove=DELETION_KEYS),
            properties.content_type,
        )
        restored.append(properties.key)

    registry_operations.mark_deleted(storage, restored, deleted=False)
    logger.info('Restored %d object(s) under %s', len(restored), item_id)
    return restored


def permanent_delete(storage: TenantStorage, item_id: str) -> list[str]:
    """Hard-delete an object or a whole folder. Irreversible.

    Returns:
        Keys that were deleted.

    Raises:
        NotFoundError: If nothing exists under the id.
    """
    removed: list[str] = []
    for properties in _expand(storage, item_id):
        storage.delete(properties.key)
        removed.append(properties.key)

    registry_operations.forget(storage, removed)
    logger.info('Permanently deleted %d object(s) under %s', len(removed), item_id)
    return removed


def purge(storage: TenantStorage, keys: Iterable[str]) -> list[str]:
    """Hard-delete exactly the given keys, without folder expansion.

    Used to empty the recycle bin: a deleted folder marker goes away
    without touching objects restored under it since.

    Returns:
        Keys that were deleted.
    """
    removed = [storage.qualify(key) for key in keys]
    for key in removed:
        storage.delete(key)
    registry_operations.forget(storage, removed)
    return removed


def rename(storage: TenantStorage, item_id: str, new_name: str) -> FileItem:
    """Give an object or folder a new final path segment.

    Each key is copied under its new name and the old key is deleted
    afterwards. Not atomic: a crash between the two steps leaves both keys
    present, a crash before the copy leaves only the old one.

    Args:
        storage: Tenant storage.
        item_id: Object key, folder id or relative path.
        new_name: New name, without separators.

    Returns:
        FileItem under the new name.

    Raises:
        ValueError: If the new name is empty or contains a separator.
        NotFoundError: If nothing exists under the id.
    """
    new_name = new_name.strip()
    if not new_name or PATH_SEPARATOR in new_name or new_name == FOLDER_MARKER:
        raise ValueError(f'Invalid name: {new_name!r}')

    key = storage.qualify(item_id)
    renamed_date = timestamp()

    if is_folder_id(key):
        objects = _expand(storage, key)
        old_prefix = folder_prefix(key)
        parent = extract_folder_path(old_prefix)
        new_prefix = f'{parent}{PATH_SEPARATOR}{new_name}{PATH_SEPARATOR}'
        if new_prefix == old_prefix:
            return folder_item(storage, new_prefix)
        _relocate(
            storage,
            objects,
            old_prefix,
            new_prefix,
            extra_metadata={
                META_ORIGINAL_NAME: new_name,
                META_RENAMED_DATE: renamed_date,
            },
            only_markers=True,
        )
        _remove_sources(storage, objects)
        logger.info('Folder renamed: %s -> %s', old_prefix, new_prefix)
        return folder_item(storage, new_prefix)

    source = storage.properties(key)
    parent = extract_folder_path(key)
    new_key = f'{parent}{PATH_SEPARATOR}{new_name}'
    if new_key == key:
        return file_item(storage, source)

    storage.copy_object(
        key,
        new_key,
        merge_metadata(
            source.metadata,
            {META_ORIGINAL_NAME: new_name, META_RENAMED_DATE: renamed_date},
        ),
        source.content_type,
    )
    registry_operations.record_object(
        storage,
        new_key,
        ItemType.FILE,
        mime_type=source.content_type,
        size=source.size,
    )
    _remove_sources(storage, [source])
    logger.info('File renamed: %s -> %s', key, new_key)
    return file_item(storage, storage.properties(new_key))


def copy(
    storage: TenantStorage,
    item_id: str,
    destination_folder_id: str,
) -> FileItem:
    """Copy an object or folder into another folder.

    The copy is server-side and keeps content type and metadata. The
    source is left untouched; soft-deleted objects of a folder are not
    copied. An existing object at the destination is overwritten.

    Args:
        storage: Tenant storage.
        item_id: Object key, folder id or relative path of the source.
        destination_folder_id: Folder id or path, '' or 'root' for the
            tenant root.

    Returns:
        FileItem of the copy.

    Raises:
        ValueError: If a folder would be copied into itself.
        NotFoundError: If nothing exists under the id.
    """
    return _transfer(storage, item_id, destination_folder_id, keep_source=True)


def move(
    storage: TenantStorage,
    item_id: str,
    destination_folder_id: str,
) -> FileItem:
    """Move an object or folder into another folder.

    Implemented as :func:`copy` followed by a hard delete of the source.
    Not atomic: a failure in between leaves two live copies.

    Raises:
        ValueError: If a folder would be moved into itself.
        NotFoundError: If nothing exists under the id.
    """
    return _transfer(storage, item_id, destination_folder_id, keep_source=False)


def destination_prefix(storage: TenantStorage, folder_id: str) -> str:
    """Resolve a destination folder id into a key prefix."""
    if not folder_id or folder_id == _ROOT_ID:
        return storage.root_prefix
    return level_prefix(storage, folder_prefix(storage.qualify(folder_id)))


def _transfer(
    storage: TenantStorage,
    item_id: str,
    destination_folder_id: str,
    keep_source: bool,
) -> FileItem:
    key = storage.qualify(item_id)
    target = destination_prefix(storage, destination_folder_id)
    verb = 'copied' if keep_source else 'moved'

    if is_folder_id(key):
        old_prefix = folder_prefix(key)
        new_prefix = f'{target}{extract_filename(old_prefix)}{PATH_SEPARATOR}'
        if new_prefix == old_prefix:
            return folder_item(storage, new_prefix)
        if new_prefix.startswith(old_prefix):
            raise ValueError(
                f'Cannot place folder {old_prefix} inside itself',
            )
        objects = [
            properties
            for properties in _expand(storage, key)
            if not keep_source or not is_deleted(properties.metadata)
        ]
        _relocate(storage, objects, old_prefix, new_prefix)
        if not keep_source:
            _remove_sources(storage, objects)
        logger.info('Folder %s: %s -> %s', verb, old_prefix, new_prefix)
        return folder_item(storage, new_prefix)

    source = storage.properties(key)
    new_key = f'{target}{extract_filename(key)}'
    if new_key == key:
        return file_item(storage, source)

    _relocate(
        storage,
        [source],
        f'{extract_folder_path(key)}{PATH_SEPARATOR}',
        target,
    )
    if not keep_source:
        _remove_sources(storage, [source])
    logger.info('File %s: %s -> %s', verb, key, new_key)
    return file_item(storage, storage.properties(new_key))


def _relocate(
    storage: TenantStorage,
    objects: Iterable[ObjectProperties],
    old_prefix: str,
    new_prefix: str,
    extra_metadata: Mapping[str, str] | None = None,
    only_markers: bool = False,
) -> None:
    """Server-side copy of objects from one key prefix to another.

    ``extra_metadata`` is merged into every copy, or only into folder
    markers when ``only_markers`` is set.
    """
    for properties in objects:
        new_key = f'{new_prefix}{properties.key[len(old_prefix):]}'
        marker = is_folder_marker(properties)
        updates = extra_metadata if marker or not only_markers else None
        storage.copy_object(
            properties.key,
            new_key,
            merge_metadata(properties.metadata, updates),
            properties.content_type,
        )
        registry_operations.record_object(
            storage,
            new_key,
            ItemType.FOLDER if marker else ItemType.FILE,
            mime_type='' if marker else properties.content_type,
            size=properties.size,
        )
        if is_deleted(properties.metadata):
            registry_operations.mark_deleted(storage, [new_key], deleted=True)


def _remove_sources(
    storage: TenantStorage,
    objects: Iterable[ObjectProperties],
) -> None:
    keys = [properties.key for properties in objects]
    for key in keys:
        storage.delete(key)
    registry_operations.forget(storage, keys)


def _expand(storage: TenantStorage, item_id: str) -> list[ObjectProperties]:
    """Resolve an item id into the objects it covers.

    A file id covers one object, a folder id every object under the
    folder's prefix, marker included.

    Raises:
        NotFoundError: If nothing exists under the id.
    """
    key = storage.qualify(item_id)
    if not is_folder_id(key):
        return [storage.properties(key)]

    prefix = folder_prefix(key)
    if prefix == storage.root_prefix:
        raise ValueError('The tenant root cannot be used as an item')
    if not prefix.startswith(storage.root_prefix):
        raise NotFoundError(f'{item_id} is outside the tenant namespace')
    objects = list(storage.list_flat(prefix))
    if not objects:
        raise NotFoundError(f'Folder {prefix} is empty or does not exist')
    return objects


def _original_path(storage: TenantStorage, properties: ObjectProperties) -> str:
    relative = storage.relative(properties.key)
    if is_folder_marker(properties):
        relative = extract_folder_path(relative)
    return extract_folder_path(relative)


def _replaced_size(storage: TenantStorage, key: str) -> int:
    """Bytes a write to ``key`` frees by overwriting a live object."""
    try:
        existing = storage.properties(key)
    except NotFoundError:
        return 0
    if is_deleted(existing.metadata):
        return 0
    return existing.size
