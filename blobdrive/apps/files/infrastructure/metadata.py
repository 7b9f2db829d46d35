"""Object key conventions and the object metadata channel.

Object storage is flat: a key looks like ``<tenantFolder>/<relativePath>``
and folders only exist as shared key prefixes or as zero-length marker
objects. Soft-delete state and tags live in the object's user metadata,
which S3 returns with lowercased keys and only transports ASCII, hence the
hyphenated lowercase keys and the percent-encoding below.
"""

import hashlib
import mimetypes
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import BinaryIO, Final
from urllib.parse import quote, unquote

PATH_SEPARATOR: Final = '/'

# Zero-length object that materializes an otherwise empty folder
FOLDER_MARKER: Final = '.folder'

# Keys of the object metadata map
META_DELETED: Final = 'deleted'
META_DELETED_DATE: Final = 'deleted-date'
META_ORIGINAL_PATH: Final = 'original-path'
META_TAGS: Final = 'tags'
META_TAGS_UPDATED: Final = 'tags-updated'
META_ORIGINAL_NAME: Final = 'original-name'
META_UPLOAD_DATE: Final = 'upload-date'
META_RENAMED_DATE: Final = 'renamed-date'
META_IS_FOLDER: Final = 'is-folder'
META_CREATED_DATE: Final = 'created-date'
META_TENANT_FOLDER: Final = 'tenant-folder'

DELETION_KEYS: Final = (META_DELETED, META_DELETED_DATE, META_ORIGINAL_PATH)

TRUE: Final = 'true'

_TAG_SEPARATOR: Final = ','
_METADATA_SAFE_CHARS: Final = " !#$&'()*+,-./:;=?@[]_~"
_CONTAINER_HASH_LENGTH: Final = 40
_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'


def container_name_for(identity: str, prefix: str) -> str:
    """Derive the tenant namespace (bucket name) for an identity.

    The identity is hashed as given, so two different identities never
    share a bucket and the same identity always maps to the same one.
    The result is a valid S3 bucket name for any prefix made of
    lowercase letters, digits and hyphens.

    Args:
        identity: Stable caller identifier (e.g. an email address).
        prefix: Deployment-wide bucket name prefix.

    Returns:
        Bucket name like ``drive-3f1c...``.
    """
    digest = hashlib.sha256(identity.encode('utf-8')).hexdigest()
    return f'{prefix}-{digest[:_CONTAINER_HASH_LENGTH]}'


def tenant_folder_for(identity: str) -> str:
    """Derive the first key segment used inside the tenant bucket.

    Example: 'alice@example.com' -> 'alice_example_com'
    """
    return identity.replace('@', '_').replace('.', '_')


def encode_metadata(metadata: Mapping[str, str]) -> dict[str, str]:
    """Prepare a metadata map for the ASCII-only header channel.

    Args:
        metadata: Plain metadata values.

    Returns:
        Copy with lowercase keys and percent-encoded values.
    """
    return {
        key.lower(): quote(str(value), safe=_METADATA_SAFE_CHARS)
        for key, value in metadata.items()
    }


def decode_metadata(metadata: Mapping[str, str] | None) -> dict[str, str]:
    """Reverse :func:`encode_metadata` on a map read from storage."""
    if not metadata:
        return {}
    return {key.lower(): unquote(value) for key, value in metadata.items()}


def merge_metadata(
    current: Mapping[str, str],
    updates: Mapping[str, str] | None = None,
    remove: Iterable[str] = (),
) -> dict[str, str]:
    """Merge updates into a freshly read metadata map.

    Sibling keys are always preserved; only ``remove`` keys are dropped.

    Args:
        current: Metadata as currently stored.
        updates: Keys to add or overwrite.
        remove: Keys to drop.

    Returns:
        New metadata map.
    """
    merged = dict(current)
    for key in remove:
        merged.pop(key, None)
    if updates:
        merged.update(updates)
    return merged


def is_deleted(metadata: Mapping[str, str]) -> bool:
    """Check the soft-delete flag."""
    return metadata.get(META_DELETED) == TRUE


def parse_tags(metadata: Mapping[str, str]) -> list[str]:
    """Split the comma-joined ``tags`` value into a list."""
    raw_tags = metadata.get(META_TAGS, '')
    return [tag for tag in raw_tags.split(_TAG_SEPARATOR) if tag]


def join_tags(tags: Iterable[str]) -> str:
    """Join tags for storage, dropping blanks and surrounding spaces."""
    cleaned = (tag.strip() for tag in tags)
    return _TAG_SEPARATOR.join(tag for tag in cleaned if tag)


def timestamp() -> str:
    """Current UTC time in ISO 8601, as stored in metadata."""
    return datetime.now(tz=UTC).isoformat()


def parse_timestamp(raw_value: str | None) -> datetime | None:
    """Parse a timestamp written by :func:`timestamp`.

    Returns:
        Aware datetime, or None when the value is missing or malformed.
    """
    if not raw_value:
        return None
    try:
        parsed = datetime.fromisoformat(raw_value.replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed


def detect_mime_type(file_obj: BinaryIO | None, filename: str) -> str:
    """Detect MIME type from file.

    Uses Python's built-in mimetypes module to guess MIME type
    from filename extension.

    Args:
        file_obj: File-like object (not used in basic implementation).
        filename: Filename with extension.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return _DEFAULT_MIME_TYPE
    return mime_type


def extract_filename(storage_path: str) -> str:
    """Extract the final segment of a key or relative path.

    Args:
        storage_path: Path (e.g., 'alice/docs/file.pdf').

    Returns:
        Filename (e.g., 'file.pdf').
    """
    return storage_path.rstrip(PATH_SEPARATOR).rsplit(PATH_SEPARATOR, 1)[-1]


def extract_folder_path(storage_path: str) -> str:
    """Extract everything before the final segment.

    Args:
        storage_path: Path (e.g., 'docs/reports/file.pdf').

    Returns:
        Folder path (e.g., 'docs/reports'), empty for top-level names.
    """
    normalized = storage_path.rstrip(PATH_SEPARATOR)
    if PATH_SEPARATOR not in normalized:
        return ''
    return normalized.rsplit(PATH_SEPARATOR, 1)[0]


def is_folder_id(item_id: str) -> bool:
    """Tell whether an item id names a folder rather than a file.

    Folder ids are hierarchy prefixes (trailing separator) or keys of
    folder marker objects.
    """
    return (
        item_id.endswith(PATH_SEPARATOR)
        or extract_filename(item_id) == FOLDER_MARKER
    )


def folder_prefix(item_id: str) -> str:
    """Turn a folder id into the key prefix of its contents.

    Example: 'alice/docs/.folder' -> 'alice/docs/'
    """
    trimmed = item_id.rstrip(PATH_SEPARATOR)
    if extract_filename(trimmed) == FOLDER_MARKER:
        trimmed = extract_folder_path(trimmed)
    if not trimmed:
        return ''
    return f'{trimmed}{PATH_SEPARATOR}'
