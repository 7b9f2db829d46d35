"""Tenant-scoped storage backend for S3-compatible object storage."""

import logging
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Final, final, override
from urllib.parse import quote

from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError
from django.conf import settings
from storages.backends.s3 import S3Storage

from blobdrive.apps.files.exceptions import (
    ConfigurationError,
    DriveError,
    NotFoundError,
    UnavailableError,
)
from blobdrive.apps.files.infrastructure.metadata import (
    PATH_SEPARATOR,
    container_name_for,
    decode_metadata,
    encode_metadata,
    tenant_folder_for,
)

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES: Final = frozenset((
    '404',
    'NoSuchBucket',
    'NoSuchKey',
    'NotFound',
))
_BUCKET_OWNED_CODE: Final = 'BucketAlreadyOwnedByYou'
_BUCKET_EXISTS_CODE: Final = 'BucketAlreadyExists'
_DEFAULT_REGION: Final = 'us-east-1'
_DEFAULT_CONTENT_TYPE: Final = 'application/octet-stream'


@dataclass(frozen=True, slots=True)
class ObjectProperties:
    """Properties and decoded user metadata of one stored object."""

    key: str
    size: int
    content_type: str
    last_modified: datetime
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class StoredObject:
    """Full object: content plus properties."""

    content: bytes
    properties: ObjectProperties


@dataclass(frozen=True, slots=True)
class HierarchyLevel:
    """One level of a delimiter listing.

    ``prefixes`` are the distinct sub-prefixes (inferred folders),
    ``objects`` the keys directly at this level.
    """

    prefixes: list[str]
    objects: list[ObjectProperties]


@final
class TenantStorage(S3Storage):
    """S3 storage bound to one tenant's bucket.

    Extends django-storages S3Storage with:
    - idempotent, race-tolerant bucket creation
    - object operations carrying user metadata
    - hierarchy and flat listings that re-read metadata of every object
    - classification of backend errors into NotFound / Unavailable /
      Configuration

    Keys inside the bucket start with the tenant folder; :meth:`qualify`
    adds it, :meth:`relative` strips it.
    """

    def __init__(
        self,
        container: str,
        tenant_folder: str,
        owner: str,
        principal: str | None = None,
        **options: Any,
    ) -> None:
        """Initialize storage for one bucket.

        Args:
            container: Bucket name (tenant namespace).
            tenant_folder: First key segment of the tenant's objects.
            owner: Identity owning the bucket.
            principal: Identity on whose behalf requests are made,
                defaults to the owner.
            options: S3Storage options (credentials, endpoint, region).
        """
        self.container = container
        self.tenant_folder = tenant_folder
        self.owner = owner
        self.principal = principal or owner
        self._init_lock = threading.Lock()
        self._container_ready = False
        super().__init__(
            bucket_name=container,
            file_overwrite=True,
            default_acl=None,
            querystring_auth=True,
            **options,
        )

    @classmethod
    def for_identity(
        cls,
        identity: str,
        principal: str | None = None,
    ) -> 'TenantStorage':
        """Build storage for the namespace of an identity.

        Args:
            identity: Owner of the namespace.
            principal: Acting identity, defaults to the owner.

        Returns:
            TenantStorage configured from ``settings.DRIVE_STORAGE``.
        """
        options = dict(settings.DRIVE_STORAGE)
        prefix = options.pop('container_prefix')
        return cls(
            container=container_name_for(identity, prefix),
            tenant_folder=tenant_folder_for(identity),
            owner=identity,
            principal=principal,
            **options,
        )

    @property
    def root_prefix(self) -> str:
        """Key prefix of every object owned by the tenant."""
        return f'{self.tenant_folder}{PATH_SEPARATOR}'

    def qualify(self, path: str = '') -> str:
        """Turn a relative path into a full object key.

        Paths already starting with the tenant folder are returned
        unchanged, so qualifying twice is harmless.

        Args:
            path: Relative path (e.g., 'docs/report.pdf') or full key.

        Returns:
            Object key (e.g., 'alice_example_com/docs/report.pdf').
        """
        if path == self.tenant_folder or path.startswith(self.root_prefix):
            return path
        relative = path.lstrip(PATH_SEPARATOR)
        if not relative:
            return self.tenant_folder
        return f'{self.root_prefix}{relative}'

    def relative(self, key: str) -> str:
        """Strip the tenant folder from an object key."""
        if key.startswith(self.root_prefix):
            return key[len(self.root_prefix):]
        if key == self.tenant_folder:
            return ''
        return key

    def ensure_container(self) -> None:
        """Create the tenant bucket if it does not exist yet.

        Safe to call concurrently: threads sharing this instance serialize
        on a lock and only the first one talks to the backend; other
        processes racing on the same bucket are tolerated by accepting
        the "already exists" answers for a bucket we can access.

        Raises:
            ConfigurationError: If credentials are missing.
            UnavailableError: If the backend refuses the bucket.
        """
        if self._container_ready:
            return
        with self._init_lock:
            if self._container_ready:
                return
            self._create_container()
            self._container_ready = True

    def put(
        self,
        key: str,
        content: bytes,
        content_type: str,
        metadata: Mapping[str, str],
    ) -> None:
        """Write object content and metadata, replacing any existing object.

        Args:
            key: Full object key.
            content: Object bytes.
            content_type: MIME type stored with the object.
            metadata: User metadata.
        """
        logger.info('Uploading object to storage: %s/%s', self.container, key)
        with self._backend_errors('put', key):
            self.bucket.Object(key).put(
                Body=content,
                ContentType=content_type or _DEFAULT_CONTENT_TYPE,
                Metadata=encode_metadata(metadata),
            )

    def fetch(self, key: str) -> StoredObject:
        """Read object content and properties.

        Raises:
            NotFoundError: If the bucket or key does not exist.
        """
        logger.debug('Downloading object: %s/%s', self.container, key)
        with self._backend_errors('get', key):
            response = self.bucket.Object(key).get()
            content = response['Body'].read()
        return StoredObject(
            content=content,
            properties=self._properties_from(key, response),
        )

    def properties(self, key: str) -> ObjectProperties:
        """Read object properties and metadata without content.

        Raises:
            NotFoundError: If the bucket or key does not exist.
        """
        with self._backend_errors('head', key):
            response = self.connection.meta.client.head_object(
                Bucket=self.bucket_name,
                Key=key,
            )
        return self._properties_from(key, response)

    def set_metadata(
        self,
        key: str,
        metadata: Mapping[str, str],
        content_type: str,
    ) -> None:
        """Replace the metadata of an object, keeping its content.

        S3 has no metadata-only write; the object is copied onto itself
        with the new metadata.

        Args:
            key: Full object key.
            metadata: Complete new metadata map.
            content_type: Content type to keep on the object.
        """
        logger.debug('Writing metadata: %s/%s', self.container, key)
        self.copy_object(key, key, metadata, content_type)

    def copy_object(
        self,
        source: str,
        destination: str,
        metadata: Mapping[str, str],
        content_type: str,
    ) -> None:
        """Server-side copy of an object under new metadata.

        Args:
            source: Source key.
            destination: Destination key (may equal source).
            metadata: Metadata of the destination object.
            content_type: Content type of the destination object.
        """
        with self._backend_errors('copy', source):
            self.bucket.Object(destination).copy_from(
                CopySource={'Bucket': self.bucket_name, 'Key': source},
                Metadata=encode_metadata(metadata),
                MetadataDirective='REPLACE',
                ContentType=content_type or _DEFAULT_CONTENT_TYPE,
            )

    @override
    def delete(self, name: str) -> None:
        """Delete object from S3 with error handling and logging.

        Args:
            name: Full object key.
        """
        logger.info('Deleting object from storage: %s/%s', self.container, name)
        with self._backend_errors('delete', name):
            self.connection.meta.client.delete_object(
                Bucket=self.bucket_name,
                Key=name,
            )

    def list_hierarchy(self, prefix: str) -> HierarchyLevel:
        """List one level below a prefix using the '/' delimiter.

        Metadata of each object is read afresh, there is no index.

        Args:
            prefix: Key prefix ending with the delimiter.

        Returns:
            Sub-prefixes and direct objects.
        """
        prefixes: list[str] = []
        objects: list[ObjectProperties] = []
        with self._backend_errors('list', prefix):
            for page in self._pages(prefix, delimiter=PATH_SEPARATOR):
                prefixes.extend(
                    entry['Prefix'] for entry in page.get('CommonPrefixes', ())
                )
                for entry in page.get('Contents', ()):
                    found = self._properties_if_present(entry['Key'])
                    if found is not None:
                        objects.append(found)
        return HierarchyLevel(prefixes=prefixes, objects=objects)

    def list_flat(self, prefix: str) -> Iterator[ObjectProperties]:
        """Iterate over every object below a prefix, with metadata.

        Cost is one listing page per thousand keys plus one HEAD per key.
        """
        with self._backend_errors('list', prefix):
            for page in self._pages(prefix):
                for entry in page.get('Contents', ()):
                    found = self._properties_if_present(entry['Key'])
                    if found is not None:
                        yield found

    @override
    def url(
        self,
        name: str,
        parameters: dict[str, Any] | None = None,
        expire: int | None = None,
        http_method: str | None = None,
        signed: bool = True,
    ) -> str:
        """Get a URL for an object.

        Args:
            name: Full object key.
            parameters: Extra GetObject parameters for the presigner.
            expire: Lifetime of a signed URL in seconds.
            http_method: HTTP method the URL is valid for.
            signed: Presign the URL; when False the plain path-style
                object URL is returned.

        Returns:
            Object URL.
        """
        if signed:
            return super().url(name, parameters, expire, http_method)
        endpoint = self.connection.meta.client.meta.endpoint_url
        return '{endpoint}/{bucket}/{key}'.format(
            endpoint=endpoint.rstrip(PATH_SEPARATOR),
            bucket=self.bucket_name,
            key=quote(name),
        )

    def _create_container(self) -> None:
        client = self.connection.meta.client
        params: dict[str, Any] = {'Bucket': self.bucket_name}
        region = self.region_name or _DEFAULT_REGION
        if region != _DEFAULT_REGION:
            params['CreateBucketConfiguration'] = {
                'LocationConstraint': region,
            }

        try:
            with self._backend_errors('create container', self.bucket_name):
                try:
                    client.create_bucket(**params)
                except ClientError as error:
                    code = error.response.get('Error', {}).get('Code', '')
                    if code == _BUCKET_OWNED_CODE:
                        return
                    if code != _BUCKET_EXISTS_CODE:
                        raise
                    # Someone created it first; usable only if it is ours
                    client.head_bucket(Bucket=self.bucket_name)
        except DriveError:
            logger.exception(
                'Failed to create container: %s',
                self.bucket_name,
            )
            raise
        logger.info(
            'Container ready: %s (tenant folder: %s)',
            self.bucket_name,
            self.tenant_folder,
        )

    def _pages(
        self,
        prefix: str,
        delimiter: str | None = None,
    ) -> Iterator[dict[str, Any]]:
        paginator = self.connection.meta.client.get_paginator(
            'list_objects_v2',
        )
        params: dict[str, Any] = {'Bucket': self.bucket_name, 'Prefix': prefix}
        if delimiter:
            params['Delimiter'] = delimiter
        yield from paginator.paginate(**params)

    def _properties_if_present(self, key: str) -> ObjectProperties | None:
        # Listed keys can vanish before their HEAD under concurrent deletes
        try:
            return self.properties(key)
        except NotFoundError:
            logger.debug('Object vanished during listing: %s', key)
            return None

    def _properties_from(
        self,
        key: str,
        response: Mapping[str, Any],
    ) -> ObjectProperties:
        return ObjectProperties(
            key=key,
            size=response.get('ContentLength', 0),
            content_type=response.get('ContentType') or _DEFAULT_CONTENT_TYPE,
            last_modified=response.get('LastModified') or datetime.now(tz=UTC),
            metadata=decode_metadata(response.get('Metadata')),
        )

    @contextmanager
    def _backend_errors(self, operation: str, key: str) -> Iterator[None]:
        """Translate boto errors raised inside the block.

        Missing bucket or key becomes NotFoundError, missing credentials
        ConfigurationError, everything else UnavailableError with the
        backend's message.
        """
        try:
            yield
        except ClientError as error:
            details = error.response.get('Error', {})
            code = str(details.get('Code', ''))
            status = error.response.get(
                'ResponseMetadata',
                {},
            ).get('HTTPStatusCode')
            if code in _NOT_FOUND_CODES or status == 404:
                raise NotFoundError(
                    f'{key} not found in {self.bucket_name} ({code})',
                ) from error
            logger.exception('Storage %s failed: %s', operation, key)
            raise UnavailableError(
                f'Storage {operation} failed for {key}: '
                f'{details.get("Message") or error}',
            ) from error
        except NoCredentialsError as error:
            raise ConfigurationError(
                f'Storage credentials are not configured: {error}',
            ) from error
        except BotoCoreError as error:
            logger.exception('Storage %s failed: %s', operation, key)
            raise UnavailableError(
                f'Storage {operation} failed for {key}: {error}',
            ) from error
