"""Request signatures and time-limited read capabilities."""

import base64
import hashlib
import hmac
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Final, final

from django.conf import settings

from blobdrive.apps.files.exceptions import ConfigurationError

if TYPE_CHECKING:
    from storages.backends.s3 import S3Storage

logger = logging.getLogger(__name__)

# Headers that take a fixed line in the string to sign, in this order
_CONTENT_HEADERS: Final = ('content-md5', 'content-type', 'content-length')
_AMZ_HEADER_PREFIX: Final = 'x-amz-'
_AUTHORIZATION_SCHEME: Final = 'BlobDrive'

# SigV4 presigned URLs are rejected past seven days
MAX_READ_CAPABILITY_SECONDS: Final = 7 * 24 * 60 * 60


@final
class SigningEngine:
    """Signs storage requests and issues read capabilities.

    Two kinds of output:
    - shared-key signatures (HMAC-SHA256 over a canonical request) for
      callers that talk to storage without boto3
    - presigned GET URLs that let a browser fetch one object until a
      deadline without the caller's own credentials

    Read capabilities fail closed: without credentials the plain object
    URL is returned, which the backend may refuse to serve.
    """

    def __init__(
        self,
        access_key: str | None,
        secret_key: str | None,
    ) -> None:
        """Initialize the engine.

        Args:
            access_key: Storage access key id.
            secret_key: Storage secret used as the HMAC key.
        """
        self._access_key = access_key
        self._secret_key = secret_key

    @classmethod
    def from_settings(cls) -> 'SigningEngine':
        """Build an engine from ``settings.DRIVE_STORAGE``."""
        options: dict[str, Any] = settings.DRIVE_STORAGE
        return cls(
            access_key=options.get('access_key'),
            secret_key=options.get('secret_key'),
        )

    @property
    def has_credentials(self) -> bool:
        """Whether both halves of the signing credential are set."""
        return bool(self._access_key and self._secret_key)

    def string_to_sign(
        self,
        method: str,
        resource: str,
        headers: Mapping[str, str | int] | None = None,
    ) -> str:
        """Build the canonical description of a storage request.

        Layout, one item per line: upper-cased method, the content headers
        in fixed order (empty when absent), every ``x-amz-*`` header as
        ``name:value`` sorted case-insensitively, then the resource path.

        Args:
            method: HTTP method.
            resource: Canonical resource, e.g. '/bucket/alice/file.txt'.
            headers: Request headers, any case.

        Returns:
            String to feed to :meth:`sign`.
        """
        lowered = {
            name.lower(): str(value).strip()
            for name, value in (headers or {}).items()
        }
        lines = [method.upper()]
        lines.extend(lowered.get(name, '') for name in _CONTENT_HEADERS)
        lines.extend(
            f'{name}:{lowered[name]}'
            for name in sorted(lowered)
            if name.startswith(_AMZ_HEADER_PREFIX)
        )
        lines.append(resource)
        return '\n'.join(lines)

    def sign(self, string_to_sign: str) -> str:
        """Compute the base64 HMAC-SHA256 signature of a request.

        Args:
            string_to_sign: Output of :meth:`string_to_sign`.

        Returns:
            Base64-encoded signature.

        Raises:
            ConfigurationError: If signing credentials are missing.
        """
        if not self.has_credentials:
            raise ConfigurationError(
                'Storage signing credentials are not configured '
                '(AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY)',
            )
        digest = hmac.new(
            str(self._secret_key).encode('utf-8'),
            string_to_sign.encode('utf-8'),
            hashlib.sha256,
        ).digest()
        return base64.b64encode(digest).decode('ascii')

    def authorization_header(
        self,
        method: str,
        resource: str,
        headers: Mapping[str, str | int] | None = None,
    ) -> str:
        """Build an ``Authorization`` header value for a raw request.

        Raises:
            ConfigurationError: If signing credentials are missing.
        """
        signature = self.sign(self.string_to_sign(method, resource, headers))
        return f'{_AUTHORIZATION_SCHEME} {self._access_key}:{signature}'

    def issue_read_capability(
        self,
        storage: 'S3Storage',
        key: str,
        ttl_seconds: int,
    ) -> str:
        """Issue a time-limited, read-only URL for one object.

        The expiry and the GET-only permission are bound into the query
        string by the presigner. Lifetimes above the backend maximum are
        clamped.

        Args:
            storage: Storage of the bucket holding the object.
            key: Full object key.
            ttl_seconds: Requested lifetime.

        Returns:
            Presigned URL, or the unsigned object URL when credentials
            are unavailable.
        """
        expires_in = max(1, min(ttl_seconds, MAX_READ_CAPABILITY_SECONDS))
        if not self.has_credentials:
            logger.warning(
                'No signing credentials, returning unsigned URL for: %s',
                key,
            )
            return storage.url(key, expire=expires_in, signed=False)
        return storage.url(key, expire=expires_in)
