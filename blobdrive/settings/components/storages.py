"""Object storage configuration for S3-compatible backends.

Every user gets a bucket of their own (the tenant namespace). The options
below are shared by all tenant buckets and handed to
``blobdrive.apps.files.infrastructure.storage.TenantStorage``:
- MinIO for local development
- AWS S3 or Cloudflare R2 for production

Leaving the access key or secret key empty disables request signing:
read capabilities degrade to plain object URLs.
"""

from typing import Any, Final

from blobdrive.settings.components import config

DRIVE_STORAGE: Final[dict[str, Any]] = {
    'access_key': config('AWS_ACCESS_KEY_ID', default=None),
    'secret_key': config('AWS_SECRET_ACCESS_KEY', default=None),
    'endpoint_url': config('AWS_S3_ENDPOINT_URL', default=None),
    'region_name': config('AWS_S3_REGION_NAME', default='us-east-1'),
    'signature_version': config('AWS_S3_SIGNATURE_VERSION', default='s3v4'),
    # Prefix of every tenant bucket name: <prefix>-<identity hash>
    'container_prefix': config('DRIVE_CONTAINER_PREFIX', default='drive'),
}
