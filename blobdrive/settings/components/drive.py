"""Virtual filesystem and share-link settings."""

from blobdrive.settings.components import config

# Lifetime of download URLs attached to listings and search results
DRIVE_READ_URL_TTL = config('DRIVE_READ_URL_TTL', cast=int, default=900)

# Share links
DRIVE_SHARE_DEFAULT_EXPIRY_DAYS = config(
    'BLOB_SAS_DEFAULT_EXPIRY_DAYS',
    cast=int,
    default=7,
)
DRIVE_APP_URL = config('DRIVE_APP_URL', default='http://localhost:3000')

# Storage limit per tenant: 10 GB in bytes
DRIVE_QUOTA_BYTES = config(
    'DRIVE_QUOTA_BYTES',
    cast=int,
    default=10 * 1024 * 1024 * 1024,
)

# Recycle bin purge
DRIVE_RECYCLE_RETENTION_DAYS = config(
    'DRIVE_RECYCLE_RETENTION_DAYS',
    cast=int,
    default=30,
)
