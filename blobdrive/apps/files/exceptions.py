"""Exceptions for the virtual filesystem.

Backend failures are classified once, at the storage and share-link
boundaries, into the classes below. Nothing in the core retries.
"""

from datetime import datetime


class DriveError(Exception):
    """Base class for all filesystem errors."""


class NotFoundError(DriveError):
    """Raised when a container, object or share link does not exist."""


class UnauthorizedError(DriveError):
    """Raised when the caller has no resolved identity."""


class ForbiddenError(DriveError):
    """Raised when the caller may not perform the operation."""


class ShareLinkExpiredError(ForbiddenError):
    """Raised when a share link is resolved after its expiry."""

    def __init__(self, share_id: str, expiry: datetime) -> None:
        """Initialize ShareLinkExpiredError.

        Args:
            share_id: Public token of the expired link.
            expiry: Moment the link stopped being valid.
        """
        self.share_id = share_id
        self.expiry = expiry
        super().__init__(f'Share link expired at {expiry.isoformat()}')


class UnavailableError(DriveError):
    """Raised when the storage backend fails for any other reason.

    The message carries the backend's own description for diagnostics.
    """


class ConfigurationError(DriveError):
    """Raised when storage or signing credentials are missing."""


class QuotaExceededError(DriveError):
    """Raised when upload would exceed the tenant's storage quota."""

    def __init__(
        self,
        quota_bytes: int,
        used_bytes: int,
        required_bytes: int,
    ) -> None:
        """Initialize QuotaExceededError.

        Args:
            quota_bytes: Total quota limit in bytes.
            used_bytes: Currently used bytes.
            required_bytes: Bytes needed for the operation.
        """
        self.quota_bytes = quota_bytes
        self.used_bytes = used_bytes
        self.required_bytes = required_bytes

        available = quota_bytes - used_bytes
        super().__init__(
            f'Quota exceeded: need {required_bytes} bytes, '
            f'only {available} bytes available '
            f'(quota: {quota_bytes}, used: {used_bytes})',
        )
