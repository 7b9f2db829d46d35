"""Registry of tenant storages keyed by identity.

One ``TenantStorage`` per identity lives for the life of the process, so
bucket creation is attempted once per tenant rather than once per request.
"""

import logging
import threading
from typing import Final, final

from blobdrive.apps.files.infrastructure.storage import TenantStorage

logger = logging.getLogger(__name__)

# Neutral principal used to resolve share links
SHARED_ACCESS_IDENTITY: Final = 'shared-access'


@final
class TenantRegistry:
    """Thread-safe map from identity to its TenantStorage."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._storages: dict[str, TenantStorage] = {}
        self._lock = threading.Lock()

    def get(self, identity: str) -> TenantStorage:
        """Return the storage of an identity, creating it on first use.

        Args:
            identity: Stable caller identifier.

        Returns:
            Shared TenantStorage for the identity (not yet initialized).

        Raises:
            ValueError: If the identity is empty.
        """
        if not identity:
            raise ValueError('Tenant identity cannot be empty')
        with self._lock:
            storage = self._storages.get(identity)
            if storage is None:
                storage = TenantStorage.for_identity(identity)
                self._storages[identity] = storage
                logger.debug(
                    'Registered tenant storage: %s -> %s',
                    identity,
                    storage.container,
                )
            return storage

    def release(self, identity: str) -> None:
        """Drop the storage of an identity, if any."""
        with self._lock:
            self._storages.pop(identity, None)

    def clear(self) -> None:
        """Drop every registered storage."""
        with self._lock:
            self._storages.clear()

    def __len__(self) -> int:
        """Number of registered tenants."""
        with self._lock:
            return len(self._storages)


tenants = TenantRegistry()


def get_tenant_storage(identity: str) -> TenantStorage:
    """Get the initialized storage of an identity.

    Args:
        identity: Stable caller identifier.

    Returns:
        TenantStorage whose bucket is known to exist.
    """
    storage = tenants.get(identity)
    storage.ensure_container()
    return storage


def get_shared_access_storage(owner_identity: str) -> TenantStorage:
    """Get storage for an owner's bucket acting as the shared-access principal.

    The storage is not registered and never creates the bucket: it only
    signs URLs for objects that already exist.

    Args:
        owner_identity: Identity whose bucket holds the shared object.

    Returns:
        TenantStorage bound to the owner's bucket.
    """
    return TenantStorage.for_identity(
        owner_identity,
        principal=SHARED_ACCESS_IDENTITY,
    )
