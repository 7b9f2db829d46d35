"""Database models for files app."""

from typing import Final, final, override

from django.db import models

# Constants for field max lengths
_KEY_MAX_LENGTH: Final = 1024
_NAME_MAX_LENGTH: Final = 255
_MIME_TYPE_MAX_LENGTH: Final = 255
_OWNER_MAX_LENGTH: Final = 254
_PROVIDER_MAX_LENGTH: Final = 32
_TYPE_MAX_LENGTH: Final = 16


class ItemType(models.TextChoices):
    """Kind of item in the virtual hierarchy."""

    FILE = 'file', 'File'
    FOLDER = 'folder', 'Folder'


@final
class FileRecord(models.Model):
    """Registry row mirroring an object stored in a tenant bucket.

    The object store (and its metadata) is the source of truth for file
    existence, soft-delete state and tags. This table is an eventually
    consistent mirror used to authorize share-link creation: a requester
    may only share objects recorded under their identity.
    """

    # Full object key: {tenant_folder}/folder/file.ext
    # Tenant folders of two identities can collide, keys are unique per owner
    key = models.CharField(
        max_length=_KEY_MAX_LENGTH,
        help_text='Object key in the tenant bucket',
    )

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    type = models.CharField(  # noqa: WPS125
        max_length=_TYPE_MAX_LENGTH,
        choices=ItemType.choices,
        default=ItemType.FILE,
    )

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        blank=True,
        default='',
    )

    size = models.BigIntegerField(
        default=0,
        help_text='Object size in bytes',
    )

    parent_id = models.CharField(
        max_length=_KEY_MAX_LENGTH,
        null=True,
        blank=True,
        help_text='Key prefix of the containing folder, null at root',
    )

    owner_email = models.CharField(
        max_length=_OWNER_MAX_LENGTH,
        db_index=True,
    )

    storage_provider = models.CharField(
        max_length=_PROVIDER_MAX_LENGTH,
        default='s3',
    )

    storage_path = models.CharField(
        max_length=_KEY_MAX_LENGTH,
        help_text='Bucket and key: {container}/{key}',
    )

    is_deleted = models.BooleanField(default=False)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    modified_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'File record'  # type: ignore[mutable-override]
        verbose_name_plural = 'File records'  # type: ignore[mutable-override]
        ordering = ['-modified_at']

        constraints = [
            models.UniqueConstraint(
                fields=['owner_email', 'key'],
                name='files_owner_key_unique',
            ),
        ]

        indexes = [
            # Ownership check of share-link creation
            models.Index(
                fields=['owner_email', 'is_deleted'],
                name='files_owner_deleted_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.owner_email}:{self.key}'
