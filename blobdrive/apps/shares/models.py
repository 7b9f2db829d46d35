"""Database models for shares app."""

import uuid
from datetime import datetime
from typing import Final, final, override

from django.db import models
from django.utils import timezone

_TOKEN_MAX_LENGTH: Final = 64
_KEY_MAX_LENGTH: Final = 1024
_OWNER_MAX_LENGTH: Final = 254
_ACCESS_TYPE_MAX_LENGTH: Final = 16


class AccessType(models.TextChoices):
    """What a share link allows."""

    VIEW = 'view', 'View'


@final
class ShareLink(models.Model):
    """Time-limited link to one object of one owner.

    Links are read-only once created. A link is expired when the current
    time is past ``expiry``; nothing reaps expired rows, the check happens
    on resolution.
    """

    id = models.UUIDField(  # noqa: WPS125
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    # Public token, part of the share URL
    share_id = models.CharField(
        max_length=_TOKEN_MAX_LENGTH,
        unique=True,
    )

    file_id = models.CharField(
        max_length=_KEY_MAX_LENGTH,
        help_text='Object key in the owner bucket',
    )

    created_by = models.CharField(
        max_length=_OWNER_MAX_LENGTH,
        db_index=True,
        help_text='Identity of the owner',
    )

    access_type = models.CharField(
        max_length=_ACCESS_TYPE_MAX_LENGTH,
        choices=AccessType.choices,
        default=AccessType.VIEW,
    )

    requires_auth = models.BooleanField(default=True)

    expiry = models.DateTimeField()

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Share link'  # type: ignore[mutable-override]
        verbose_name_plural = 'Share links'  # type: ignore[mutable-override]
        ordering = ['-created_at']

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.created_by}:{self.file_id}'

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the link is past its expiry.

        Args:
            now: Moment to check at, defaults to the current time.

        Returns:
            True if the link can no longer be resolved.
        """
        return (now or timezone.now()) > self.expiry
