"""Django admin configuration for shares app."""

from django.contrib import admin

from blobdrive.apps.shares.models import ShareLink


@admin.register(ShareLink)
class ShareLinkAdmin(admin.ModelAdmin[ShareLink]):
    """Admin interface for ShareLink model.

    Links are immutable once created, every field is read-only.
    """

    list_display = [
        'file_id',
        'created_by',
        'access_type',
        'expiry',
        'expired_display',
        'created_at',
    ]

    list_filter = [
        'access_type',
        'expiry',
    ]

    search_fields = [
        'file_id',
        'created_by',
        'share_id',
    ]

    readonly_fields = [
        'id',
        'share_id',
        'file_id',
        'created_by',
        'access_type',
        'requires_auth',
        'expiry',
        'created_at',
    ]

    def expired_display(self, obj: ShareLink) -> bool:
        """Whether the link is past its expiry.

        Args:
            obj: ShareLink instance.

        Returns:
            True if expired.
        """
        return obj.is_expired()
    expired_display.short_description = 'Expired'  # type: ignore[attr-defined]
    expired_display.boolean = True  # type: ignore[attr-defined]
