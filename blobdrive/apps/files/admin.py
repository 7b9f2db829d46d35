"""Django admin configuration for files app."""

from typing import Final

from django.contrib import admin

from blobdrive.apps.files.models import FileRecord

_KIB: Final = 1024


def _format_bytes(size_bytes: int) -> str:
    """Format bytes in human-readable format.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted size string (e.g., '1.5 MB', '234 KB').
    """
    if size_bytes < _KIB:
        return f'{size_bytes} B'
    if size_bytes < _KIB * _KIB:  # noqa: WPS531
        return f'{size_bytes / _KIB:.1f} KB'
    if size_bytes < _KIB * _KIB * _KIB:  # noqa: WPS531
        return f'{size_bytes / (_KIB * _KIB):.1f} MB'
    return f'{size_bytes / (_KIB * _KIB * _KIB):.1f} GB'


@admin.register(FileRecord)
class FileRecordAdmin(admin.ModelAdmin[FileRecord]):
    """Admin interface for the FileRecord mirror.

    Rows are written by the file operations only; the admin is a viewer.
    """

    list_display = [
        'name',
        'type',
        'owner_email',
        'parent_id',
        'size_display',
        'is_deleted',
        'modified_at',
    ]

    list_filter = [
        'type',
        'is_deleted',
        'storage_provider',
    ]

    search_fields = [
        'key',
        'name',
        'owner_email',
    ]

    readonly_fields = [
        'key',
        'name',
        'type',
        'mime_type',
        'size',
        'parent_id',
        'owner_email',
        'storage_provider',
        'storage_path',
        'is_deleted',
        'created_at',
        'modified_at',
    ]

    fieldsets = (
        ('Object', {
            'fields': ('key', 'name', 'type', 'parent_id', 'owner_email'),
        }),
        ('Storage', {
            'fields': (
                'storage_provider',
                'storage_path',
                'size',
                'mime_type',
            ),
        }),
        ('State', {
            'fields': ('is_deleted',),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'modified_at'),
        }),
    )

    def size_display(self, obj: FileRecord) -> str:
        """Display object size in human-readable format.

        Args:
            obj: FileRecord instance.

        Returns:
            Formatted size string.
        """
        return _format_bytes(obj.size)
    size_display.short_description = 'Size'  # type: ignore[attr-defined]
