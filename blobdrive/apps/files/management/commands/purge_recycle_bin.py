"""Management command to purge old objects from recycle bins."""

import logging
from datetime import timedelta
from typing import Any

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from blobdrive.apps.files.exceptions import DriveError
from blobdrive.apps.files.infrastructure.tenants import get_tenant_storage
from blobdrive.apps.files.logic.hierarchy import recycle_bin
from blobdrive.apps.files.logic.object_operations import purge
from blobdrive.apps.files.models import FileRecord

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Permanently delete objects that have been in the recycle bin too long."""

    help = 'Purge recycle-bin objects older than the retention period'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be deleted without deleting',
        )
        parser.add_argument(
            '--retention-days',
            type=int,
            default=settings.DRIVE_RECYCLE_RETENTION_DAYS,
            help=(
                'Days an object stays in the recycle bin '
                f'(default: {settings.DRIVE_RECYCLE_RETENTION_DAYS})'
            ),
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the purge command.

        Owners are taken from the file registry; each owner's bucket is
        scanned, since the object metadata holds the deletion dates.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        retention_days = options['retention_days']
        cutoff = timezone.now() - timedelta(days=retention_days)

        self.stdout.write(
            f'Looking for objects deleted before {cutoff} '
            f'(older than {retention_days} days)',
        )

        owners = (
            FileRecord.objects
            .values_list('owner_email', flat=True)
            .distinct()
            .order_by('owner_email')
        )

        count = 0
        failed = 0

        for owner in owners:
            try:
                storage = get_tenant_storage(owner)
                expired = [
                    item.id
                    for item in recycle_bin(storage)
                    if item.deleted_date is not None
                    and item.deleted_date <= cutoff
                ]
                if dry_run:
                    for key in expired:
                        self.stdout.write(
                            f'Would delete: {key} (owner: {owner})',
                        )
                else:
                    purge(storage, expired)
                    logger.info(
                        'Purged %d object(s) from recycle bin of %s',
                        len(expired),
                        owner,
                    )
            except DriveError as exc:
                self.stderr.write(f'Failed to purge {owner}: {exc}')
                logger.exception('Failed to purge recycle bin of %s', owner)
                failed += 1
                continue
            count += len(expired)

        if dry_run:
            self.stdout.write(
                self.style.SUCCESS(f'Would purge {count} objects from recycle bins'),
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(
                    f'Purged {count} objects from recycle bins, '
                    f'{failed} owners failed',
                ),
            )
