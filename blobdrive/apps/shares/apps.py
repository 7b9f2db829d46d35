"""Django app configuration for shares app."""

from django.apps import AppConfig


class SharesConfig(AppConfig):
    """Configuration for shares app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'blobdrive.apps.shares'
    verbose_name = 'Share links'
