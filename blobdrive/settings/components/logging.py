"""Logging configuration.

Every module logs through ``logging.getLogger(__name__)``; records of the
``blobdrive`` namespace propagate to the root console handler. Django and
botocore are kept at WARNING.
"""

from blobdrive.settings.components import config

_LOG_LEVEL = config('DJANGO_LOG_LEVEL', default='INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'console': {
            'format': '%(asctime)s %(levelname)s [%(name)s] %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'console',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'django': {
            'level': 'WARNING',
        },
        'blobdrive': {
            'level': _LOG_LEVEL,
        },
        'botocore': {
            'level': 'WARNING',
        },
    },
}
