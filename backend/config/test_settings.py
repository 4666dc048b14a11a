"""Settings used by the test suite."""
import tempfile

from .settings import *  # noqa: F401,F403
from .settings import REST_FRAMEWORK

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'storefront-tests',
    }
}

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

MEDIA_ROOT = tempfile.mkdtemp(prefix='storefront-media-')

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    'DEFAULT_THROTTLE_RATES': {
        'anon': '100000/hour',
        'user': '100000/hour',
        'auth': '100000/hour',
    },
}

LOG_LEVEL = 'WARNING'
LOGGING['loggers']['backend']['level'] = 'WARNING'  # noqa: F405
