"""
Settings for the test suite: file-backed sqlite and fast password hashing.
"""
from .base import *

DEBUG = False
ALLOWED_HOSTS = ["testserver", "localhost"]

# A database file rather than :memory: so the threaded cart tests share one
# database. IMMEDIATE transactions take SQLite's write lock up front and
# queue writers on the busy timeout, standing in for row locks.
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.test.sqlite3',
        'OPTIONS': {
            'timeout': 20,
            'transaction_mode': 'IMMEDIATE',
        },
        'TEST': {
            'NAME': BASE_DIR / 'test_db.sqlite3',
        },
    }
}

PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

STORAGES = {
    "default": {
        "BACKEND": "django.core.files.storage.InMemoryStorage",
    },
    "staticfiles": {
        "BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage",
    },
}

LOGGING["loggers"]["apps"]["level"] = "CRITICAL"
LOGGING["loggers"]["utils"]["level"] = "CRITICAL"
