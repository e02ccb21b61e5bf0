"""
Pytest configuration for the entire test suite.

This file configures test database to use SQLite for faster tests and keeps
external services (MinIO, Redis) out of the test run.
"""
import django
from django.conf import settings


def pytest_configure():
    """Configure Django settings for tests."""
    if not settings.configured:
        settings.configure()

    # Force SQLite for tests (faster, no Docker dependency)
    settings.DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': ':memory:',  # In-memory database for speed
        }
    }

    # Fast hashing; the hashing policy itself is not under test
    settings.PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

    # Videos go to a local directory instead of MinIO
    settings.PORTAL_MEDIA_STORE = {'BACKEND': 'apps.videos.storage.FileSystemMediaStore'}

    # No broker in tests; retries are asserted through mocks
    settings.PORTAL_AUTO_RETRY_DELETIONS = False
    settings.CELERY_TASK_ALWAYS_EAGER = True

    django.setup()

    # pytest-django set Django up before this hook ran, so the connection
    # handler may already hold the original DATABASES; make it re-read them.
    from django.db import connections
    for conn in connections.all(initialized_only=True):
        del connections[conn.alias]
    connections._settings = None
    connections.__dict__.pop('settings', None)
