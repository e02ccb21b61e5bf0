"""
Record store registry.

PORTAL_RECORD_STORE names the authoritative backend; PORTAL_RECORD_MIRRORS
lists optional mirrors that receive every mutation after it. Each entry is
{'BACKEND': 'dotted.path.Class', 'OPTIONS': {...}}.
"""
from functools import lru_cache

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.core.signals import setting_changed
from django.dispatch import receiver
from django.utils.module_loading import import_string

from .base import RecordStore

STORE_SETTINGS = ('PORTAL_RECORD_STORE', 'PORTAL_RECORD_MIRRORS')


def build_store(config):
    if isinstance(config, str):
        config = {'BACKEND': config}
    try:
        backend = import_string(config['BACKEND'])
    except (KeyError, ImportError) as exc:
        raise ImproperlyConfigured(f'Invalid record store configuration: {config!r}') from exc
    store = backend(**config.get('OPTIONS', {}))
    if not isinstance(store, RecordStore):
        raise ImproperlyConfigured(f'{config["BACKEND"]} is not a RecordStore')
    return store


@lru_cache(maxsize=None)
def get_record_store():
    """The authoritative store for this deployment."""
    return build_store(settings.PORTAL_RECORD_STORE)


@lru_cache(maxsize=None)
def get_mirror_stores():
    """Mirrors, in configured order. Empty when none are configured."""
    return tuple(build_store(config) for config in getattr(settings, 'PORTAL_RECORD_MIRRORS', []))


def reset_stores():
    get_record_store.cache_clear()
    get_mirror_stores.cache_clear()


@receiver(setting_changed)
def _reset_on_setting_changed(*, setting, **kwargs):
    if setting in STORE_SETTINGS:
        reset_stores()
