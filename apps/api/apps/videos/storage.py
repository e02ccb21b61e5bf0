"""
Media storage for ultrasound videos.

A media store turns an uploaded file into a handle (an object key), turns a
handle into a playable URL and releases handles when videos are deleted.
Handles that are plain http(s) URLs point at media hosted elsewhere; they are
served as-is and never released by the portal.
"""
import os
import uuid
from abc import ABC, abstractmethod
from datetime import timedelta
from functools import lru_cache

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.core.files.storage import FileSystemStorage
from django.core.signals import setting_changed
from django.dispatch import receiver
from django.utils.module_loading import import_string
from minio import Minio
from minio.error import MinioException, S3Error
from urllib3.exceptions import HTTPError as Urllib3HTTPError

from apps.core.errors import BackendUnavailable, MediaReleased
from apps.core.observability import get_sanitized_logger, metrics

logger = get_sanitized_logger(__name__)

MINIO_ERRORS = (MinioException, Urllib3HTTPError)
MISSING_OBJECT_CODES = ('NoSuchKey', 'NoSuchObject', 'NoSuchVersion')


def is_external_handle(handle) -> bool:
    return handle.startswith('http://') or handle.startswith('https://')


def generate_object_key(patient_id: str, filename: str) -> str:
    """
    Generate unique object key for a patient's video.

    Args:
        patient_id: Owning patient
        filename: Original filename

    Returns:
        Key of the form videos/<patient_id>/<random>_<sanitized filename>
    """
    unique_id = uuid.uuid4().hex[:12]
    safe_filename = ''.join(c for c in filename if c.isalnum() or c in '._-') or 'video'
    return f'videos/{patient_id}/{unique_id}_{safe_filename}'


class MediaStore(ABC):
    """Interface shared by media backends."""

    name = 'abstract'

    @abstractmethod
    def store(self, file_obj, file_name, patient_id, content_type):
        """Persist the upload and return its handle."""

    @abstractmethod
    def playback_url(self, handle):
        """URL a browser can play, or raise MediaReleased."""

    @abstractmethod
    def release(self, handle):
        """Free the media behind handle. External handles are left alone."""

    @abstractmethod
    def ping(self):
        """Raise BackendUnavailable if the backend cannot be reached."""

    def _unavailable(self, operation, exc):
        metrics.backend_unavailable_total.labels(backend=self.name, operation=operation).inc()
        logger.error(
            'Media store operation failed',
            extra={
                'event': 'media_store_unavailable',
                'backend': self.name,
                'operation': operation,
                'error': exc.__class__.__name__,
            }
        )
        return BackendUnavailable(self.name, operation, reason=str(exc))


def get_minio_client():
    """Get configured MinIO client instance."""
    return Minio(
        settings.MINIO_ENDPOINT,
        access_key=settings.MINIO_ACCESS_KEY,
        secret_key=settings.MINIO_SECRET_KEY,
        secure=settings.MINIO_USE_SSL
    )


class MinioMediaStore(MediaStore):
    """
    Videos stored as objects in a MinIO bucket, played through presigned
    GET URLs.
    """

    name = 'minio'

    def __init__(self, bucket=None, url_expiry_seconds=3600):
        self.bucket = bucket or settings.MINIO_VIDEOS_BUCKET
        self.url_expiry = timedelta(seconds=url_expiry_seconds)
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = get_minio_client()
        return self._client

    def store(self, file_obj, file_name, patient_id, content_type):
        object_key = generate_object_key(patient_id, file_name)
        file_obj.seek(0)
        try:
            self.client.put_object(
                bucket_name=self.bucket,
                object_name=object_key,
                data=file_obj,
                length=file_obj.size,
                content_type=content_type or 'application/octet-stream',
            )
        except MINIO_ERRORS as exc:
            raise self._unavailable('store', exc) from exc
        metrics.media_stored_bytes_total.labels(backend=self.name).inc(file_obj.size)
        return object_key

    def playback_url(self, handle):
        if is_external_handle(handle):
            return handle
        try:
            self.client.stat_object(bucket_name=self.bucket, object_name=handle)
            return self.client.presigned_get_object(
                bucket_name=self.bucket,
                object_name=handle,
                expires=self.url_expiry,
            )
        except S3Error as exc:
            if exc.code in MISSING_OBJECT_CODES:
                raise MediaReleased() from exc
            raise self._unavailable('playback_url', exc) from exc
        except MINIO_ERRORS as exc:
            raise self._unavailable('playback_url', exc) from exc

    def release(self, handle):
        if is_external_handle(handle):
            return
        try:
            # S3 DELETE of a missing key succeeds, so release is idempotent
            self.client.remove_object(bucket_name=self.bucket, object_name=handle)
        except MINIO_ERRORS as exc:
            metrics.media_released_total.labels(backend=self.name, result='failure').inc()
            raise self._unavailable('release', exc) from exc
        metrics.media_released_total.labels(backend=self.name, result='success').inc()

    def ping(self):
        try:
            if not self.client.bucket_exists(self.bucket):
                raise BackendUnavailable(self.name, 'ping', reason=f'bucket {self.bucket} missing')
        except MINIO_ERRORS as exc:
            raise self._unavailable('ping', exc) from exc


class FileSystemMediaStore(MediaStore):
    """
    Videos stored under MEDIA_ROOT through Django's FileSystemStorage.

    Meant for local development and tests.
    """

    name = 'filesystem'

    def __init__(self, location=None, base_url=None):
        self.location = str(location or os.path.join(settings.MEDIA_ROOT, 'portal'))
        self.storage = FileSystemStorage(
            location=self.location,
            base_url=base_url or f'{settings.MEDIA_URL}portal/',
        )

    def store(self, file_obj, file_name, patient_id, content_type):
        object_key = generate_object_key(patient_id, file_name)
        file_obj.seek(0)
        try:
            saved_key = self.storage.save(object_key, file_obj)
        except OSError as exc:
            raise self._unavailable('store', exc) from exc
        metrics.media_stored_bytes_total.labels(backend=self.name).inc(file_obj.size or 0)
        return saved_key

    def playback_url(self, handle):
        if is_external_handle(handle):
            return handle
        try:
            exists = self.storage.exists(handle)
        except OSError as exc:
            raise self._unavailable('playback_url', exc) from exc
        if not exists:
            raise MediaReleased()
        return self.storage.url(handle)

    def release(self, handle):
        if is_external_handle(handle):
            return
        try:
            self.storage.delete(handle)
        except OSError as exc:
            metrics.media_released_total.labels(backend=self.name, result='failure').inc()
            raise self._unavailable('release', exc) from exc
        metrics.media_released_total.labels(backend=self.name, result='success').inc()

    def ping(self):
        try:
            os.makedirs(self.location, exist_ok=True)
        except OSError as exc:
            raise self._unavailable('ping', exc) from exc


@lru_cache(maxsize=None)
def get_media_store():
    """Media store configured by PORTAL_MEDIA_STORE."""
    config = settings.PORTAL_MEDIA_STORE
    if isinstance(config, str):
        config = {'BACKEND': config}
    try:
        backend = import_string(config['BACKEND'])
    except (KeyError, ImportError) as exc:
        raise ImproperlyConfigured(f'Invalid media store configuration: {config!r}') from exc
    store = backend(**config.get('OPTIONS', {}))
    if not isinstance(store, MediaStore):
        raise ImproperlyConfigured(f'{config["BACKEND"]} is not a MediaStore')
    return store


@receiver(setting_changed)
def _reset_on_setting_changed(*, setting, **kwargs):
    if setting in ('PORTAL_MEDIA_STORE', 'MEDIA_ROOT', 'MEDIA_URL', 'MINIO_VIDEOS_BUCKET'):
        get_media_store.cache_clear()
