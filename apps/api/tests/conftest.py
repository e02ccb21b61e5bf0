"""
Global test fixtures for pytest.

Provides reusable fixtures for API testing:
- Portal sessions and authenticated API clients by role
- Clinic, patient and video records created through the integrity services
- Media stored in a per-test temporary directory
"""
import pytest
from django.contrib.auth.hashers import make_password
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework.test import APIClient

from apps.authz.models import PortalSession, SessionRole
from apps.authz.services import issue_access_token
from apps.core.observability.correlation import clear_request_context
from apps.integrity import services
from apps.records.registry import get_mirror_stores, get_record_store, reset_stores
from apps.videos.storage import get_media_store

ADMIN_EMAIL = 'admin@portal.test'
ADMIN_PASSWORD = 'admin-pass-123'
CLINIC_PASSWORD = 'clinic-pass-123'

# Smallest byte string that still looks like an MP4 container header
MP4_BYTES = b'\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom' + b'\x00' * 64


# ============================================================================
# Environment
# ============================================================================

@pytest.fixture(autouse=True)
def portal_settings(settings, tmp_path):
    """
    Isolate every test: fresh media directory, ORM as the only record
    store, known admin credentials, no throttle history.
    """
    settings.MEDIA_ROOT = str(tmp_path / 'media')
    settings.PORTAL_MEDIA_STORE = {'BACKEND': 'apps.videos.storage.FileSystemMediaStore'}
    settings.PORTAL_RECORD_STORE = {'BACKEND': 'apps.records.orm.OrmRecordStore'}
    settings.PORTAL_RECORD_MIRRORS = []
    settings.PORTAL_ADMIN_EMAIL = ADMIN_EMAIL
    settings.PORTAL_ADMIN_PASSWORD_HASH = make_password(ADMIN_PASSWORD)
    settings.PORTAL_PUBLIC_ORIGIN = 'https://portal.test'
    settings.PORTAL_AUTO_RETRY_DELETIONS = False
    reset_stores()
    get_media_store.cache_clear()
    cache.clear()
    clear_request_context()
    yield settings
    reset_stores()
    get_media_store.cache_clear()
    cache.clear()
    clear_request_context()


@pytest.fixture
def jsonlog_mirror(portal_settings, tmp_path):
    """Configure a JSON-lines mirror next to the ORM store and return it."""
    portal_settings.PORTAL_RECORD_MIRRORS = [{
        'BACKEND': 'apps.records.jsonlog.JsonLogRecordStore',
        'OPTIONS': {'path': str(tmp_path / 'mirror' / 'records.jsonl'), 'fsync': False},
    }]
    reset_stores()
    return get_mirror_stores()[0]


@pytest.fixture
def record_store(db):
    """The authoritative record store."""
    return get_record_store()


@pytest.fixture
def media_store():
    return get_media_store()


# ============================================================================
# Sessions and API clients
# ============================================================================

@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


def _client_for(session):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {issue_access_token(session)}')
    return client


@pytest.fixture
def admin_session(db):
    return PortalSession.objects.create(role=SessionRole.ADMIN, email=ADMIN_EMAIL)


@pytest.fixture
def admin_client(admin_session):
    """API client carrying a real bearer token for an admin session."""
    return _client_for(admin_session)


@pytest.fixture
def clinic_session(clinic):
    return PortalSession.objects.create(
        role=SessionRole.CLINIC,
        clinic_id=clinic['id'],
        email=clinic['login_email'],
    )


@pytest.fixture
def clinic_client(clinic_session):
    """API client scoped to the `clinic` fixture."""
    return _client_for(clinic_session)


@pytest.fixture
def other_clinic_session(other_clinic):
    return PortalSession.objects.create(
        role=SessionRole.CLINIC,
        clinic_id=other_clinic['id'],
        email=other_clinic['login_email'],
    )


@pytest.fixture
def other_clinic_client(other_clinic_session):
    return _client_for(other_clinic_session)


# ============================================================================
# Records
# ============================================================================

@pytest.fixture
def clinic(admin_session):
    return services.create_clinic(
        admin_session,
        name='Clinic One',
        address='1 Main Street',
        city='Madrid',
        login_email='clinic1@example.com',
        login_secret=CLINIC_PASSWORD,
    )


@pytest.fixture
def other_clinic(admin_session):
    return services.create_clinic(
        admin_session,
        name='Clinic Two',
        login_email='clinic2@example.com',
        login_secret=CLINIC_PASSWORD,
    )


@pytest.fixture
def patient(admin_session, clinic):
    return services.create_patient(admin_session, clinic['id'], name='Ana Garcia', phone='+34 600 000 000')


@pytest.fixture
def other_patient(admin_session, other_clinic):
    return services.create_patient(admin_session, other_clinic['id'], name='Luis Perez')


def make_video_file(name='scan.mp4', content=MP4_BYTES, content_type='video/mp4'):
    return SimpleUploadedFile(name, content, content_type=content_type)


@pytest.fixture
def video_file():
    return make_video_file()


@pytest.fixture
def upload(admin_session):
    """Upload helper: upload(patient, name='scan.mp4') -> video record."""
    def _upload(patient, name='scan.mp4', session=None):
        file_obj = make_video_file(name)
        return services.upload_video(
            session or admin_session,
            patient['id'],
            file_obj,
            name,
            file_obj.content_type,
        )
    return _upload


@pytest.fixture
def video(upload, patient):
    return upload(patient)
