"""
Read paths over clinics, patients and videos.

Lookups go to the authoritative store and fall back to the mirrors, in
order, only while it is unavailable. List reads that cannot be served at
all degrade to an empty list.
"""
from apps.authz.permissions import require_admin, require_clinic_scope, require_visible
from apps.core.errors import BackendUnavailable, MediaNotReady, RecordNotFound
from apps.core.identifiers import ensure_valid_id
from apps.core.observability import get_sanitized_logger
from apps.records.base import CLINIC, PATIENT, TIMESTAMP_FIELDS, VIDEO
from apps.records.registry import get_mirror_stores, get_record_store
from apps.videos.storage import get_media_store

logger = get_sanitized_logger(__name__)


def active_stores():
    return [get_record_store(), *get_mirror_stores()]


def read_with_fallback(operation):
    """
    Run operation(store) against the authoritative store, then each mirror
    while the previous one raises BackendUnavailable.
    """
    last_error = None
    for store in active_stores():
        try:
            return operation(store)
        except BackendUnavailable as exc:
            last_error = exc
    raise last_error


def fetch(kind, record_id):
    """Record by id, with mirror fallback. Raises RecordNotFound."""
    return read_with_fallback(lambda store: store.get_by_id(kind, record_id))


def fetch_children(kind, fk_name, fk_value):
    return read_with_fallback(lambda store: store.list_by_foreign_key(kind, fk_name, fk_value))


def newest_first(kind, records):
    field = TIMESTAMP_FIELDS[kind]
    return sorted(records, key=lambda record: record[field], reverse=True)


def _list_or_empty(kind, operation):
    try:
        return read_with_fallback(operation)
    except BackendUnavailable as exc:
        logger.warning(
            'List read degraded to empty result',
            extra={
                'event': 'list_read_degraded',
                'kind': kind,
                'backend': exc.backend,
            }
        )
        return []


def find_clinic_by_login_email(email):
    clinics = read_with_fallback(lambda store: store.list_by_foreign_key(CLINIC, 'login_email', email))
    return clinics[0] if clinics else None


# ----------------------------------------------------------------------
# Session-scoped reads
# ----------------------------------------------------------------------

def list_clinics(session):
    require_admin(session)
    return newest_first(CLINIC, _list_or_empty(CLINIC, lambda store: store.list_all(CLINIC)))


def get_clinic(session, clinic_id):
    ensure_valid_id(clinic_id, kind=CLINIC)
    require_visible(session, clinic_id, CLINIC, clinic_id)
    return fetch(CLINIC, clinic_id)


def list_patients(session, clinic_id=None):
    """
    Patients visible to session, newest first.

    Admins see every clinic unless clinic_id narrows it; clinic sessions
    always see only their own clinic.
    """
    if not session.is_admin:
        if clinic_id and clinic_id != session.clinic_id:
            require_clinic_scope(session, clinic_id)
        clinic_id = session.clinic_id

    if clinic_id:
        ensure_valid_id(clinic_id, kind=CLINIC)
        records = _list_or_empty(
            PATIENT, lambda store: store.list_by_foreign_key(PATIENT, 'clinic_id', clinic_id)
        )
    else:
        records = _list_or_empty(PATIENT, lambda store: store.list_all(PATIENT))
    return newest_first(PATIENT, records)


def get_patient(session, patient_id):
    ensure_valid_id(patient_id, kind=PATIENT)
    patient = fetch(PATIENT, patient_id)
    require_visible(session, patient['clinic_id'], PATIENT, patient_id)
    return patient


def _videos_of(patient_id):
    return _list_or_empty(VIDEO, lambda store: store.list_by_foreign_key(VIDEO, 'patient_id', patient_id))


def list_videos(session, patient_id):
    patient = get_patient(session, patient_id)
    return newest_first(VIDEO, _videos_of(patient['id']))


def list_clinic_videos(session, clinic_id):
    """
    Every video of a clinic across its patients, newest first. Each entry
    also carries the owning patient's name.
    """
    clinic = get_clinic(session, clinic_id)
    patients = _list_or_empty(
        PATIENT, lambda store: store.list_by_foreign_key(PATIENT, 'clinic_id', clinic['id'])
    )
    videos = [
        dict(video, patient_name=patient['name'])
        for patient in patients
        for video in _videos_of(patient['id'])
    ]
    return newest_first(VIDEO, videos)


def get_video(session, video_id):
    ensure_valid_id(video_id, kind=VIDEO)
    video = fetch(VIDEO, video_id)
    try:
        patient = fetch(PATIENT, video['patient_id'])
    except RecordNotFound:
        raise RecordNotFound(VIDEO, video_id)
    require_visible(session, patient['clinic_id'], VIDEO, video_id)
    return video


def video_playback_url(session, video_id):
    """
    Fresh playback URL for a video.

    Raises MediaNotReady for an incomplete upload and MediaReleased once the
    handle has been released.
    """
    video = get_video(session, video_id)
    if not video['file_url']:
        raise MediaNotReady()
    return get_media_store().playback_url(video['file_url'])
