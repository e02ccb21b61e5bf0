"""
Referential integrity / cascade engine.

The only module allowed to mutate clinics, patients and videos. Every write
is applied to the authoritative record store and then to each configured
mirror; every delete removes children before parents and releases media
before the video row goes away, so no read path ever sees a video without
its patient or a patient without its clinic.
"""
from django.conf import settings
from django.contrib.auth.hashers import make_password
from django.utils import timezone

from apps.authz.permissions import require_admin, require_clinic_scope
from apps.authz.services import normalize_email, revoke_clinic_sessions
from apps.core.errors import (
    BackendUnavailable,
    ClinicNotFound,
    DuplicateId,
    LoginEmailTaken,
    PartialDeletion,
    PatientNotFound,
    PortalError,
    RecordNotFound,
)
from apps.core.identifiers import ensure_valid_id, is_valid_id, new_id
from apps.core.observability import get_sanitized_logger, metrics
from apps.core.observability.events import (
    log_cascade_step,
    log_consistency_checkpoint,
    log_degraded_write,
    log_domain_event,
)
from apps.public.links import legacy_public_url, public_url, qr_code_url
from apps.records.base import CLINIC, PARENTS, PATIENT, VIDEO
from apps.records.registry import get_mirror_stores, get_record_store
from apps.videos.storage import get_media_store
from apps.videos.validators import validate_video_upload

from .selectors import (
    active_stores,
    fetch,
    fetch_children,
    find_clinic_by_login_email,
    get_clinic,
    get_patient,
)

logger = get_sanitized_logger(__name__)


# ----------------------------------------------------------------------
# Write fan-out
# ----------------------------------------------------------------------

def _count_write(kind, operation, store, result):
    metrics.record_writes_total.labels(kind=kind, operation=operation, store=store.name, result=result).inc()


def _mirror_failed(kind, record_id, mirror, reason):
    _count_write(kind, 'put', mirror, 'failure')
    metrics.mirror_write_failures_total.labels(kind=kind, operation='put').inc()
    logger.warning(
        'Mirror write failed',
        extra={
            'event': 'mirror_write_failed',
            'kind': kind,
            'record_id': record_id,
            'backend': mirror.name,
            'reason': reason,
        }
    )


def _mirror_has_parent(mirror, kind, record):
    if kind not in PARENTS:
        return True
    parent_kind, fk_name = PARENTS[kind]
    return mirror.exists(parent_kind, record[fk_name])


def put_record(kind, record):
    """
    Write record to the authoritative store, then to every mirror.

    With the authoritative store down the write still lands on the mirrors
    (logged as degraded); it is only lost, and BackendUnavailable raised,
    when no store accepted it. A mirror that is missing the record's parent
    is skipped so it never holds an orphan.
    """
    primary = get_record_store()
    mirrors = get_mirror_stores()

    primary_error = None
    try:
        primary.put(kind, record)
        _count_write(kind, 'put', primary, 'success')
        accepted = 1
    except BackendUnavailable as exc:
        _count_write(kind, 'put', primary, 'failure')
        if not mirrors:
            raise
        metrics.degraded_writes_total.labels(kind=kind, operation='put').inc()
        log_degraded_write(kind, record['id'], 'put', primary.name)
        primary_error = exc
        accepted = 0

    for mirror in mirrors:
        try:
            if not _mirror_has_parent(mirror, kind, record):
                _mirror_failed(kind, record['id'], mirror, 'parent_missing')
                continue
            mirror.put(kind, record)
            _count_write(kind, 'put', mirror, 'success')
            accepted += 1
        except BackendUnavailable as exc:
            _mirror_failed(kind, record['id'], mirror, exc.code)

    if not accepted:
        raise primary_error


def _ensure_unused_id(kind, record_id):
    try:
        fetch(kind, record_id)
    except RecordNotFound:
        return
    raise DuplicateId(kind, record_id)


def _locate(kind, record_id):
    """Record from whichever reachable store still holds it, or None."""
    for store in active_stores():
        try:
            return store.get_by_id(kind, record_id)
        except (RecordNotFound, BackendUnavailable):
            continue
    return None


# ----------------------------------------------------------------------
# Creation
# ----------------------------------------------------------------------

def create_clinic(session, *, name, login_email, login_secret, address='', city=''):
    """Create a clinic with a hashed login secret. Admin only."""
    require_admin(session)

    login_email = normalize_email(login_email)
    if login_email == normalize_email(settings.PORTAL_ADMIN_EMAIL):
        raise LoginEmailTaken()
    if find_clinic_by_login_email(login_email) is not None:
        raise LoginEmailTaken()

    record = {
        'id': new_id(),
        'name': name,
        'address': address,
        'city': city,
        'login_email': login_email,
        'login_secret': make_password(login_secret),
        'created_at': timezone.now(),
    }
    _ensure_unused_id(CLINIC, record['id'])
    put_record(CLINIC, record)

    metrics.entities_created_total.labels(kind=CLINIC).inc()
    log_domain_event('clinic_created', entity_type=CLINIC, entity_id=record['id'])
    return record


def create_patient(session, clinic_id, *, name, phone=''):
    """Create a patient under an existing clinic, or raise ClinicNotFound."""
    if not is_valid_id(clinic_id):
        raise ClinicNotFound(clinic_id)
    require_clinic_scope(session, clinic_id)

    try:
        fetch(CLINIC, clinic_id)
    except RecordNotFound:
        raise ClinicNotFound(clinic_id)

    record = {
        'id': new_id(),
        'clinic_id': clinic_id,
        'name': name,
        'phone': phone,
        'created_at': timezone.now(),
        'public_link': '',
    }
    _ensure_unused_id(PATIENT, record['id'])
    put_record(PATIENT, record)

    metrics.entities_created_total.labels(kind=PATIENT).inc()
    log_domain_event(
        'patient_created',
        entity_type=PATIENT,
        entity_id=record['id'],
        entity_ids={'clinic_id': clinic_id},
    )
    return record


def upload_video(session, patient_id, file_obj, file_name, content_type):
    """
    Store an uploaded video for an existing patient, or raise
    PatientNotFound. The blob is released again if the record cannot be
    persisted.
    """
    if not is_valid_id(patient_id):
        raise PatientNotFound(patient_id)
    try:
        patient = fetch(PATIENT, patient_id)
    except RecordNotFound:
        raise PatientNotFound(patient_id)
    require_clinic_scope(session, patient['clinic_id'])

    validate_video_upload(file_obj, file_name, content_type)

    media_store = get_media_store()
    handle = media_store.store(file_obj, file_name, patient_id, content_type)

    record = {
        'id': new_id(),
        'patient_id': patient_id,
        'file_name': file_name,
        'file_url': handle,
        'content_type': content_type,
        'size_bytes': file_obj.size,
        'uploaded_at': timezone.now(),
    }
    try:
        _ensure_unused_id(VIDEO, record['id'])
        put_record(VIDEO, record)
    except PortalError:
        try:
            media_store.release(handle)
        except BackendUnavailable:
            logger.error(
                'Could not release media of a video that was never recorded',
                extra={'event': 'media_release_failed', 'video_id': record['id']},
            )
        raise

    metrics.entities_created_total.labels(kind=VIDEO).inc()
    log_domain_event(
        'video_uploaded',
        entity_type=VIDEO,
        entity_id=record['id'],
        entity_ids={'patient_id': patient_id, 'clinic_id': patient['clinic_id']},
        size_bytes=file_obj.size,
    )
    return record


# ----------------------------------------------------------------------
# Cascade deletion
# ----------------------------------------------------------------------

class CascadeDeletion:
    """
    One best-effort pass over every active store.

    A parent is only deleted once all of its children are gone from every
    store, so a failed step leaves a consistent (if incomplete) tree behind.
    Re-running the pass finishes the job; deleting a row that is already
    gone is a no-op.
    """

    def __init__(self, kind, record_id):
        self.kind = kind
        self.record_id = record_id
        self.stores = active_stores()
        self.media_store = get_media_store()
        self.failures = []
        self.deleted = {CLINIC: 0, PATIENT: 0, VIDEO: 0}

    def run(self):
        step = {
            CLINIC: self.delete_clinic,
            PATIENT: self.delete_patient,
            VIDEO: self.delete_video_by_id,
        }[self.kind]
        step(self.record_id)
        return self

    def _fail(self, step, kind, record_id, backend, exc):
        self.failures.append({
            'step': step,
            'kind': kind,
            'id': record_id,
            'backend': backend,
            'code': getattr(exc, 'code', exc.__class__.__name__),
        })
        log_cascade_step(kind, record_id, step, backend, result='failure')

    def children(self, kind, fk_name, parent_id):
        """
        Union of the children held by every store. Returns (records,
        complete); complete is False when some store could not be listed.
        """
        found = {}
        complete = True
        for store in self.stores:
            try:
                for record in store.list_by_foreign_key(kind, fk_name, parent_id):
                    found.setdefault(record['id'], record)
            except BackendUnavailable as exc:
                self._fail('list', kind, parent_id, store.name, exc)
                complete = False
        return list(found.values()), complete

    def delete_everywhere(self, kind, record_id):
        ok = True
        for store in self.stores:
            try:
                store.delete(kind, record_id)
                _count_write(kind, 'delete', store, 'success')
            except BackendUnavailable as exc:
                _count_write(kind, 'delete', store, 'failure')
                if store is not self.stores[0]:
                    metrics.mirror_write_failures_total.labels(kind=kind, operation='delete').inc()
                self._fail('delete', kind, record_id, store.name, exc)
                ok = False
        if ok:
            self.deleted[kind] += 1
        return ok

    def delete_video(self, video):
        handle = video.get('file_url') or ''
        if handle:
            try:
                self.media_store.release(handle)
            except BackendUnavailable as exc:
                # Keep the row: a handle that may still resolve must stay reachable for retry
                self._fail('release', VIDEO, video['id'], self.media_store.name, exc)
                return False
        return self.delete_everywhere(VIDEO, video['id'])

    def delete_video_by_id(self, video_id):
        video = _locate(VIDEO, video_id)
        if video is None:
            return self.delete_everywhere(VIDEO, video_id)
        return self.delete_video(video)

    def delete_patient(self, patient_id):
        videos, complete = self.children(VIDEO, 'patient_id', patient_id)
        all_gone = complete
        for video in videos:
            if not self.delete_video(video):
                all_gone = False
        if not all_gone:
            return False
        return self.delete_everywhere(PATIENT, patient_id)

    def delete_clinic(self, clinic_id):
        patients, complete = self.children(PATIENT, 'clinic_id', clinic_id)
        all_gone = complete
        for patient in patients:
            if not self.delete_patient(patient['id']):
                all_gone = False
        if not all_gone:
            return False
        return self.delete_everywhere(CLINIC, clinic_id)


CHILDREN = {
    CLINIC: (PATIENT, 'clinic_id'),
    PATIENT: (VIDEO, 'patient_id'),
}


def _checkpoint_no_children(kind, record_id):
    if kind not in CHILDREN:
        return
    child_kind, fk_name = CHILDREN[kind]
    try:
        leftovers = fetch_children(child_kind, fk_name, record_id)
    except BackendUnavailable:
        return
    log_consistency_checkpoint(
        f'{kind}_cascade_complete',
        entity_ids={f'{kind}_id': record_id},
        checks_passed={'no_children_left': not leftovers},
    )


@metrics.track_duration(metrics.cascade_deletion_duration_seconds)
def cascade_delete(kind, record_id, schedule_retry=True):
    """
    Delete record_id and everything under it from every active store.

    Authorization is the caller's job. Raises PartialDeletion when any step
    failed; the same call can then be repeated safely.
    """
    deletion = CascadeDeletion(kind, record_id).run()

    if deletion.failures:
        metrics.cascade_deletions_total.labels(kind=kind, result='partial').inc()
        log_domain_event(
            f'{kind}_deleted',
            entity_type=kind,
            entity_id=record_id,
            result='partial',
            failed_steps=len(deletion.failures),
            deleted=deletion.deleted,
        )
        if schedule_retry and settings.PORTAL_AUTO_RETRY_DELETIONS:
            from .tasks import retry_cascade_deletion

            retry_cascade_deletion.apply_async(
                args=[kind, record_id],
                countdown=settings.PORTAL_DELETION_RETRY_COUNTDOWN,
            )
        raise PartialDeletion(kind, record_id, deletion.failures)

    metrics.cascade_deletions_total.labels(kind=kind, result='success').inc()
    log_domain_event(
        f'{kind}_deleted',
        entity_type=kind,
        entity_id=record_id,
        deleted=deletion.deleted,
    )
    _checkpoint_no_children(kind, record_id)
    return deletion.deleted


def _nothing_deleted():
    return {CLINIC: 0, PATIENT: 0, VIDEO: 0}


def delete_clinic(session, clinic_id):
    """Delete a clinic with all its patients and videos. Admin only."""
    require_admin(session)
    ensure_valid_id(clinic_id, kind=CLINIC)
    revoke_clinic_sessions(clinic_id)
    return cascade_delete(CLINIC, clinic_id)


def delete_patient(session, patient_id):
    """Delete a patient and all of their videos."""
    ensure_valid_id(patient_id, kind=PATIENT)
    patient = _locate(PATIENT, patient_id)
    if patient is None:
        return _nothing_deleted()
    require_clinic_scope(session, patient['clinic_id'])
    return cascade_delete(PATIENT, patient_id)


def delete_video(session, video_id):
    """Release a video's media and delete its record."""
    ensure_valid_id(video_id, kind=VIDEO)
    video = _locate(VIDEO, video_id)
    if video is None:
        return _nothing_deleted()
    patient = _locate(PATIENT, video['patient_id'])
    require_clinic_scope(session, patient['clinic_id'] if patient else None)
    return cascade_delete(VIDEO, video_id)


# ----------------------------------------------------------------------
# Derived reads and public links
# ----------------------------------------------------------------------

def clinic_stats(session, clinic_id):
    """
    Patient and video counts of a clinic, recomputed from the current
    collections on every call.
    """
    get_clinic(session, clinic_id)
    patients = fetch_children(PATIENT, 'clinic_id', clinic_id)
    video_count = sum(
        len(fetch_children(VIDEO, 'patient_id', patient['id']))
        for patient in patients
    )
    return {'patient_count': len(patients), 'video_count': video_count}


def acquire_public_link(session, patient_id, origin=None):
    """
    Build the patient's public URL and QR image URL and cache the URL on
    the patient. The legacy URL is the path printed on first-generation QR
    codes. Caching is informational; the public page never checks it.
    """
    patient = get_patient(session, patient_id)
    url = public_url(patient['id'], origin=origin)

    if patient.get('public_link') != url:
        patient = dict(patient, public_link=url)
        put_record(PATIENT, patient)
        log_domain_event('public_link_acquired', entity_type=PATIENT, entity_id=patient['id'])

    return {
        'public_url': url,
        'legacy_public_url': legacy_public_url(patient['id'], origin=origin),
        'qr_code_url': qr_code_url(url),
    }
