"""
Public access resolver.

Decides what an unauthenticated visitor holding a patient id may see.
Knowing the id is the only credential; no other check is made.
"""
from dataclasses import dataclass, field

from apps.core.errors import BackendUnavailable, MediaReleased
from apps.core.identifiers import ensure_valid_id
from apps.core.observability import get_sanitized_logger
from apps.integrity.selectors import fetch, fetch_children, newest_first
from apps.records.base import PATIENT, VIDEO
from apps.videos.storage import get_media_store

logger = get_sanitized_logger(__name__)


@dataclass
class PublicVideo:
    id: str
    file_name: str
    uploaded_at: object
    url: str


@dataclass
class ResolvedPatient:
    patient: dict
    videos: list = field(default_factory=list)


def resolve(raw_id):
    """
    Resolve raw_id to the patient and their playable videos.

    Raises InvalidIdFormat before any storage access when raw_id is
    malformed, and RecordNotFound when no such patient exists.
    """
    patient_id = ensure_valid_id(raw_id, kind=PATIENT)
    patient = fetch(PATIENT, patient_id)

    ready = [v for v in fetch_children(VIDEO, 'patient_id', patient_id) if v['file_url']]
    media_store = get_media_store()

    videos = []
    for video in newest_first(VIDEO, ready):
        try:
            url = media_store.playback_url(video['file_url'])
        except (MediaReleased, BackendUnavailable) as exc:
            logger.warning(
                'Public video skipped',
                extra={
                    'event': 'public_video_skipped',
                    'video_id': video['id'],
                    'reason': exc.code,
                }
            )
            continue
        videos.append(PublicVideo(
            id=video['id'],
            file_name=video['file_name'],
            uploaded_at=video['uploaded_at'],
            url=url,
        ))

    return ResolvedPatient(patient=patient, videos=videos)
