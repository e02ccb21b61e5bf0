"""
Celery tasks for the cascade engine.
"""
from celery import shared_task

from apps.core.errors import PartialDeletion
from apps.core.observability import get_sanitized_logger, metrics

logger = get_sanitized_logger(__name__)

RETRY_BASE_SECONDS = 60


@shared_task(name='apps.integrity.tasks.retry_cascade_deletion', bind=True, max_retries=5)
def retry_cascade_deletion(self, kind, record_id):
    """
    Re-run an interrupted cascade deletion until it completes.

    Args:
        kind: 'clinic', 'patient' or 'video'
        record_id: Root of the cascade

    Retries with exponential backoff while the pass stays partial.
    """
    from .services import cascade_delete

    try:
        deleted = cascade_delete(kind, record_id, schedule_retry=False)
    except PartialDeletion as exc:
        metrics.cascade_retries_total.labels(kind=kind, result='partial').inc()
        logger.warning(
            'Cascade deletion still incomplete',
            extra={
                'event': 'cascade_retry_partial',
                'kind': kind,
                'record_id': record_id,
                'attempt': self.request.retries + 1,
                'failed_steps': len(exc.failures),
            }
        )
        raise self.retry(exc=exc, countdown=RETRY_BASE_SECONDS * (2 ** self.request.retries))

    metrics.cascade_retries_total.labels(kind=kind, result='success').inc()
    return deleted
