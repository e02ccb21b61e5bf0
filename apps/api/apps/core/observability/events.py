"""
Domain events logging helpers.

Provides structured event logging for portal operations.
"""
from typing import Dict, Optional
from .logging import get_sanitized_logger, sanitize_dict

logger = get_sanitized_logger(__name__)


def log_domain_event(
    event_name: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_ids: Optional[Dict[str, str]] = None,
    result: str = 'success',
    **extra_fields
):
    """
    Log a domain event with structured data.

    Args:
        event_name: Name of the event (e.g., 'clinic_deleted', 'video_uploaded')
        entity_type: Type of entity (e.g., 'clinic', 'patient')
        entity_id: ID of primary entity
        entity_ids: Dictionary of related entity IDs
        result: Result of operation (success, failure, partial, ...)
        **extra_fields: Additional fields to log (will be sanitized)

    Example:
        log_domain_event(
            'clinic_deleted',
            entity_type='clinic',
            entity_id=clinic_id,
            result='success',
            patients_deleted=3,
            videos_deleted=7
        )
    """
    event_data = {
        'event': event_name,
        'result': result,
    }

    if entity_type:
        event_data['entity_type'] = entity_type

    if entity_id:
        event_data['entity_id'] = entity_id

    if entity_ids:
        event_data.update(entity_ids)

    event_data.update(sanitize_dict(extra_fields))

    if result in ['failure', 'error']:
        logger.error(f'Domain event: {event_name}', extra=event_data)
    elif result in ['warning', 'partial', 'degraded', 'blocked', 'throttled']:
        logger.warning(f'Domain event: {event_name}', extra=event_data)
    else:
        logger.info(f'Domain event: {event_name}', extra=event_data)


def log_consistency_checkpoint(
    checkpoint_name: str,
    entity_ids: Dict[str, str],
    checks_passed: Dict[str, bool],
    **extra_fields
):
    """
    Log a consistency checkpoint event.

    Used after cascades and imports to record whether the no-orphan rules
    still hold.

    Example:
        log_consistency_checkpoint(
            'clinic_cascade_complete',
            entity_ids={'clinic_id': clinic_id},
            checks_passed={'no_patients_left': True, 'no_videos_left': True},
        )
    """
    all_passed = all(checks_passed.values())

    event_data = {
        'event': 'consistency_checkpoint',
        'checkpoint': checkpoint_name,
        'status': 'passed' if all_passed else 'failed',
        'checks': checks_passed,
    }
    event_data.update(entity_ids)
    event_data.update(sanitize_dict(extra_fields))

    if all_passed:
        logger.info(f'Checkpoint passed: {checkpoint_name}', extra=event_data)
    else:
        logger.error(f'Checkpoint FAILED: {checkpoint_name}', extra=event_data)


def log_cascade_step(kind, record_id, step, store, result='success', **extra):
    """Log one step (release/delete) of a cascade deletion."""
    log_domain_event(
        'cascade_step',
        entity_type=kind,
        entity_id=record_id,
        result=result,
        step=step,
        store=store,
        **extra
    )


def log_degraded_write(kind, record_id, operation, backend):
    """Log a write that only reached mirrors because the primary was down."""
    log_domain_event(
        'degraded_write',
        entity_type=kind,
        entity_id=record_id,
        result='degraded',
        operation=operation,
        backend=backend,
    )
