"""
Record store backed by the Django ORM (the relational service).
"""
from django.apps import apps as django_apps
from django.db import DatabaseError, transaction

from apps.core.errors import BackendUnavailable, RecordNotFound
from apps.core.observability import get_sanitized_logger, metrics

from .base import CLINIC, FIELDS, PATIENT, VIDEO, RecordStore, check_kind, normalize_record

logger = get_sanitized_logger(__name__)

MODEL_LABELS = {
    CLINIC: 'clinics.Clinic',
    PATIENT: 'patients.Patient',
    VIDEO: 'videos.Video',
}


class OrmRecordStore(RecordStore):
    """
    Authoritative store in the default deployment.

    Records map one to one onto the clinic, patient and video tables.
    """

    name = 'orm'

    def __init__(self, using='default'):
        self.using = using

    def _model(self, kind):
        check_kind(kind)
        return django_apps.get_model(MODEL_LABELS[kind])

    def _queryset(self, kind):
        return self._model(kind)._default_manager.using(self.using)

    def _to_record(self, kind, instance):
        # FK fields are read through their *_id attribute
        return {field: getattr(instance, field) for field in FIELDS[kind]}

    def _unavailable(self, operation, exc):
        metrics.backend_unavailable_total.labels(backend=self.name, operation=operation).inc()
        logger.error(
            'Database operation failed',
            extra={
                'event': 'record_store_unavailable',
                'backend': self.name,
                'operation': operation,
                'error': exc.__class__.__name__,
            }
        )
        return BackendUnavailable(self.name, operation, reason=str(exc))

    def list_all(self, kind):
        try:
            return [self._to_record(kind, obj) for obj in self._queryset(kind)]
        except DatabaseError as exc:
            raise self._unavailable('list_all', exc) from exc

    def get_by_id(self, kind, record_id):
        model = self._model(kind)
        try:
            instance = self._queryset(kind).get(pk=record_id)
        except model.DoesNotExist:
            raise RecordNotFound(kind, record_id)
        except DatabaseError as exc:
            raise self._unavailable('get_by_id', exc) from exc
        return self._to_record(kind, instance)

    def list_by_foreign_key(self, kind, fk_name, fk_value):
        if fk_name not in FIELDS[kind]:
            raise ValueError(f'{kind} has no field {fk_name!r}')
        try:
            queryset = self._queryset(kind).filter(**{fk_name: fk_value})
            return [self._to_record(kind, obj) for obj in queryset]
        except DatabaseError as exc:
            raise self._unavailable('list_by_foreign_key', exc) from exc

    def put(self, kind, record):
        record = normalize_record(kind, record)
        defaults = {k: v for k, v in record.items() if k != 'id'}
        try:
            with transaction.atomic(using=self.using):
                self._queryset(kind).update_or_create(id=record['id'], defaults=defaults)
        except DatabaseError as exc:
            raise self._unavailable('put', exc) from exc

    def delete(self, kind, record_id):
        try:
            with transaction.atomic(using=self.using):
                self._queryset(kind).filter(pk=record_id).delete()
        except DatabaseError as exc:
            raise self._unavailable('delete', exc) from exc
