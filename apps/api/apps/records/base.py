"""
Record store contract.

A record store holds the three flat collections (clinic, patient, video) as
plain dicts keyed by id, using the canonical snake_case field names below.
Backends only persist; cross-store consistency belongs to apps.integrity.
"""
from abc import ABC, abstractmethod

from apps.core.errors import RecordNotFound


CLINIC = 'clinic'
PATIENT = 'patient'
VIDEO = 'video'

KINDS = (CLINIC, PATIENT, VIDEO)

FIELDS = {
    CLINIC: ('id', 'name', 'address', 'city', 'login_email', 'login_secret', 'created_at'),
    PATIENT: ('id', 'clinic_id', 'name', 'phone', 'created_at', 'public_link'),
    VIDEO: ('id', 'patient_id', 'file_name', 'file_url', 'content_type', 'size_bytes', 'uploaded_at'),
}

DEFAULTS = {
    CLINIC: {'address': '', 'city': ''},
    PATIENT: {'phone': '', 'public_link': ''},
    VIDEO: {'file_url': '', 'content_type': '', 'size_bytes': None},
}

# Child kind -> (parent kind, foreign key field)
PARENTS = {
    PATIENT: (CLINIC, 'clinic_id'),
    VIDEO: (PATIENT, 'patient_id'),
}

TIMESTAMP_FIELDS = {
    CLINIC: 'created_at',
    PATIENT: 'created_at',
    VIDEO: 'uploaded_at',
}


def check_kind(kind):
    if kind not in KINDS:
        raise ValueError(f'Unknown record kind: {kind!r}')


def normalize_record(kind, record):
    """
    Return a copy of record restricted to the canonical fields of kind,
    with optional fields filled in.
    """
    check_kind(kind)
    if not record.get('id'):
        raise ValueError(f'{kind} record has no id')
    normalized = dict(DEFAULTS[kind])
    for field in FIELDS[kind]:
        if field in record:
            normalized[field] = record[field]
    missing = [f for f in FIELDS[kind] if f not in normalized]
    if missing:
        raise ValueError(f'{kind} record {record["id"]} is missing {", ".join(missing)}')
    return normalized


class RecordStore(ABC):
    """
    Uniform persistence interface over the three collections.

    Implementations raise apps.core.errors.BackendUnavailable for any I/O
    failure and RecordNotFound from get_by_id. delete() of an absent id is
    a no-op.
    """

    name = 'abstract'

    @abstractmethod
    def list_all(self, kind):
        """All records of kind. Callers must not rely on order."""

    @abstractmethod
    def get_by_id(self, kind, record_id):
        """The record with record_id, or raise RecordNotFound."""

    @abstractmethod
    def list_by_foreign_key(self, kind, fk_name, fk_value):
        """Records of kind whose fk_name equals fk_value."""

    @abstractmethod
    def put(self, kind, record):
        """Insert or replace the record keyed by record['id']."""

    @abstractmethod
    def delete(self, kind, record_id):
        """Remove the record if present."""

    def exists(self, kind, record_id):
        try:
            self.get_by_id(kind, record_id)
        except RecordNotFound:
            return False
        return True

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.name}>'
