"""
Boundary mapping between external record shapes and canonical records.

Older portal exports use camelCase keys (clinicId, fileUrl, ...), plaintext
clinic passwords and browser-only blob: handles. Everything entering a
record store passes through from_external() first so stores only ever see
canonical snake_case records.
"""
from datetime import datetime, timezone as dt_timezone

from django.contrib.auth.hashers import identify_hasher, make_password
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from apps.core.identifiers import ensure_valid_id

from .base import CLINIC, FIELDS, PARENTS, PATIENT, TIMESTAMP_FIELDS, VIDEO, normalize_record


LEGACY_FIELDS = {
    CLINIC: {
        'id': 'id',
        'name': 'name',
        'address': 'address',
        'city': 'city',
        'email': 'login_email',
        'password': 'login_secret',
        'createdAt': 'created_at',
    },
    PATIENT: {
        'id': 'id',
        'name': 'name',
        'phone': 'phone',
        'clinicId': 'clinic_id',
        'createdAt': 'created_at',
        'qrCode': 'public_link',
    },
    VIDEO: {
        'id': 'id',
        'patientId': 'patient_id',
        'fileName': 'file_name',
        'fileUrl': 'file_url',
        'uploadedAt': 'uploaded_at',
    },
}

COLLECTIONS = {
    CLINIC: 'clinics',
    PATIENT: 'patients',
    VIDEO: 'videos',
}

# Collection keys used by the browser-storage generation of the portal
LEGACY_COLLECTIONS = {
    CLINIC: 'cinebaby_clinics',
    PATIENT: 'cinebaby_patients',
    VIDEO: 'cinebaby_videos',
}


def coerce_id(value, kind):
    """Ids may arrive as JSON numbers in old exports."""
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if isinstance(value, str):
        value = value.strip()
    return ensure_valid_id(value, kind=kind)


def parse_timestamp(value):
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = parse_datetime(value.strip())
    else:
        parsed = None
    if parsed is None:
        raise ValueError(f'Unreadable timestamp: {value!r}')
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


def hash_secret(secret):
    """Return secret unchanged if it is already a Django password hash."""
    try:
        identify_hasher(secret)
    except ValueError:
        return make_password(secret)
    return secret


def from_external(kind, raw, legacy=False):
    """
    Map one externally supplied record to a canonical record.

    Raises InvalidIdFormat for malformed ids and ValueError for any other
    unusable input.
    """
    if legacy:
        record = {dst: raw[src] for src, dst in LEGACY_FIELDS[kind].items() if src in raw}
        # Exports from the hosted database already used snake_case
        for field in FIELDS[kind]:
            if field in raw and field not in record:
                record[field] = raw[field]
    else:
        record = {field: raw[field] for field in FIELDS[kind] if field in raw}

    record['id'] = coerce_id(record.get('id'), kind)
    if kind in PARENTS:
        parent_kind, fk_name = PARENTS[kind]
        record[fk_name] = coerce_id(record.get(fk_name), parent_kind)

    ts_field = TIMESTAMP_FIELDS[kind]
    record[ts_field] = parse_timestamp(record.get(ts_field))

    if kind == CLINIC:
        record['login_email'] = (record.get('login_email') or '').strip().lower()
        if not record['login_email']:
            raise ValueError(f'clinic {record["id"]} has no login email')
        if not record.get('login_secret'):
            raise ValueError(f'clinic {record["id"]} has no login secret')
        record['login_secret'] = hash_secret(record['login_secret'])

    if kind == VIDEO:
        file_url = record.get('file_url') or ''
        # blob: handles only ever resolved inside the browser tab that made them
        if file_url.startswith('blob:'):
            file_url = ''
        record['file_url'] = file_url
        if record.get('size_bytes') is not None:
            record['size_bytes'] = int(record['size_bytes'])

    for field in ('name', 'phone', 'address', 'city', 'file_name', 'public_link', 'content_type'):
        if field in record and record[field] is None:
            record[field] = ''

    return normalize_record(kind, record)


def collections_from_payload(payload, legacy=False):
    """Split an export document into {kind: [raw records]}."""
    result = {}
    for kind, key in COLLECTIONS.items():
        items = payload.get(key)
        if items is None and legacy:
            items = payload.get(LEGACY_COLLECTIONS[kind])
        result[kind] = list(items or [])
    return result
