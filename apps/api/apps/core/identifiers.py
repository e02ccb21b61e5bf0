"""
Identifier policy for clinics, patients and videos.

New records always get a random UUID4. Numeric ids minted from a millisecond
timestamp by the first portal generation are still recognised so imported
data stays readable, but they are never minted again.
"""
import re
import uuid

from apps.core.errors import InvalidIdFormat


UUID_RE = re.compile(
    r'[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}',
    re.IGNORECASE,
)
LEGACY_ID_RE = re.compile(r'[0-9]{10,}')

ID_MAX_LENGTH = 36


def is_uuid(value) -> bool:
    """True iff value is a canonical 8-4-4-4-12 UUID (version 1-5, RFC variant)."""
    if not isinstance(value, str):
        return False
    return bool(UUID_RE.fullmatch(value))


def is_legacy_id(value) -> bool:
    """True iff value is a decimal digit string of at least 10 characters."""
    if not isinstance(value, str):
        return False
    return bool(LEGACY_ID_RE.fullmatch(value))


def is_valid_id(value) -> bool:
    return is_uuid(value) or is_legacy_id(value)


def ensure_valid_id(value, kind=None) -> str:
    """
    Return value unchanged, or raise InvalidIdFormat.

    Callers use this before any storage lookup so malformed ids never reach
    a backend.
    """
    if not is_valid_id(value):
        raise InvalidIdFormat(value, kind=kind)
    return value


def new_id() -> str:
    return str(uuid.uuid4())
