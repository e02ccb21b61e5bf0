"""
Tests for the identifier policy.

Run: pytest apps/api/tests/test_identifiers.py -v
"""
import uuid

import pytest

from apps.core.errors import InvalidIdFormat
from apps.core.identifiers import (
    ensure_valid_id,
    is_legacy_id,
    is_uuid,
    is_valid_id,
    new_id,
)


class TestIsUuid:

    def test_canonical_uuid4(self):
        assert is_uuid(str(uuid.uuid4())) is True

    def test_uppercase_is_accepted(self):
        assert is_uuid('3F2504E0-4F89-41D3-9A0C-0305E82C3301') is True

    @pytest.mark.parametrize('value', [
        '',
        'not-a-uuid',
        '3f2504e04f8941d39a0c0305e82c3301',  # no dashes
        '3f2504e0-4f89-41d3-9a0c-0305e82c330',  # short last group
        '3f2504e0-4f89-61d3-9a0c-0305e82c3301',  # version 6
        '3f2504e0-4f89-41d3-7a0c-0305e82c3301',  # wrong variant
        '{3f2504e0-4f89-41d3-9a0c-0305e82c3301}',
        '3f2504e0-4f89-41d3-9a0c-0305e82c3301\n',  # trailing newline
    ])
    def test_rejects_malformed(self, value):
        assert is_uuid(value) is False

    def test_rejects_non_strings(self):
        assert is_uuid(None) is False
        assert is_uuid(uuid.uuid4()) is False


class TestIsLegacyId:

    def test_millisecond_timestamp(self):
        assert is_legacy_id('1700000000000') is True

    def test_ten_digits_is_minimum(self):
        assert is_legacy_id('1234567890') is True
        assert is_legacy_id('123456789') is False

    @pytest.mark.parametrize('value', [
        '12345678901a',
        '-1700000000000',
        '1700000000000.5',
        ' 1700000000000',
        '12345678901\n',
        '1700000000000\n\n',
    ])
    def test_rejects_non_digits(self, value):
        assert is_legacy_id(value) is False

    def test_rejects_integers(self):
        assert is_legacy_id(1700000000000) is False


class TestEnsureValidId:

    def test_returns_value_unchanged(self):
        value = str(uuid.uuid4())
        assert ensure_valid_id(value) == value
        assert ensure_valid_id('1700000000000') == '1700000000000'

    @pytest.mark.parametrize('value', ['', 'abc', '../etc/passwd', "1' OR '1'='1", None, '12345678901\n'])
    def test_raises_invalid_id_format(self, value):
        with pytest.raises(InvalidIdFormat) as exc_info:
            ensure_valid_id(value, kind='patient')
        assert exc_info.value.kind == 'patient'
        assert exc_info.value.status_code == 400


class TestNewId:

    def test_new_ids_are_uuid4(self):
        value = new_id()
        assert is_uuid(value)
        assert uuid.UUID(value).version == 4

    def test_new_ids_are_never_legacy(self):
        assert not any(is_legacy_id(new_id()) for _ in range(50))

    def test_new_ids_are_unique(self):
        ids = {new_id() for _ in range(1000)}
        assert len(ids) == 1000
        assert all(is_valid_id(i) for i in ids)
