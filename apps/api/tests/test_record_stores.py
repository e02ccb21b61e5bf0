"""
Tests for record store backends.

Both backends must behave the same through the RecordStore interface;
backend specific behaviour (log replay, compaction, I/O failures) is tested
separately.

Run: pytest apps/api/tests/test_record_stores.py -v
"""
import json
from unittest.mock import patch

import pytest
from django.core.exceptions import ImproperlyConfigured
from django.db import OperationalError
from django.utils import timezone

from apps.core.errors import BackendUnavailable, RecordNotFound
from apps.core.identifiers import new_id
from apps.records.jsonlog import JsonLogRecordStore
from apps.records.orm import OrmRecordStore
from apps.records.registry import build_store


def clinic_record(**overrides):
    record = {
        'id': new_id(),
        'name': 'Clinic',
        'address': '',
        'city': '',
        'login_email': f'{new_id()[:8]}@example.com',
        'login_secret': 'md5$salt$hash',
        'created_at': timezone.now(),
    }
    record.update(overrides)
    return record


def patient_record(clinic_id, **overrides):
    record = {
        'id': new_id(),
        'clinic_id': clinic_id,
        'name': 'Patient',
        'phone': '',
        'created_at': timezone.now(),
        'public_link': '',
    }
    record.update(overrides)
    return record


@pytest.fixture(params=['orm', 'jsonlog'])
def store(request, db, tmp_path):
    if request.param == 'orm':
        return OrmRecordStore()
    return JsonLogRecordStore(tmp_path / 'records.jsonl', fsync=False)


@pytest.mark.django_db
class TestRecordStoreContract:

    def test_put_then_get(self, store):
        clinic = clinic_record(name='Sunrise')
        store.put('clinic', clinic)

        fetched = store.get_by_id('clinic', clinic['id'])
        assert fetched['name'] == 'Sunrise'
        assert fetched['login_email'] == clinic['login_email']
        assert fetched['created_at'] == clinic['created_at']

    def test_get_missing_raises_record_not_found(self, store):
        with pytest.raises(RecordNotFound) as exc_info:
            store.get_by_id('clinic', new_id())
        assert exc_info.value.kind == 'clinic'

    def test_put_replaces_existing(self, store):
        clinic = clinic_record(name='Before')
        store.put('clinic', clinic)
        store.put('clinic', dict(clinic, name='After'))

        assert store.get_by_id('clinic', clinic['id'])['name'] == 'After'
        assert len(store.list_all('clinic')) == 1

    def test_list_by_foreign_key(self, store):
        clinic_a = clinic_record()
        clinic_b = clinic_record()
        store.put('clinic', clinic_a)
        store.put('clinic', clinic_b)
        store.put('patient', patient_record(clinic_a['id'], name='A1'))
        store.put('patient', patient_record(clinic_a['id'], name='A2'))
        store.put('patient', patient_record(clinic_b['id'], name='B1'))

        names = sorted(p['name'] for p in store.list_by_foreign_key('patient', 'clinic_id', clinic_a['id']))
        assert names == ['A1', 'A2']
        assert store.list_by_foreign_key('patient', 'clinic_id', new_id()) == []

    def test_list_by_unknown_field_is_rejected(self, store):
        with pytest.raises(ValueError):
            store.list_by_foreign_key('patient', 'owner_id', new_id())

    def test_delete_is_idempotent(self, store):
        clinic = clinic_record()
        store.put('clinic', clinic)

        store.delete('clinic', clinic['id'])
        store.delete('clinic', clinic['id'])
        store.delete('clinic', new_id())

        assert not store.exists('clinic', clinic['id'])
        assert store.list_all('clinic') == []

    def test_optional_fields_get_defaults(self, store):
        clinic = clinic_record()
        del clinic['address']
        del clinic['city']
        store.put('clinic', clinic)

        fetched = store.get_by_id('clinic', clinic['id'])
        assert fetched['address'] == ''
        assert fetched['city'] == ''

    def test_record_missing_required_field_is_rejected(self, store):
        clinic = clinic_record()
        del clinic['login_email']
        with pytest.raises(ValueError):
            store.put('clinic', clinic)

    def test_unknown_kind_is_rejected(self, store):
        with pytest.raises(ValueError):
            store.list_all('invoice')

    def test_legacy_ids_are_stored_verbatim(self, store):
        clinic = clinic_record(id='1700000000000')
        store.put('clinic', clinic)
        store.put('patient', patient_record('1700000000000', id='1700000000001'))

        assert store.get_by_id('patient', '1700000000001')['clinic_id'] == '1700000000000'


@pytest.mark.django_db
class TestOrmRecordStore:

    def test_database_errors_become_backend_unavailable(self):
        store = OrmRecordStore()
        with patch.object(store, '_queryset', side_effect=OperationalError('connection refused')):
            with pytest.raises(BackendUnavailable) as exc_info:
                store.list_all('clinic')
        assert exc_info.value.backend == 'orm'
        assert exc_info.value.operation == 'list_all'
        assert exc_info.value.status_code == 503

    def test_rows_land_in_portal_tables(self):
        from apps.clinics.models import Clinic

        store = OrmRecordStore()
        clinic = clinic_record()
        store.put('clinic', clinic)

        assert Clinic.objects.filter(pk=clinic['id']).exists()


class TestJsonLogRecordStore:

    def test_log_is_replayed_by_a_fresh_instance(self, tmp_path):
        path = tmp_path / 'records.jsonl'
        first = JsonLogRecordStore(path, fsync=False)
        kept = clinic_record(name='Kept')
        dropped = clinic_record(name='Dropped')
        first.put('clinic', kept)
        first.put('clinic', dropped)
        first.delete('clinic', dropped['id'])

        second = JsonLogRecordStore(path, fsync=False)
        records = second.list_all('clinic')

        assert [r['name'] for r in records] == ['Kept']
        assert records[0]['created_at'] == kept['created_at']

    def test_every_mutation_is_appended(self, tmp_path):
        path = tmp_path / 'records.jsonl'
        store = JsonLogRecordStore(path, fsync=False)
        clinic = clinic_record()
        store.put('clinic', clinic)
        store.delete('clinic', clinic['id'])

        entries = [json.loads(line) for line in path.read_text().splitlines()]
        assert [e['op'] for e in entries] == ['put', 'delete']
        assert all(e['id'] == clinic['id'] for e in entries)

    def test_delete_of_absent_record_writes_nothing(self, tmp_path):
        path = tmp_path / 'records.jsonl'
        store = JsonLogRecordStore(path, fsync=False)
        store.delete('clinic', new_id())
        assert not path.exists()

    def test_torn_trailing_line_is_skipped(self, tmp_path):
        path = tmp_path / 'records.jsonl'
        store = JsonLogRecordStore(path, fsync=False)
        clinic = clinic_record()
        store.put('clinic', clinic)
        with path.open('a') as fh:
            fh.write('{"op": "put", "kind": "clinic", "id": "17000')

        replayed = JsonLogRecordStore(path, fsync=False)
        assert replayed.exists('clinic', clinic['id'])
        assert len(replayed.list_all('clinic')) == 1

    def test_compact_keeps_only_live_records(self, tmp_path):
        path = tmp_path / 'records.jsonl'
        store = JsonLogRecordStore(path, fsync=False)
        live = clinic_record()
        store.put('clinic', live)
        store.put('clinic', dict(live, name='Renamed'))
        gone = clinic_record()
        store.put('clinic', gone)
        store.delete('clinic', gone['id'])

        store.compact()

        lines = path.read_text().splitlines()
        assert len(lines) == 1
        store.reload()
        assert store.get_by_id('clinic', live['id'])['name'] == 'Renamed'

    def test_io_errors_become_backend_unavailable(self, tmp_path):
        blocker = tmp_path / 'not-a-directory'
        blocker.write_text('')
        store = JsonLogRecordStore(blocker / 'records.jsonl', fsync=False)

        with pytest.raises(BackendUnavailable) as exc_info:
            store.put('clinic', clinic_record())
        assert exc_info.value.backend == 'jsonlog'

    def test_failed_append_leaves_memory_unchanged(self, tmp_path):
        store = JsonLogRecordStore(tmp_path / 'records.jsonl', fsync=False)
        clinic = clinic_record()
        with patch.object(store, '_write_line', side_effect=OSError('disk full')):
            with pytest.raises(BackendUnavailable):
                store.put('clinic', clinic)
        assert not store.exists('clinic', clinic['id'])


class TestRegistry:

    def test_build_store_from_dotted_path(self, tmp_path):
        store = build_store({
            'BACKEND': 'apps.records.jsonlog.JsonLogRecordStore',
            'OPTIONS': {'path': str(tmp_path / 'x.jsonl')},
        })
        assert isinstance(store, JsonLogRecordStore)

    def test_unknown_backend_is_improperly_configured(self):
        with pytest.raises(ImproperlyConfigured):
            build_store({'BACKEND': 'apps.records.nowhere.Store'})

    def test_non_store_backend_is_rejected(self):
        with pytest.raises(ImproperlyConfigured):
            build_store('apps.videos.storage.FileSystemMediaStore')
