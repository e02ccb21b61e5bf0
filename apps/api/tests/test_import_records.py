"""
Tests for record export/import and the legacy field mapping.

Run: pytest apps/api/tests/test_import_records.py -v
"""
import json
from io import StringIO

import pytest
from django.contrib.auth.hashers import check_password
from django.core.management import call_command
from django.core.management.base import CommandError

from apps.authz import services as authz_services
from apps.core.errors import InvalidIdFormat
from apps.records.jsonlog import JsonLogRecordStore
from apps.records.mapping import from_external
from apps.records.registry import get_record_store
from apps.records.transfer import export_records, import_records

CLINIC_ID = '1700000000000'
PATIENT_ID = '1700000000100'
VIDEO_ID = '1700000000200'


def legacy_payload():
    """Shape written by the browser-storage generation of the portal."""
    return {
        'cinebaby_clinics': [{
            'id': CLINIC_ID,
            'name': 'Legacy Clinic',
            'address': 'Old Street 1',
            'city': 'Sevilla',
            'email': 'Legacy@Example.com',
            'password': 'plain-secret',
            'createdAt': '2023-11-14T22:13:20.000Z',
        }],
        'cinebaby_patients': [{
            'id': PATIENT_ID,
            'name': 'Legacy Patient',
            'phone': '555',
            'clinicId': CLINIC_ID,
            'createdAt': '2023-11-14T22:15:00.000Z',
            'qrCode': 'https://old.example.com/patient/1700000000100/videos',
        }],
        'cinebaby_videos': [{
            'id': VIDEO_ID,
            'patientId': PATIENT_ID,
            'fileName': 'scan.mp4',
            'fileUrl': 'blob:https://old.example.com/5c1d',
            'uploadedAt': '2023-11-14T22:20:00.000Z',
        }],
    }


class TestLegacyMapping:

    def test_camel_case_fields_are_mapped(self):
        record = from_external('patient', legacy_payload()['cinebaby_patients'][0], legacy=True)

        assert record['clinic_id'] == CLINIC_ID
        assert record['public_link'].endswith('/videos')
        assert record['created_at'].year == 2023

    def test_numeric_ids_become_strings(self):
        raw = dict(legacy_payload()['cinebaby_patients'][0], id=1700000000100, clinicId=1700000000000)
        record = from_external('patient', raw, legacy=True)

        assert record['id'] == PATIENT_ID
        assert record['clinic_id'] == CLINIC_ID

    def test_plaintext_secrets_are_hashed(self, settings):
        record = from_external('clinic', legacy_payload()['cinebaby_clinics'][0], legacy=True)

        assert record['login_email'] == 'legacy@example.com'
        assert record['login_secret'] != 'plain-secret'
        assert check_password('plain-secret', record['login_secret'])

    def test_blob_handles_are_dropped(self):
        record = from_external('video', legacy_payload()['cinebaby_videos'][0], legacy=True)
        assert record['file_url'] == ''

    def test_malformed_ids_are_refused(self):
        raw = dict(legacy_payload()['cinebaby_patients'][0], id='p-1')
        with pytest.raises(InvalidIdFormat):
            from_external('patient', raw, legacy=True)


@pytest.mark.django_db
class TestImport:

    def test_legacy_import(self):
        store = get_record_store()

        report = import_records(legacy_payload(), store, legacy=True)

        assert report.ok
        assert report.imported == {'clinic': 1, 'patient': 1, 'video': 1}
        assert store.get_by_id('video', VIDEO_ID)['file_url'] == ''

    def test_imported_clinic_can_log_in(self):
        import_records(legacy_payload(), get_record_store(), legacy=True)

        session = authz_services.login('legacy@example.com', 'plain-secret')
        assert session.clinic_id == CLINIC_ID

    def test_import_is_repeatable(self):
        store = get_record_store()
        import_records(legacy_payload(), store, legacy=True)

        again = import_records(legacy_payload(), store, legacy=True)

        assert again.ok
        assert again.imported == {'clinic': 0, 'patient': 0, 'video': 0}
        assert again.unchanged == {'clinic': 1, 'patient': 1, 'video': 1}

    def test_orphans_are_skipped(self):
        payload = legacy_payload()
        payload['cinebaby_clinics'] = []

        report = import_records(payload, get_record_store(), legacy=True)

        assert not report.ok
        assert {o['kind'] for o in report.orphans} == {'patient', 'video'}
        assert get_record_store().list_all('patient') == []
        assert get_record_store().list_all('video') == []

    def test_conflicting_ids_are_left_untouched(self):
        store = get_record_store()
        import_records(legacy_payload(), store, legacy=True)
        payload = legacy_payload()
        payload['cinebaby_patients'][0]['name'] = 'Someone Else'

        report = import_records(payload, store, legacy=True)

        assert report.conflicts == [{'kind': 'patient', 'id': PATIENT_ID}]
        assert store.get_by_id('patient', PATIENT_ID)['name'] == 'Legacy Patient'

    def test_taken_login_email_is_a_conflict(self, clinic):
        payload = legacy_payload()
        payload['cinebaby_clinics'][0]['email'] = clinic['login_email']

        report = import_records(payload, get_record_store(), legacy=True)

        assert report.conflicts[0]['field'] == 'login_email'
        assert not get_record_store().exists('clinic', CLINIC_ID)

    def test_dry_run_writes_nothing(self):
        report = import_records(legacy_payload(), get_record_store(), legacy=True, dry_run=True)

        assert report.imported == {'clinic': 1, 'patient': 1, 'video': 1}
        assert get_record_store().list_all('clinic') == []

    def test_export_then_import_into_jsonlog(self, tmp_path, clinic, patient, video):
        payload = json.loads(json.dumps(export_records(get_record_store())))
        target = JsonLogRecordStore(tmp_path / 'copy.jsonl', fsync=False)

        report = import_records(payload, target)

        assert report.ok
        assert target.get_by_id('video', video['id'])['file_url'] == video['file_url']
        assert target.get_by_id('patient', patient['id'])['created_at'] == patient['created_at']


@pytest.mark.django_db
class TestCommands:

    def test_import_command(self, tmp_path):
        path = tmp_path / 'legacy.json'
        path.write_text(json.dumps(legacy_payload()))
        out = StringIO()

        call_command('import_records', str(path), '--legacy', stdout=out)

        assert 'Import complete' in out.getvalue()
        assert get_record_store().exists('video', VIDEO_ID)

    def test_import_command_reports_orphans(self, tmp_path):
        payload = legacy_payload()
        payload['cinebaby_clinics'] = []
        path = tmp_path / 'legacy.json'
        path.write_text(json.dumps(payload))
        out = StringIO()

        call_command('import_records', str(path), '--legacy', stdout=out)

        assert f'Skipped orphan patient {PATIENT_ID}' in out.getvalue()

    def test_import_command_rejects_unreadable_file(self, tmp_path):
        path = tmp_path / 'broken.json'
        path.write_text('{not json')

        with pytest.raises(CommandError):
            call_command('import_records', str(path))

    def test_export_command(self, tmp_path, clinic, patient):
        path = tmp_path / 'export.json'
        out = StringIO()

        call_command('export_records', str(path), stdout=out)

        document = json.loads(path.read_text())
        assert document['version'] == 1
        assert [c['id'] for c in document['clinics']] == [clinic['id']]
        assert [p['id'] for p in document['patients']] == [patient['id']]
        assert 'Exported' in out.getvalue()

    def test_hash_admin_password_command(self):
        out = StringIO()
        call_command('hash_admin_password', '--password', 'new-admin-secret', stdout=out)
        assert check_password('new-admin-secret', out.getvalue().strip())
