"""
Import a JSON export (canonical or legacy camelCase) into a record store.
"""
import json

from django.core.management.base import BaseCommand, CommandError

from apps.core.errors import BackendUnavailable
from apps.records.jsonlog import JsonLogRecordStore
from apps.records.registry import get_record_store
from apps.records.transfer import import_records


class Command(BaseCommand):
    help = 'Import clinics, patients and videos from a JSON document.'

    def add_arguments(self, parser):
        parser.add_argument('input', help='Path of the JSON export to read')
        parser.add_argument(
            '--legacy',
            action='store_true',
            help='Input uses the camelCase browser-storage layout (clinicId, fileUrl, ...)',
        )
        parser.add_argument(
            '--jsonlog',
            metavar='PATH',
            help='Write into this JSON-log store instead of the authoritative store',
        )
        parser.add_argument('--dry-run', action='store_true', help='Validate only, write nothing')

    def handle(self, *args, **options):
        try:
            with open(options['input'], encoding='utf-8') as fh:
                payload = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise CommandError(f'Cannot read {options["input"]}: {exc}') from exc

        if not isinstance(payload, dict):
            raise CommandError('Export document must be a JSON object')

        store = JsonLogRecordStore(options['jsonlog']) if options['jsonlog'] else get_record_store()

        try:
            report = import_records(
                payload,
                store,
                legacy=options['legacy'],
                dry_run=options['dry_run'],
            )
        except BackendUnavailable as exc:
            raise CommandError(str(exc)) from exc

        prefix = '[dry run] ' if options['dry_run'] else ''
        imported = ', '.join(f'{kind}: {count}' for kind, count in report.imported.items())
        self.stdout.write(f'{prefix}Imported {imported}')

        for orphan in report.orphans:
            self.stdout.write(self.style.WARNING(f'Skipped orphan {orphan["kind"]} {orphan["id"]}'))
        for conflict in report.conflicts:
            self.stdout.write(self.style.WARNING(f'Conflicting {conflict["kind"]} {conflict["id"]} left untouched'))
        for invalid in report.invalid:
            self.stdout.write(self.style.ERROR(
                f'Invalid {invalid["kind"]} at index {invalid["index"]}: {invalid["reason"]}'
            ))

        if report.ok:
            self.stdout.write(self.style.SUCCESS(f'{prefix}Import complete'))
        else:
            self.stdout.write(self.style.WARNING(f'{prefix}Import finished with skipped records'))
