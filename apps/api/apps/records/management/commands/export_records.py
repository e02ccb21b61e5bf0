"""
Export the authoritative record store (or a JSON-log store) to a JSON file.
"""
import json

from django.core.management.base import BaseCommand, CommandError
from django.core.serializers.json import DjangoJSONEncoder

from apps.core.errors import BackendUnavailable
from apps.records.jsonlog import JsonLogRecordStore
from apps.records.registry import get_record_store
from apps.records.transfer import export_records


class Command(BaseCommand):
    help = 'Export clinics, patients and videos to a JSON document.'

    def add_arguments(self, parser):
        parser.add_argument('output', help='Path of the JSON file to write ("-" for stdout)')
        parser.add_argument(
            '--jsonlog',
            metavar='PATH',
            help='Read from this JSON-log store instead of the authoritative store',
        )

    def handle(self, *args, **options):
        store = JsonLogRecordStore(options['jsonlog']) if options['jsonlog'] else get_record_store()

        try:
            payload = export_records(store)
        except BackendUnavailable as exc:
            raise CommandError(str(exc)) from exc

        document = json.dumps(payload, cls=DjangoJSONEncoder, indent=2)
        if options['output'] == '-':
            self.stdout.write(document)
            return

        with open(options['output'], 'w', encoding='utf-8') as fh:
            fh.write(document)

        counts = ', '.join(f'{key}: {len(payload[key])}' for key in ('clinics', 'patients', 'videos'))
        self.stdout.write(self.style.SUCCESS(f'Exported {counts} to {options["output"]}'))
