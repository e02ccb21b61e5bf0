"""
Durable key-value log record store.

Every mutation is appended to a JSON-lines file and fsynced before the
in-memory mirror changes. The file is replayed into memory on first use.
Suitable as a low-durability mirror or as a single-node store for small
deployments.
"""
import json
import os
import threading
from pathlib import Path

from django.core.serializers.json import DjangoJSONEncoder
from django.utils.dateparse import parse_datetime

from apps.core.errors import BackendUnavailable, RecordNotFound
from apps.core.observability import get_sanitized_logger, metrics

from .base import FIELDS, KINDS, TIMESTAMP_FIELDS, RecordStore, check_kind, normalize_record

logger = get_sanitized_logger(__name__)

OP_PUT = 'put'
OP_DELETE = 'delete'


class JsonLogRecordStore(RecordStore):
    """
    Append-only log of {"op", "kind", "id", "record"} entries.
    """

    name = 'jsonlog'

    def __init__(self, path, fsync=True):
        self.path = Path(path)
        self.fsync = fsync
        self._lock = threading.Lock()
        self._data = None

    # ------------------------------------------------------------------
    # Log handling
    # ------------------------------------------------------------------

    def _unavailable(self, operation, exc):
        metrics.backend_unavailable_total.labels(backend=self.name, operation=operation).inc()
        logger.error(
            'Record log I/O failed',
            extra={
                'event': 'record_store_unavailable',
                'backend': self.name,
                'operation': operation,
                'error': exc.__class__.__name__,
            }
        )
        return BackendUnavailable(self.name, operation, reason=str(exc))

    def _encode(self, kind, record):
        # DjangoJSONEncoder truncates datetimes to milliseconds
        field = TIMESTAMP_FIELDS[kind]
        value = record.get(field)
        if hasattr(value, 'isoformat'):
            record = dict(record, **{field: value.isoformat()})
        return record

    def _decode(self, kind, record):
        field = TIMESTAMP_FIELDS[kind]
        value = record.get(field)
        if isinstance(value, str):
            record[field] = parse_datetime(value)
        return record

    def _replay(self):
        data = {kind: {} for kind in KINDS}
        if not self.path.exists():
            return data

        with self.path.open('r', encoding='utf-8') as fh:
            for lineno, line in enumerate(fh, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    # A torn trailing write from a crash; everything before it is intact
                    logger.warning(
                        'Skipping unreadable record log line',
                        extra={'event': 'record_log_corrupt_line', 'line': lineno},
                    )
                    continue
                kind = entry.get('kind')
                if kind not in data:
                    continue
                if entry.get('op') == OP_PUT:
                    data[kind][entry['id']] = self._decode(kind, entry['record'])
                elif entry.get('op') == OP_DELETE:
                    data[kind].pop(entry['id'], None)
        return data

    def _load(self, operation):
        if self._data is None:
            try:
                self._data = self._replay()
            except OSError as exc:
                raise self._unavailable(operation, exc) from exc
        return self._data

    def _write_line(self, fh, entry):
        fh.write(json.dumps(entry, cls=DjangoJSONEncoder) + '\n')

    def _append(self, entry, operation):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open('a', encoding='utf-8') as fh:
                self._write_line(fh, entry)
                fh.flush()
                if self.fsync:
                    os.fsync(fh.fileno())
        except OSError as exc:
            raise self._unavailable(operation, exc) from exc

    def compact(self):
        """Rewrite the log as one put per live record."""
        with self._lock:
            data = self._load('compact')
            tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with tmp_path.open('w', encoding='utf-8') as fh:
                    for kind in KINDS:
                        for record_id, record in data[kind].items():
                            entry = {'op': OP_PUT, 'kind': kind, 'id': record_id, 'record': self._encode(kind, record)}
                            self._write_line(fh, entry)
                    fh.flush()
                    if self.fsync:
                        os.fsync(fh.fileno())
                os.replace(tmp_path, self.path)
            except OSError as exc:
                raise self._unavailable('compact', exc) from exc

    def reload(self):
        """Drop the in-memory mirror; the next call replays the log."""
        with self._lock:
            self._data = None

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------

    def list_all(self, kind):
        check_kind(kind)
        with self._lock:
            return [dict(r) for r in self._load('list_all')[kind].values()]

    def get_by_id(self, kind, record_id):
        check_kind(kind)
        with self._lock:
            record = self._load('get_by_id')[kind].get(record_id)
        if record is None:
            raise RecordNotFound(kind, record_id)
        return dict(record)

    def list_by_foreign_key(self, kind, fk_name, fk_value):
        check_kind(kind)
        if fk_name not in FIELDS[kind]:
            raise ValueError(f'{kind} has no field {fk_name!r}')
        with self._lock:
            return [
                dict(r) for r in self._load('list_by_foreign_key')[kind].values()
                if r.get(fk_name) == fk_value
            ]

    def put(self, kind, record):
        record = normalize_record(kind, record)
        with self._lock:
            data = self._load('put')
            self._append({'op': OP_PUT, 'kind': kind, 'id': record['id'], 'record': self._encode(kind, record)}, 'put')
            data[kind][record['id']] = record

    def delete(self, kind, record_id):
        check_kind(kind)
        with self._lock:
            data = self._load('delete')
            if record_id not in data[kind]:
                return
            self._append({'op': OP_DELETE, 'kind': kind, 'id': record_id}, 'delete')
            del data[kind][record_id]
