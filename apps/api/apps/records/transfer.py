"""
One-shot export/import between record stores.

Moving data between backends is an explicit operation run by an operator,
never a side effect of ordinary writes.
"""
from dataclasses import dataclass, field

from apps.core.errors import PortalError, RecordNotFound
from apps.core.observability import get_sanitized_logger
from apps.core.observability.events import log_consistency_checkpoint, log_domain_event

from .base import CLINIC, KINDS, PARENTS, TIMESTAMP_FIELDS
from .mapping import COLLECTIONS, collections_from_payload, from_external

logger = get_sanitized_logger(__name__)

EXPORT_FORMAT_VERSION = 1


@dataclass
class ImportReport:
    imported: dict = field(default_factory=lambda: {kind: 0 for kind in KINDS})
    unchanged: dict = field(default_factory=lambda: {kind: 0 for kind in KINDS})
    orphans: list = field(default_factory=list)
    conflicts: list = field(default_factory=list)
    invalid: list = field(default_factory=list)

    @property
    def ok(self):
        return not (self.orphans or self.conflicts or self.invalid)

    def as_dict(self):
        return {
            'imported': dict(self.imported),
            'unchanged': dict(self.unchanged),
            'orphans': list(self.orphans),
            'conflicts': list(self.conflicts),
            'invalid': list(self.invalid),
        }


def _exportable(kind, record):
    ts_field = TIMESTAMP_FIELDS[kind]
    return dict(record, **{ts_field: record[ts_field].isoformat()})


def export_records(store):
    """Dump every collection of store into a JSON-serialisable document."""
    payload = {'version': EXPORT_FORMAT_VERSION}
    for kind in KINDS:
        records = sorted(store.list_all(kind), key=lambda r: r['id'])
        payload[COLLECTIONS[kind]] = [_exportable(kind, r) for r in records]
    log_domain_event(
        'records_exported',
        result='success',
        store=store.name,
        **{f'{kind}_count': len(payload[COLLECTIONS[kind]]) for kind in KINDS}
    )
    return payload


def _same_record(kind, existing, incoming):
    # Re-hashing a legacy plaintext secret yields a new salt, so secrets are
    # not compared
    keys = set(existing) | set(incoming)
    keys.discard('login_secret')
    return all(existing.get(k) == incoming.get(k) for k in keys)


def _email_taken(store, accepted_clinics, record):
    email = record['login_email']
    if any(c['login_email'] == email for c in accepted_clinics.values()):
        return True
    return bool(store.list_by_foreign_key(CLINIC, 'login_email', email))


def import_records(payload, store, legacy=False, dry_run=False):
    """
    Load an export document into store.

    Records are validated and mapped first. A patient whose clinic exists
    neither in the document nor in store is skipped as an orphan, and so is
    a video whose patient is missing. An id already held by a different
    record is reported as a conflict and left untouched.
    """
    report = ImportReport()
    raw_collections = collections_from_payload(payload, legacy=legacy)
    accepted = {kind: {} for kind in KINDS}

    for kind in KINDS:
        for index, raw in enumerate(raw_collections[kind]):
            try:
                record = from_external(kind, raw, legacy=legacy)
            except (PortalError, ValueError, TypeError, AttributeError) as exc:
                report.invalid.append({'kind': kind, 'index': index, 'reason': str(exc)})
                continue

            previous = accepted[kind].get(record['id'])
            if previous is not None:
                if not _same_record(kind, previous, record):
                    report.conflicts.append({'kind': kind, 'id': record['id']})
                continue

            if kind in PARENTS:
                parent_kind, fk_name = PARENTS[kind]
                parent_id = record[fk_name]
                if parent_id not in accepted[parent_kind] and not store.exists(parent_kind, parent_id):
                    report.orphans.append({'kind': kind, 'id': record['id'], fk_name: parent_id})
                    continue

            try:
                existing = store.get_by_id(kind, record['id'])
            except RecordNotFound:
                existing = None

            if existing is not None:
                if _same_record(kind, existing, record):
                    report.unchanged[kind] += 1
                    accepted[kind][record['id']] = record
                else:
                    report.conflicts.append({'kind': kind, 'id': record['id']})
                continue

            if kind == CLINIC and _email_taken(store, accepted[CLINIC], record):
                report.conflicts.append({'kind': kind, 'id': record['id'], 'field': 'login_email'})
                continue

            accepted[kind][record['id']] = record
            if not dry_run:
                store.put(kind, record)
            report.imported[kind] += 1

    log_consistency_checkpoint(
        'records_import',
        entity_ids={'store': store.name},
        checks_passed={
            'no_orphans': not report.orphans,
            'no_conflicts': not report.conflicts,
            'no_invalid': not report.invalid,
        },
        dry_run=dry_run,
        imported=report.imported,
    )
    return report
