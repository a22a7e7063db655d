"""Run statistics.

RunCounters is the mutable accumulator owned by exactly one BatchRunner run.
RunReport is the frozen snapshot handed back to the caller; render() gives
the stable text printed at the end of a run.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from null_cleaner.dto.decision_dto import NormalizationDecision, NullClassification


class BackendKind(str, Enum):
    DOCUMENT = "document"
    KEY_RECORD = "key_record"


class RunCounters:
    def __init__(self):
        self.total_processed = 0
        self.both_null = 0
        self.only_he_null = 0
        self.only_hm_null = 0
        self.either_null = 0
        self.updated = 0
        self.null_he_oid_removed = 0
        self.null_hm_oid_removed = 0
        self.parse_failures = 0
        self.write_failures = 0
        self.chunks_processed = 0

    def record_read(self):
        self.total_processed += 1

    def record_parse_failure(self):
        self.parse_failures += 1

    def record_decision(self, decision: NormalizationDecision):
        c = decision.classification
        if c is NullClassification.BOTH:
            self.both_null += 1
        elif c is NullClassification.HE_ONLY:
            self.only_he_null += 1
        elif c is NullClassification.HM_ONLY:
            self.only_hm_null += 1
        if c is not NullClassification.NONE:
            self.either_null += 1
        self.null_he_oid_removed += decision.he_oid_removed
        self.null_hm_oid_removed += decision.hm_oid_removed

    def record_update(self):
        self.updated += 1

    def record_write_failure(self):
        self.write_failures += 1

    def record_chunk(self):
        self.chunks_processed += 1

    def to_dict(self) -> Dict[str, int]:
        return {
            'total_processed': self.total_processed,
            'both_null': self.both_null,
            'only_he_null': self.only_he_null,
            'only_hm_null': self.only_hm_null,
            'either_null': self.either_null,
            'updated': self.updated,
            'null_he_oid_removed': self.null_he_oid_removed,
            'null_hm_oid_removed': self.null_hm_oid_removed,
            'parse_failures': self.parse_failures,
            'write_failures': self.write_failures,
            'chunks_processed': self.chunks_processed,
        }

    def summary_line(self) -> str:
        d = self.to_dict()
        return ', '.join(f'{k}={v}' for k, v in d.items())


@dataclass(frozen=True)
class RunReport:
    label: str
    backend: BackendKind
    total_processed: int
    both_null: int
    only_he_null: int
    only_hm_null: int
    either_null: int
    updated: int
    null_he_oid_removed: int
    null_hm_oid_removed: int
    parse_failures: int
    write_failures: int
    elapsed_ms: int
    dry_run: bool = False

    @classmethod
    def from_counters(cls, label: str, backend: BackendKind, counters: RunCounters, elapsed_ms: int,
                      dry_run: bool = False) -> 'RunReport':
        return cls(
            label=label,
            backend=backend,
            total_processed=counters.total_processed,
            both_null=counters.both_null,
            only_he_null=counters.only_he_null,
            only_hm_null=counters.only_hm_null,
            either_null=counters.either_null,
            updated=counters.updated,
            null_he_oid_removed=counters.null_he_oid_removed,
            null_hm_oid_removed=counters.null_hm_oid_removed,
            parse_failures=counters.parse_failures,
            write_failures=counters.write_failures,
            elapsed_ms=int(elapsed_ms),
            dry_run=dry_run,
        )

    @property
    def tracks_oid(self) -> bool:
        return self.backend is BackendKind.KEY_RECORD

    def render(self) -> str:
        title = f'{self.label} Cleaner Statistics'
        if self.dry_run:
            title += ' (dry run)'
        lines = [
            f'{title}:',
            f'Total records processed: {self.total_processed}',
            f"Records with both 'he' AND 'hm' null: {self.both_null}",
            f"Records with only 'he' null: {self.only_he_null}",
            f"Records with only 'hm' null: {self.only_hm_null}",
            f"Records with either 'he' OR 'hm' null: {self.either_null}",
            f'Records updated: {self.updated}',
            f'Records skipped (unparseable payload): {self.parse_failures}',
            f'Failed writes: {self.write_failures}',
        ]
        if self.tracks_oid:
            lines.append(f"oid entries removed with type='hm' and null id: {self.null_hm_oid_removed}")
            lines.append(f"oid entries removed with type='he' and null id: {self.null_he_oid_removed}")
        lines.append(f'Time taken: {self.elapsed_ms} ms')
        return '\n'.join(lines)

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'label': self.label,
            'backend': self.backend.value,
            'dry_run': self.dry_run,
            'total_processed': self.total_processed,
            'both_null': self.both_null,
            'only_he_null': self.only_he_null,
            'only_hm_null': self.only_hm_null,
            'either_null': self.either_null,
            'updated': self.updated,
            'parse_failures': self.parse_failures,
            'write_failures': self.write_failures,
            'elapsed_ms': self.elapsed_ms,
        }
        if self.tracks_oid:
            d['null_he_oid_removed'] = self.null_he_oid_removed
            d['null_hm_oid_removed'] = self.null_hm_oid_removed
        return d
