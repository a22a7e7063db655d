"""Chunked scan loop shared by every backend.

One run is strictly sequential: a chunk is pulled from the adapter, each
record is classified and (when changed) written, then the next chunk is
pulled. Per-record failures are logged and counted; only a
BackendConnectivityError aborts the run. A set stop event ends the run
before the next chunk is processed.
"""
import logging
import threading
import time
from itertools import islice
from typing import Iterable, Iterator, List, Optional

from null_cleaner.dto.run_report_dto import RunCounters
from null_cleaner.exception.BackendConnectivityError import BackendConnectivityError
from null_cleaner.repository.base_adapter import BaseAdapter, Record
from null_cleaner.services.record_normalizer import RecordNormalizer
from null_cleaner.utils.log_setup import INVALID_RECORDS_LOGGER, STATISTICS_LOGGER
from null_cleaner.utils.payload_repair import ParseFailure

logger = logging.getLogger(__name__)
# log_setup may attach file handlers to these two
statistics_logger = logging.getLogger(STATISTICS_LOGGER)
invalid_logger = logging.getLogger(INVALID_RECORDS_LOGGER)

DEFAULT_CHUNK_SIZE = 500


class RunOutcome:
    def __init__(self, counters: RunCounters, elapsed_ms: int, stopped: bool = False):
        self.counters = counters
        self.elapsed_ms = elapsed_ms
        self.stopped = stopped


def iter_chunks(records: Iterable[Record], chunk_size: int) -> Iterator[List[Record]]:
    it = iter(records)
    while True:
        chunk = list(islice(it, chunk_size))
        if not chunk:
            return
        yield chunk


class BatchRunner:
    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE, normalizer: Optional[RecordNormalizer] = None,
                 dry_run: bool = False):
        if not isinstance(chunk_size, int) or chunk_size <= 0:
            raise ValueError(f'chunk_size must be a positive integer, got {chunk_size!r}')
        self.chunk_size = chunk_size
        self.normalizer = normalizer or RecordNormalizer()
        self.dry_run = dry_run

    def run(self, adapter: BaseAdapter, stop_event: Optional[threading.Event] = None) -> RunOutcome:
        """Scan every record of an opened adapter and return counters plus elapsed time."""
        counters = RunCounters()
        started = time.monotonic()
        stopped = False
        for chunk in iter_chunks(adapter.records(), self.chunk_size):
            if stop_event is not None and stop_event.is_set():
                logger.warning('%s run stopped after %d chunks', adapter.label, counters.chunks_processed)
                stopped = True
                break
            self.process_chunk(adapter, chunk, counters)
        elapsed_ms = int((time.monotonic() - started) * 1000)
        if stopped:
            return RunOutcome(counters, elapsed_ms, stopped=True)
        logger.info('%s scan finished in %d ms (%d records, %d chunks)',
                    adapter.label, elapsed_ms, counters.total_processed, counters.chunks_processed)
        return RunOutcome(counters, elapsed_ms)

    def process_chunk(self, adapter: BaseAdapter, chunk: List[Record], counters: RunCounters):
        for record in chunk:
            self.process_record(adapter, record, counters)
        counters.record_chunk()
        statistics_logger.info('%s chunk %d processed (%d records): %s',
                               adapter.label, counters.chunks_processed, len(chunk), counters.summary_line())

    def process_record(self, adapter: BaseAdapter, record: Record, counters: RunCounters):
        counters.record_read()
        try:
            payload = adapter.load_payload(record)
            if isinstance(payload, ParseFailure):
                invalid_logger.warning('Skipping %s: unparseable payload (%s)', record.identity, payload.describe())
                counters.record_parse_failure()
                return
            decision = self.normalizer.normalize(payload, record.identity)
        except BackendConnectivityError:
            raise
        except Exception:
            logger.exception('Skipping %s: failed to normalize record', record.identity)
            counters.record_parse_failure()
            return

        counters.record_decision(decision)
        if not decision.changed:
            return

        invalid_logger.info('Invalid profile found: %s (%s, unset=%s, oid_removed=%d)', record.identity,
                            decision.classification.value, decision.unset_fields, len(decision.oid_removals))
        if self.dry_run:
            counters.record_update()
            return

        try:
            ok = adapter.write(record, decision)
        except BackendConnectivityError:
            raise
        except Exception as e:
            invalid_logger.error('Failed to update record %s: %s', record.identity, e)
            counters.record_write_failure()
            return
        if ok is False:
            invalid_logger.error('Failed to update record %s: backend reported no match', record.identity)
            counters.record_write_failure()
            return
        counters.record_update()
