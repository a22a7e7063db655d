"""Run the cleaner against one or more backends.

API:
- build_mongo_adapter(cfg, chunk_size=None, prefilter=True) -> MongoDocumentAdapter
- build_aerospike_adapter(cfg, chunk_size=None) -> AerospikeRecordAdapter
- run_backend(adapter, chunk_size, dry_run=False, stop_event=None) -> RunReport
- run_backends(adapters, chunk_size, dry_run=False, deadline_seconds=None) -> CleanerRunResult

A backend that cannot be reached aborts its own run only; the other run
still completes and reports. Runs still going at the deadline are
abandoned without a report and told to stop before their next chunk.
"""
import logging
import threading
from typing import Dict, List, Optional, Sequence

from null_cleaner.dto.run_report_dto import RunReport
from null_cleaner.exception.BackendConnectivityError import BackendConnectivityError
from null_cleaner.repository.aerospike_adapter import AerospikeRecordAdapter
from null_cleaner.repository.aerospike_helper import AerospikeConnection
from null_cleaner.repository.base_adapter import BaseAdapter
from null_cleaner.repository.mongo_adapter import MongoDocumentAdapter
from null_cleaner.repository.mongo_helper import MongoConnection
from null_cleaner.services.batch_runner import BatchRunner
from null_cleaner.utils.threading_util.pool import submit_task, wait_for

logger = logging.getLogger(__name__)


class CleanerRunResult:
    def __init__(self):
        self.reports: Dict[str, RunReport] = {}
        self.failures: Dict[str, str] = {}
        self.timed_out: List[str] = []

    @property
    def ok(self) -> bool:
        return not self.failures and not self.timed_out

    def render(self) -> str:
        return '\n\n'.join(self.reports[label].render() for label in sorted(self.reports))


def build_mongo_adapter(cfg, chunk_size: Optional[int] = None, prefilter: bool = True) -> MongoDocumentAdapter:
    connection = MongoConnection(cfg.MONGO_URI, cfg.MONGO_DB, cfg.MONGO_COLLECTION,
                                 server_selection_timeout_ms=cfg.MONGO_TIMEOUT_MS)
    return MongoDocumentAdapter(connection=connection, chunk_size=chunk_size or cfg.CHUNK_SIZE, prefilter=prefilter)


def build_aerospike_adapter(cfg, chunk_size: Optional[int] = None) -> AerospikeRecordAdapter:
    connection = AerospikeConnection(cfg.AEROSPIKE_HOST, cfg.AEROSPIKE_PORT, timeout_ms=cfg.AEROSPIKE_TIMEOUT_MS)
    return AerospikeRecordAdapter(cfg.AEROSPIKE_NAMESPACE, cfg.AEROSPIKE_SET, connection=connection,
                                  payload_bin=cfg.AEROSPIKE_PAYLOAD_BIN, chunk_size=chunk_size or cfg.CHUNK_SIZE)


def run_backend(adapter: BaseAdapter, chunk_size: int, dry_run: bool = False,
                stop_event: Optional[threading.Event] = None) -> RunReport:
    logger.info(f'Starting {adapter.label} cleaning process...')
    runner = BatchRunner(chunk_size=chunk_size, dry_run=dry_run)
    with adapter:
        outcome = runner.run(adapter, stop_event=stop_event)
    report = RunReport.from_counters(adapter.label, adapter.kind, outcome.counters, outcome.elapsed_ms,
                                     dry_run=dry_run)
    if outcome.stopped:
        logger.warning('%s stopped early: %s', adapter.label, outcome.counters.summary_line())
    else:
        logger.info('%s finished: %s', adapter.label, outcome.counters.summary_line())
    return report


def run_backends(adapters: Sequence[BaseAdapter], chunk_size: int, dry_run: bool = False,
                 deadline_seconds: Optional[float] = None) -> CleanerRunResult:
    result = CleanerRunResult()
    stop = threading.Event()
    futures = {submit_task(run_backend, adapter, chunk_size, dry_run, stop): adapter for adapter in adapters}
    done, not_done = wait_for(futures, timeout=deadline_seconds)
    if not_done:
        stop.set()

    for future in done:
        label = futures[future].label
        try:
            result.reports[label] = future.result()
        except BackendConnectivityError as e:
            logger.error(f'{label} run aborted: {e}')
            result.failures[label] = str(e)
        except Exception as e:
            logger.exception(f'{label} run failed')
            result.failures[label] = str(e)

    for future in not_done:
        label = futures[future].label
        future.cancel()
        logger.error(f'{label} run did not finish within {deadline_seconds}s; abandoned without a report')
        result.timed_out.append(label)

    return result
