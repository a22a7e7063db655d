"""Thread pool that runs the backend cleaners side by side.

CLEANER_WORKER_THREADS sets the pool size (default 2, one per backend).
"""
import logging
import os
import threading
from atexit import register
from concurrent.futures import ThreadPoolExecutor, wait

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 2

_executor = None
_lock = threading.Lock()


def _pool_size() -> int:
    try:
        return max(1, int(os.environ.get('CLEANER_WORKER_THREADS', DEFAULT_WORKERS)))
    except ValueError:
        logger.warning('Ignoring non-integer CLEANER_WORKER_THREADS, using %d', DEFAULT_WORKERS)
        return DEFAULT_WORKERS


def submit_task(fn, *args, **kwargs):
    global _executor
    with _lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(max_workers=_pool_size(), thread_name_prefix='cleaner')
            register(shutdown_executor)
        return _executor.submit(fn, *args, **kwargs)


def wait_for(futures, timeout=None):
    """Block until every future finishes or the overall timeout (seconds) elapses."""
    return wait(list(futures), timeout=timeout)


def shutdown_executor():
    """Drop the pool; queued runs are cancelled and running ones are not joined."""
    global _executor
    with _lock:
        executor, _executor = _executor, None
    if executor is not None:
        executor.shutdown(wait=False, cancel_futures=True)
