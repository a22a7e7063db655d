import threading

import pytest

from null_cleaner.utils.threading_util import pool


@pytest.fixture
def fresh_pool():
    pool.shutdown_executor()
    yield pool
    pool.shutdown_executor()


def test_pool_size_from_env(monkeypatch):
    monkeypatch.setenv('CLEANER_WORKER_THREADS', '3')
    assert pool._pool_size() == 3
    monkeypatch.setenv('CLEANER_WORKER_THREADS', 'many')
    assert pool._pool_size() == pool.DEFAULT_WORKERS
    monkeypatch.setenv('CLEANER_WORKER_THREADS', '0')
    assert pool._pool_size() == 1


def test_submitted_tasks_run_on_cleaner_threads(fresh_pool):
    futures = [fresh_pool.submit_task(lambda: threading.current_thread().name) for _ in range(2)]
    done, not_done = fresh_pool.wait_for(futures, timeout=5)
    assert not not_done
    assert all(f.result().startswith('cleaner') for f in done)


def test_wait_for_returns_unfinished_futures(fresh_pool):
    gate = threading.Event()
    future = fresh_pool.submit_task(gate.wait, 5)
    try:
        done, not_done = fresh_pool.wait_for([future], timeout=0.05)
        assert future in not_done and not done
    finally:
        gate.set()
