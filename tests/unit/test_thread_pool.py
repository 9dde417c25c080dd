"""
Unit tests for the supervised thread pool.
"""

import threading

import pytest

from fileserver.core.thread_pool import ThreadPool


@pytest.fixture
def pool():
    p = ThreadPool(min_workers=1, max_workers=4, queue_size=2, idle_timeout=0.1)
    p.start()
    yield p
    p.shutdown(wait=False)


def test_submit_before_start_raises():
    with pytest.raises(RuntimeError):
        ThreadPool().submit(print)


def test_runs_task(pool):
    done = threading.Event()

    assert pool.submit(done.set) is True
    assert done.wait(5.0)


def test_one_worker_per_blocking_task(pool):
    """Long-running tasks each get their own thread, up to max_workers."""
    release = threading.Event()
    started = threading.Semaphore(0)

    def hold():
        started.release()
        release.wait(5.0)

    for _ in range(4):
        assert pool.submit(hold)

    for _ in range(4):
        assert started.acquire(timeout=5.0)

    assert pool.worker_count == 4
    release.set()


def test_queue_then_reject_at_cap(pool):
    release = threading.Event()

    for _ in range(4):
        assert pool.submit(release.wait, args=(5.0,))

    # max_workers busy: two more may wait, the next is rejected
    assert pool.submit(release.wait, args=(5.0,)) is True
    assert pool.submit(release.wait, args=(5.0,)) is True
    assert pool.submit(release.wait, args=(5.0,)) is False

    release.set()


def test_failing_task_does_not_kill_worker(pool):
    done = threading.Event()

    def boom():
        raise RuntimeError("boom")

    assert pool.submit(boom)
    assert pool.submit(done.set)
    assert done.wait(5.0)


def test_in_flight_returns_to_zero(pool):
    done = threading.Event()
    pool.submit(done.set)
    done.wait(5.0)

    pool.shutdown(wait=True, timeout=5.0)

    assert pool.in_flight == 0
    assert pool.stats["tasks"]["in_flight"] == 0


def test_submit_after_shutdown_raises(pool):
    pool.shutdown(wait=True, timeout=1.0)

    with pytest.raises(RuntimeError):
        pool.submit(print)
