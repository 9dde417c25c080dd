"""
=============================================================================
SUPERVISED THREAD POOL
=============================================================================

Every accepted connection is served by its own thread for as long as the
connection lives. Keep-alive connections can sit idle for a long time, so
a fixed-size pool would let a few idle clients starve everyone else.

This pool therefore grows on demand:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      submit(task)                                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   in_flight >= workers and workers < max_workers?                   │
    │        │                                                             │
    │        ├── yes → start one more Worker (failure = rejected)         │
    │        │                                                             │
    │        └── no  → an idle worker will pick the task up               │
    │                                                                      │
    │   queue.put_nowait(task)                                            │
    │        │                                                             │
    │        ├── ok   → in_flight += 1, return True                       │
    │        └── Full → return False (caller closes the connection)       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

"in_flight" counts tasks submitted but not yet finished. Counting tasks
instead of asking workers whether they look busy avoids the race where a
worker has taken a task off the queue but not yet marked itself BUSY.

At max_workers, new connections wait in the bounded queue until a
connection ends. When the queue is full too, submit() fails fast so the
accept loop never blocks.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Worker thread states, for monitoring."""
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """
    A deferred function call.

    Attributes:
        func: The function to execute.
        args: Positional arguments for the function.
        kwargs: Keyword arguments for the function.
        submitted_at: Time the task was submitted.
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Worker thread that processes tasks from the queue.

    Loop:
        1. Wait for a task (blocking, idle_timeout at a time)
        2. None is a poison pill → exit
        3. Run the task, log any exception (never crash the worker)
        4. Report completion to the pool, go back to 1
    """

    def __init__(
        self,
        task_queue: queue.Queue,
        worker_id: int,
        on_task_done: Callable[[], None],
        idle_timeout: float = 60.0,
    ):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout
        self._on_task_done = on_task_done

        self.state = WorkerState.IDLE
        self._shutdown = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            try:
                if task is None:
                    break
                self._execute_task(task)
                self._on_task_done()
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        """Run one task with state tracking and exception logging."""
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            task.func(*task.args, **task.kwargs)

            elapsed = time.time() - start_time
            logger.debug(f"Worker {self.worker_id} completed task in {elapsed:.3f}s")
            self.tasks_completed += 1

        except Exception as e:
            elapsed = time.time() - start_time
            logger.exception(
                f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}"
            )
            self.tasks_failed += 1

        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        """Signal the worker to stop."""
        self._shutdown.set()


class ThreadPool:
    """
    Thread pool that keeps one worker per in-flight task, up to a cap.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=128, queue_size=64)
        pool.start()

        if not pool.submit(handler.handle, args=(conn,)):
            conn.close()    # no worker available

        pool.shutdown(wait=True, timeout=10.0)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 128,
        queue_size: int = 64,
        idle_timeout: float = 60.0,
    ):
        """
        Initialize the thread pool.

        Args:
            min_workers: Worker threads started by start().
            max_workers: Maximum number of worker threads.
            queue_size: Tasks allowed to wait once max_workers are busy.
            idle_timeout: Seconds an idle worker blocks on the queue before
                          re-checking its shutdown flag.
        """
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.queue_size = queue_size
        self.idle_timeout = idle_timeout

        # Room for one poison pill per worker on top of waiting tasks
        self._task_queue: queue.Queue = queue.Queue(maxsize=queue_size + max_workers)

        self._workers: list = []
        self._lock = threading.Lock()  # Protects _workers and _in_flight
        self._in_flight = 0
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    def start(self):
        """Start the thread pool with min_workers workers."""
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.min_workers} workers (max {self.max_workers})")

        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()

        self._started = True
        self._shutdown = False

    def _add_worker(self) -> Worker:
        """
        Start a new worker. Caller must hold self._lock.

        Raises:
            RuntimeError: If max_workers is reached or the thread cannot
                          be started.
        """
        if len(self._workers) >= self.max_workers:
            raise RuntimeError("Maximum workers reached")

        worker = Worker(
            task_queue=self._task_queue,
            worker_id=self._next_worker_id,
            on_task_done=self._task_finished,
            idle_timeout=self.idle_timeout,
        )
        worker.start()

        self._next_worker_id += 1
        self._workers.append(worker)
        return worker

    def _task_finished(self):
        with self._lock:
            self._in_flight -= 1

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
    ) -> bool:
        """
        Submit a task for execution. Never blocks.

        Returns:
            True if the task was accepted, False if no worker could be
            started for it or the wait queue is full.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")

        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {})

        with self._lock:
            if self._in_flight >= len(self._workers) and len(self._workers) < self.max_workers:
                try:
                    self._add_worker()
                    logger.debug(f"Scaled up to {len(self._workers)} workers")
                except RuntimeError as e:
                    logger.warning(f"Could not start worker thread: {e}")
                    return False

            if self._in_flight - len(self._workers) >= self.queue_size:
                return False

            try:
                self._task_queue.put_nowait(task)
            except queue.Full:
                return False

            self._in_flight += 1

        return True

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Shutdown the thread pool.

        1. Reject new tasks
        2. If wait: let queued and running tasks finish (up to timeout)
        3. Send one poison pill per worker
        4. Join workers

        Args:
            wait: Whether to wait for pending tasks to complete.
            timeout: Maximum seconds to wait for tasks.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            deadline = time.time() + timeout if timeout else None
            while self.in_flight > 0:
                if deadline and time.time() > deadline:
                    logger.warning(f"Shutdown timeout, {self.in_flight} tasks still running")
                    break
                time.sleep(0.05)

        with self._lock:
            workers = list(self._workers)

        for _ in workers:
            try:
                self._task_queue.put_nowait(None)
            except queue.Full:
                pass

        for worker in workers:
            worker.shutdown()
            worker.join(timeout=2.0)

        with self._lock:
            self._workers.clear()
        self._started = False

        logger.info("Thread pool shutdown complete")

    @property
    def in_flight(self) -> int:
        """Tasks submitted and not yet finished (queued or running)."""
        with self._lock:
            return self._in_flight

    @property
    def worker_count(self) -> int:
        with self._lock:
            return len(self._workers)

    @property
    def stats(self) -> dict:
        """Worker and task counts, for logging and tests."""
        with self._lock:
            workers = list(self._workers)
            in_flight = self._in_flight

        return {
            "workers": {
                "total": len(workers),
                "busy": sum(1 for w in workers if w.state == WorkerState.BUSY),
            },
            "tasks": {
                "in_flight": in_flight,
                "completed": sum(w.tasks_completed for w in workers),
                "failed": sum(w.tasks_failed for w in workers),
            },
        }
