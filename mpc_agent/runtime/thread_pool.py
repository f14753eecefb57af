"""
Thread Pool - Fixed set of long-lived workers for rollout evaluation

OFFENSIVE: A failing job never kills its worker and ALWAYS counts as done,
so a barrier can never hang on a crashed rollout.

Pattern:
    pool = ThreadPool(num_threads=4)
    errors = pool.run([job_a, job_b, job_c])   # blocks until all 3 finished
    pool.close()

Low-level (counter / wait-group):
    pool.reset_count()
    for job in jobs:
        pool.schedule(job)
    pool.wait_count(len(jobs))

Safety:
    - Bounded queue (schedule() blocks when full instead of growing forever)
    - Completion counter guarded by a Condition
    - Graceful shutdown with poison pills
"""

import logging
import queue
import threading
from typing import Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)


class ThreadPool:
    """N worker threads consuming independent closures"""

    def __init__(self, num_threads: int, maxsize: int = 1024, name: str = "rollout"):
        """Start num_threads workers

        Args:
            num_threads: Worker count (>= 1)
            maxsize: Max queued jobs before schedule() blocks
            name: Thread name prefix for debugging
        """
        assert num_threads >= 1, "ThreadPool needs at least one worker"

        self.name = name
        self.queue = queue.Queue(maxsize=maxsize)
        self.last_error: Optional[BaseException] = None

        self._count = 0
        self._count_cond = threading.Condition()
        self._closed = False

        self.workers = [
            threading.Thread(target=self._worker_loop, name=f"{name}-{i}", daemon=True)
            for i in range(num_threads)
        ]
        for worker in self.workers:
            worker.start()

    @property
    def num_threads(self) -> int:
        return len(self.workers)

    # === WAIT GROUP ===

    def get_count(self) -> int:
        """Jobs finished since the last reset_count()"""
        with self._count_cond:
            return self._count

    def reset_count(self):
        with self._count_cond:
            self._count = 0

    def wait_count(self, count: int):
        """Block until at least `count` jobs finished since reset"""
        with self._count_cond:
            self._count_cond.wait_for(lambda: self._count >= count)

    # === SUBMISSION ===

    def schedule(self, job: Callable[[], None]):
        """Queue one job - returns immediately unless the queue is full

        Raises:
            RuntimeError: If the pool was closed
        """
        if self._closed:
            raise RuntimeError(f"ThreadPool '{self.name}' is closed")
        self.queue.put(job)

    def run(self, jobs: Sequence[Callable[[], None]]) -> List[BaseException]:
        """Run a batch and wait for ALL of it (barrier)

        Independent of the global counter, so it tracks only this batch.

        Returns:
            Exceptions raised by jobs of this batch (empty when all succeeded)
        """
        remaining = [len(jobs)]
        errors: List[BaseException] = []
        done = threading.Condition()

        def wrap(job):
            def wrapped():
                try:
                    job()
                except Exception as e:
                    with done:
                        errors.append(e)
                    raise
                finally:
                    with done:
                        remaining[0] -= 1
                        if remaining[0] == 0:
                            done.notify_all()
            return wrapped

        for job in jobs:
            self.schedule(wrap(job))

        with done:
            done.wait_for(lambda: remaining[0] == 0)

        return errors

    # === WORKERS ===

    def _worker_loop(self):
        while True:
            job = self.queue.get()

            if job is None:
                # Poison pill - shutdown signal
                self.queue.task_done()
                break

            try:
                job()
            except Exception as e:
                # Keep the worker alive, remember the failure
                self.last_error = e
                logger.exception("ThreadPool '%s' job failed", self.name)
            finally:
                self.queue.task_done()
                with self._count_cond:
                    self._count += 1
                    self._count_cond.notify_all()

    def close(self, timeout: float = 10.0) -> bool:
        """Stop workers after the queue drains - idempotent

        Returns:
            True if every worker exited within timeout
        """
        if self._closed:
            return True
        self._closed = True

        for _ in self.workers:
            self.queue.put(None)

        for worker in self.workers:
            worker.join(timeout=timeout)

        alive = [w.name for w in self.workers if w.is_alive()]
        if alive:
            logger.warning("ThreadPool '%s' workers did not exit in %ss: %s", self.name, timeout, alive)
            return False
        return True

    def __enter__(self) -> "ThreadPool":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
