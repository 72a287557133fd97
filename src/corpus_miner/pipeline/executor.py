"""
Fixed-size worker pool over a shared task queue.

Each worker takes one task at a time and runs the handler on it to
completion before taking the next. Failures of individual tasks are logged
and counted; a FatalPipelineError stops the pool, discards queued tasks and
is re-raised from wait().
"""

import logging
import queue
import threading
from typing import Callable, Generic, List, Optional, TypeVar

from ..errors import FatalPipelineError
from ..utils.exception_logger import ExceptionLogger

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SHUTDOWN = object()


class TaskExecutor(Generic[T]):
    """Runs handler(task) for every scheduled task on a pool of threads."""

    def __init__(self, handler: Callable[[T], None], name: str = "worker"):
        self._handler = handler
        self._name = name
        self._queue: "queue.Queue" = queue.Queue()
        self._threads: List[threading.Thread] = []
        self._worker_count = 1
        self._running = False
        self._stopping = threading.Event()
        self._fatal_error: Optional[BaseException] = None
        self._counter_lock = threading.Lock()
        self.tasks_completed = 0
        self.tasks_failed = 0
        self.tasks_discarded = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def fatal_error(self) -> Optional[BaseException]:
        return self._fatal_error

    def spawn(self, count: int) -> None:
        """Size the pool. Extra threads start immediately if already running."""
        if count < 1:
            raise ValueError(f"Worker count must be at least 1, got {count}")
        previous = self._worker_count
        self._worker_count = count
        if self._running and count > previous:
            for _ in range(count - previous):
                self._start_thread()

    def schedule(self, task: T) -> bool:
        """Enqueue a task.

        Returns:
            False if the pool has been stopped and the task was not queued
        """
        if self._stopping.is_set():
            logger.debug(f"Executor stopped, not scheduling {task}")
            return False
        self._queue.put(task)
        return True

    def run(self) -> None:
        """Start the worker threads (idempotent)."""
        if self._running:
            return
        self._running = True
        for _ in range(self._worker_count):
            self._start_thread()
        logger.info(f"Started {self._worker_count} {self._name} threads")

    def stop(self) -> None:
        """Stop taking new work; queued tasks are discarded."""
        self._stopping.set()

    def wait(self) -> None:
        """Block until the queue is drained and all running tasks finished.

        Raises:
            RuntimeError: If tasks are queued but run() was never called
            FatalPipelineError: If a task failed fatally
        """
        if not self._running:
            if self._queue.unfinished_tasks:
                raise RuntimeError("wait() called before run() with tasks queued")
            return

        self._queue.join()

        for _ in self._threads:
            self._queue.put(_SHUTDOWN)
        for thread in self._threads:
            thread.join()
        self._threads = []
        self._running = False

        if self._fatal_error is not None:
            raise self._fatal_error

    def _start_thread(self) -> None:
        index = len(self._threads)
        thread = threading.Thread(
            target=self._worker_loop, name=f"{self._name}-{index}", daemon=True
        )
        self._threads.append(thread)
        thread.start()

    def _worker_loop(self) -> None:
        while True:
            task = self._queue.get()
            try:
                if task is _SHUTDOWN:
                    return
                if self._stopping.is_set():
                    with self._counter_lock:
                        self.tasks_discarded += 1
                    continue
                self._execute(task)
            finally:
                self._queue.task_done()

    def _execute(self, task: T) -> None:
        try:
            self._handler(task)
        except FatalPipelineError as e:
            logger.critical(f"Fatal error while processing {task}: {e}")
            self._report(e, task)
            with self._counter_lock:
                self.tasks_failed += 1
                if self._fatal_error is None:
                    self._fatal_error = e
            self.stop()
        except Exception as e:
            logger.exception(f"Task {task} failed: {e}")
            self._report(e, task)
            with self._counter_lock:
                self.tasks_failed += 1
        else:
            with self._counter_lock:
                self.tasks_completed += 1

    def _report(self, error: BaseException, task: T) -> None:
        exception_logger = ExceptionLogger.get_instance()
        if exception_logger is not None:
            exception_logger.log_exception(error, context={"task": str(task)})
