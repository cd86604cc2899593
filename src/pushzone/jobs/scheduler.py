"""Task schedulers invoking named tasks at a future time.

This module provides:
- TaskScheduler: fire-and-forget interface (at-least-once, no retry)
- BackgroundTaskScheduler: APScheduler-backed implementation for services,
  optionally persisting its jobs in the SQLite database
- run_scheduled_task: module-level job function of BackgroundTaskScheduler
- QueuedTaskScheduler: in-process queue drained explicitly (CLI foreground
  runs and tests)

Tasks are dispatched by name to handlers registered with register(); each
activation receives only its arguments and reads everything else from the
stores.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

PUSH_STATIC_FILES = "push_static_files"
PROCESS_FILE_CHUNK = "process_file_chunk"

TaskHandler = Callable[..., Any]


class UnknownTaskError(KeyError):
    """Raised when dispatching a task name with no registered handler."""


class TaskScheduler(ABC):
    """Invokes named tasks at a future time."""

    def __init__(self) -> None:
        self._handlers: dict[str, TaskHandler] = {}

    def register(self, task: str, handler: TaskHandler) -> None:
        """Register the handler invoked for a task name."""
        self._handlers[task] = handler

    def dispatch(self, task: str, *args: Any) -> Any:
        """Run the handler registered for task."""
        handler = self._handlers.get(task)
        if handler is None:
            raise UnknownTaskError(task)
        return handler(*args)

    @abstractmethod
    def schedule(self, task: str, args: tuple[Any, ...] = (), delay: float = 0.0) -> None:
        """Schedule a single activation of task after delay seconds."""

    @abstractmethod
    def is_scheduled(self, task: str) -> bool:
        """Check whether an activation of task is pending."""

    @abstractmethod
    def clear(self, task: str) -> None:
        """Remove every pending activation of task."""

    def start(self) -> None:
        """Start delivering tasks (no-op for schedulers drained by hand)."""

    def stop(self) -> None:
        """Stop delivering tasks."""


DEFAULT_SCHEDULER_NAME = "pushzone"
JOBS_TABLE = "scheduled_jobs"

# Running background schedulers by name. Stored jobs reference
# run_scheduled_task by module path and find their handlers here.
_running: dict[str, BackgroundTaskScheduler] = {}
_running_lock = threading.Lock()


def run_scheduled_task(scheduler_name: str, task: str, *args: Any) -> None:
    """Job function for every BackgroundTaskScheduler activation.

    Args:
        scheduler_name: Name of the scheduler that owns the handlers.
        task: Task name to dispatch.
        *args: Task arguments.
    """
    with _running_lock:
        scheduler = _running.get(scheduler_name)
    if scheduler is None:
        logger.warning("Scheduler %s not running, dropping task %s", scheduler_name, task)
        return
    try:
        scheduler.dispatch(task, *args)
    except Exception:
        logger.exception("Error running scheduled task %s", task)


class BackgroundTaskScheduler(TaskScheduler):
    """APScheduler background thread delivering one-shot date jobs.

    With an engine, jobs live in a table of that database and survive a
    restart of the process. Without one they are kept in memory.
    """

    def __init__(
        self,
        engine: Engine | None = None,
        misfire_grace_time: int = 300,
        name: str = DEFAULT_SCHEDULER_NAME,
    ) -> None:
        """Initialize the scheduler.

        Args:
            engine: SQLAlchemy engine of the job store. None keeps jobs in memory.
            misfire_grace_time: Seconds a late job may still run.
            name: Key stored jobs use to find this scheduler's handlers.
        """
        super().__init__()
        self.name = name
        self._misfire_grace_time = misfire_grace_time
        jobstores: dict[str, SQLAlchemyJobStore] = {}
        if engine is not None:
            jobstores["default"] = SQLAlchemyJobStore(engine=engine, tablename=JOBS_TABLE)
        self._scheduler = BackgroundScheduler(jobstores=jobstores, timezone=UTC)

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def schedule(self, task: str, args: tuple[Any, ...] = (), delay: float = 0.0) -> None:
        run_date = datetime.now(UTC) + timedelta(seconds=max(delay, 0.0))
        self._scheduler.add_job(
            run_scheduled_task,
            trigger="date",
            run_date=run_date,
            args=[self.name, task, *args],
            id=f"{task}-{uuid.uuid4().hex}",
            name=task,
            misfire_grace_time=self._misfire_grace_time,
        )
        logger.debug("Scheduled %s%s in %.1fs", task, args, delay)

    def is_scheduled(self, task: str) -> bool:
        return any(job.name == task for job in self._scheduler.get_jobs())

    def clear(self, task: str) -> None:
        for job in self._scheduler.get_jobs():
            if job.name == task:
                job.remove()

    def start(self) -> None:
        """Start the scheduler; stored jobs that are due run right away."""
        if self._scheduler.running:
            return
        with _running_lock:
            _running[self.name] = self
        self._scheduler.start()
        logger.info("Task scheduler %s started", self.name)

    def stop(self) -> None:
        """Stop the scheduler. Stored jobs stay pending for the next start."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Task scheduler %s stopped", self.name)
        with _running_lock:
            if _running.get(self.name) is self:
                del _running[self.name]


@dataclass(order=True)
class ScheduledTask:
    """A pending activation in the queued scheduler."""

    run_at: float
    sequence: int
    task: str = field(compare=False)
    args: tuple[Any, ...] = field(compare=False, default=())


class QueuedTaskScheduler(TaskScheduler):
    """In-process queue of activations, drained explicitly.

    Usage:
        scheduler = QueuedTaskScheduler()
        scheduler.register(PUSH_STATIC_FILES, processor.handle_push_static_files)
        scheduler.schedule(PUSH_STATIC_FILES)
        scheduler.run_pending()
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        super().__init__()
        self._clock = clock
        self._queue: list[ScheduledTask] = []
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def schedule(self, task: str, args: tuple[Any, ...] = (), delay: float = 0.0) -> None:
        with self._lock:
            self._queue.append(
                ScheduledTask(
                    run_at=self._clock() + max(delay, 0.0),
                    sequence=next(self._counter),
                    task=task,
                    args=tuple(args),
                )
            )

    def is_scheduled(self, task: str) -> bool:
        with self._lock:
            return any(item.task == task for item in self._queue)

    def clear(self, task: str) -> None:
        with self._lock:
            self._queue = [item for item in self._queue if item.task != task]

    def pending(self) -> list[ScheduledTask]:
        """Pending activations in delivery order."""
        with self._lock:
            return sorted(self._queue)

    def run_next(self, sleep: Callable[[float], None] | None = None) -> ScheduledTask | None:
        """Deliver the earliest pending activation.

        Args:
            sleep: When given, wait until the activation is due.

        Returns:
            The delivered activation, or None if the queue was empty.
        """
        with self._lock:
            if not self._queue:
                return None
            item = min(self._queue)
            self._queue.remove(item)

        if sleep is not None:
            wait = item.run_at - self._clock()
            if wait > 0:
                sleep(wait)

        self.dispatch(item.task, *item.args)
        return item

    def run_pending(
        self,
        max_tasks: int | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> int:
        """Deliver activations until the queue is empty.

        Args:
            max_tasks: Stop after this many deliveries.
            sleep: When given, honor each activation's delay.

        Returns:
            Number of activations delivered.
        """
        delivered = 0
        while max_tasks is None or delivered < max_tasks:
            if self.run_next(sleep) is None:
                break
            delivered += 1
        return delivered
