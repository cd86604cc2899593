"""Upload directory watcher.

This module provides:
- UploadEventHandler: watchdog handler coalescing rapid events per path
- UploadWatcher: pushes new or modified eligible files as they appear and
  purges the CDN copy of deleted ones

Eligibility follows the scanner rules, so a watched installation pushes
exactly the files a full run would.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from watchdog.events import (
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from pushzone.client.files import FileHandler
from pushzone.scan.scanner import DirectoryScanner

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

logger = logging.getLogger(__name__)


class ChangeType(Enum):
    """Type of file system change."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    MOVED = "moved"


@dataclass
class UploadChange:
    """A file change inside the installation root."""

    path: Path
    change_type: ChangeType
    timestamp: float = field(default_factory=time.time)
    dest_path: Path | None = None  # For MOVED events


def _event_path(raw: str | bytes) -> Path:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    return Path(raw)


class UploadEventHandler(FileSystemEventHandler):
    """Collects file events and flushes them after a quiet period."""

    def __init__(
        self,
        on_changes: Callable[[list[UploadChange]], None],
        settle_delay_s: float = 2.0,
    ) -> None:
        """Initialize the handler.

        Args:
            on_changes: Callback receiving the coalesced changes.
            settle_delay_s: Quiet period after the last event before flushing.
        """
        super().__init__()
        self._on_changes = on_changes
        self._settle_delay_s = settle_delay_s

        # Latest change per path
        self._pending: dict[str, UploadChange] = {}
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None

    def _schedule_flush(self) -> None:
        if self._timer:
            self._timer.cancel()
        self._timer = threading.Timer(self._settle_delay_s, self.flush)
        self._timer.daemon = True
        self._timer.start()

    def flush(self) -> None:
        """Hand pending changes to the callback."""
        with self._lock:
            if not self._pending:
                return
            changes = list(self._pending.values())
            self._pending.clear()
            self._timer = None

        self._on_changes(changes)

    def _record(self, change: UploadChange) -> None:
        with self._lock:
            self._pending[str(change.path)] = change
            self._schedule_flush()

    def on_created(self, event: FileSystemEvent) -> None:
        if isinstance(event, FileCreatedEvent):
            self._record(UploadChange(_event_path(event.src_path), ChangeType.CREATED))

    def on_modified(self, event: FileSystemEvent) -> None:
        if isinstance(event, FileModifiedEvent):
            self._record(UploadChange(_event_path(event.src_path), ChangeType.MODIFIED))

    def on_deleted(self, event: FileSystemEvent) -> None:
        if isinstance(event, FileDeletedEvent):
            self._record(UploadChange(_event_path(event.src_path), ChangeType.DELETED))

    def on_moved(self, event: FileSystemEvent) -> None:
        if isinstance(event, FileMovedEvent):
            self._record(
                UploadChange(
                    _event_path(event.src_path),
                    ChangeType.MOVED,
                    dest_path=_event_path(event.dest_path),
                )
            )

    def stop(self) -> None:
        """Cancel any pending flush."""
        if self._timer:
            self._timer.cancel()
            self._timer = None


class UploadWatcher:
    """Watches the installation root and mirrors changes to the push zone."""

    def __init__(
        self,
        scanner: DirectoryScanner,
        files: FileHandler,
        settle_delay_s: float = 2.0,
    ) -> None:
        """Initialize the watcher.

        Args:
            scanner: Scanner whose rules decide eligibility.
            files: Handler used to push and purge files.
            settle_delay_s: Quiet period before changes are applied.
        """
        self._scanner = scanner
        self._files = files
        self._root = scanner.root
        self._handler = UploadEventHandler(self.apply_changes, settle_delay_s)
        self._observer: BaseObserver = Observer()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def _relative(self, path: Path) -> str | None:
        try:
            return path.relative_to(self._root).as_posix()
        except ValueError:
            return None

    def _push(self, path: Path) -> bool:
        path = path.resolve()
        relative = self._relative(path)
        if relative is None or not path.is_file() or not self._scanner.is_eligible_file(path):
            return False
        logger.info("Pushing changed file %s", relative)
        return self._files.push_file(path, relative)

    def _purge(self, path: Path) -> bool:
        path = path.resolve()
        relative = self._relative(path)
        if relative is None or not self._scanner.is_eligible_file(path):
            return False
        logger.info("Purging deleted file %s", relative)
        return self._files.delete_file(relative)

    def apply_changes(self, changes: list[UploadChange]) -> dict[str, int]:
        """Push or purge each changed file.

        Returns:
            Counts of successful "pushed" and "purged" operations.
        """
        counts = {"pushed": 0, "purged": 0}
        for change in changes:
            try:
                if change.change_type in (ChangeType.CREATED, ChangeType.MODIFIED):
                    counts["pushed"] += self._push(change.path)
                elif change.change_type == ChangeType.DELETED:
                    counts["purged"] += self._purge(change.path)
                elif change.change_type == ChangeType.MOVED:
                    counts["purged"] += self._purge(change.path)
                    if change.dest_path is not None:
                        counts["pushed"] += self._push(change.dest_path)
            except Exception:
                logger.exception("Error applying change to %s", change.path)
        if counts["pushed"] or counts["purged"]:
            logger.info(
                "Watcher applied changes: %d pushed, %d purged",
                counts["pushed"],
                counts["purged"],
            )
        return counts

    def start(self) -> None:
        """Start watching for changes."""
        if self._running:
            return
        self._observer.schedule(self._handler, str(self._root), recursive=True)
        self._observer.start()
        self._running = True
        logger.info("Watching %s", self._root)

    def stop(self) -> None:
        """Stop watching for changes."""
        if not self._running:
            return
        self._handler.stop()
        self._observer.stop()
        self._observer.join(timeout=5.0)
        self._running = False

    def __enter__(self) -> UploadWatcher:
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.stop()
