"""Chunked background push of the file manifest.

This module provides:
- ChunkProcessor: the two task handlers driving a full push run
- ChunkResult: what a single chunk activation did

State machine:
    Idle -> Counting                  handle_push_static_files()
    Chunk-Claimed -> Chunk-Processing process_file_chunk(offset)
    Chunk-Processing -> Chunk-Done    next chunk scheduled, or Idle on an
                                      empty slice

Each activation is a function of the persisted state plus its offset and
produces at most one follow-up task. A failed push still counts as
processed, so a run always ends after a bounded number of chunks.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from pushzone.client.files import FileHandler
from pushzone.jobs.leases import chunk_lease, push_lease
from pushzone.jobs.scheduler import PROCESS_FILE_CHUNK, TaskScheduler
from pushzone.scan.scanner import DirectoryScanner
from pushzone.store.database import OptionStore, TransientStore

logger = logging.getLogger(__name__)

TOTAL_FILES_KEY = "total_files"
PROCESSED_FILES_KEY = "processed_files"
PROGRESS_KEY = "progress"

DEFAULT_CHUNK_SIZE = 20
DEFAULT_FILE_DELAY = 0.1  # seconds between two pushes
DEFAULT_NEXT_CHUNK_DELAY = 5.0  # seconds before the next chunk fires


def compute_percentage(processed: int, total: int) -> int:
    """Rounded completion percentage (0 when total is 0)."""
    if total <= 0:
        return 0
    return int(round(processed / total * 100))


@dataclass
class ChunkResult:
    """Outcome of one chunk activation.

    Attributes:
        offset: Manifest offset of the chunk.
        attempted: Files handed to the file handler.
        succeeded: Files the API accepted.
        next_offset: Offset scheduled next (None when the run ended).
        skipped: True if another activation held the chunk lease.
        cancelled: True if the run was reset while the slice was pushed.
    """

    offset: int
    attempted: int = 0
    succeeded: int = 0
    next_offset: int | None = None
    skipped: bool = False
    cancelled: bool = False

    @property
    def finished(self) -> bool:
        """The run ended on this activation."""
        return not self.skipped and not self.cancelled and self.next_offset is None


class ChunkProcessor:
    """Task handlers for the full push run."""

    def __init__(
        self,
        options: OptionStore,
        transients: TransientStore,
        scanner: DirectoryScanner,
        files: FileHandler,
        scheduler: TaskScheduler,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        file_delay: float = DEFAULT_FILE_DELAY,
        next_chunk_delay: float = DEFAULT_NEXT_CHUNK_DELAY,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the processor.

        Args:
            options: Durable store for progress counters.
            transients: Store holding the leases.
            scanner: Source of the manifest.
            files: Validates and pushes individual files.
            scheduler: Receives the follow-up chunk tasks.
            chunk_size: Files per chunk activation.
            file_delay: Pause between two pushes.
            next_chunk_delay: Defer before the next chunk fires.
            clock: Time source.
            sleep: Sleep function.
        """
        self._options = options
        self._scanner = scanner
        self._files = files
        self._scheduler = scheduler
        self._push_lease = push_lease(transients)
        self._chunk_lease = chunk_lease(transients)
        self.chunk_size = chunk_size
        self._file_delay = file_delay
        self._next_chunk_delay = next_chunk_delay
        self._clock = clock
        self._sleep = sleep

    def handle_push_static_files(self) -> bool:
        """Bootstrap a full run: count files and schedule chunk 0.

        Returns:
            False if a chunk is in flight and the bootstrap was skipped.
        """
        if self._chunk_lease.is_held():
            logger.info("Chunk already in progress, skipping push bootstrap")
            return False

        self._options.delete(PROCESSED_FILES_KEY)
        self._options.delete(PROGRESS_KEY)

        total = self._scanner.count_files()
        self._options.set(TOTAL_FILES_KEY, total)
        self._options.set(PROCESSED_FILES_KEY, 0)

        logger.info("Starting full push of %d files", total)
        self._scheduler.schedule(PROCESS_FILE_CHUNK, args=(0,))
        return True

    def _run_active(self) -> bool:
        return self._options.get(TOTAL_FILES_KEY) is not None

    def _push_one(self, absolute_path: str, relative_path: str) -> bool:
        try:
            return self._files.push_file(absolute_path, relative_path)
        except Exception:
            logger.exception("Unexpected error pushing %s", relative_path)
            return False

    def process_file_chunk(self, offset: int) -> ChunkResult:
        """Push one slice of the manifest and schedule the next one.

        Args:
            offset: Manifest offset of this chunk.

        Returns:
            ChunkResult describing the activation.
        """
        offset = int(offset)
        result = ChunkResult(offset=offset)

        if not self._chunk_lease.acquire():
            logger.info("Chunk at offset %d skipped: another chunk is running", offset)
            result.skipped = True
            return result

        records = self._scanner.list_chunk(offset, self.chunk_size)

        if not records:
            self._push_lease.release()
            self._chunk_lease.release()
            logger.info("Full push finished at offset %d", offset)
            return result

        for index, record in enumerate(records):
            result.attempted += 1
            if self._push_one(record.absolute_path, record.relative_path):
                result.succeeded += 1
            else:
                logger.warning("Failed to push %s", record.relative_path)

            # total_files disappears when the run is reset
            if self._run_active():
                processed = int(self._options.get(PROCESSED_FILES_KEY, 0))
                self._options.set(PROCESSED_FILES_KEY, processed + 1)

            if self._file_delay > 0 and index < len(records) - 1:
                self._sleep(self._file_delay)

        if not self._run_active():
            self._chunk_lease.release()
            result.cancelled = True
            logger.info("Chunk at offset %d done but the run was reset, stopping", offset)
            return result

        total = int(self._options.get(TOTAL_FILES_KEY, 0))
        processed = int(self._options.get(PROCESSED_FILES_KEY, 0))
        self._options.set(
            PROGRESS_KEY,
            {
                "total": total,
                "processed": processed,
                "percentage": compute_percentage(processed, total),
                "last_update": self._clock(),
            },
        )

        self._chunk_lease.release()

        result.next_offset = offset + self.chunk_size
        self._scheduler.schedule(
            PROCESS_FILE_CHUNK, args=(result.next_offset,), delay=self._next_chunk_delay
        )
        logger.info(
            "Chunk at offset %d done: %d/%d pushed (%d/%d overall)",
            offset,
            result.succeeded,
            result.attempted,
            processed,
            total,
        )
        return result
