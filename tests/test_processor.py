"""Tests for the chunk processor state machine."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from pushzone.core.config import PushSettings
from pushzone.jobs.leases import chunk_lease, push_lease
from pushzone.jobs.processor import (
    PROCESSED_FILES_KEY,
    PROGRESS_KEY,
    TOTAL_FILES_KEY,
    ChunkProcessor,
    compute_percentage,
)
from pushzone.jobs.scheduler import PROCESS_FILE_CHUNK, PUSH_STATIC_FILES, QueuedTaskScheduler
from pushzone.scan.scanner import DirectoryScanner
from pushzone.services import PushServices
from pushzone.store.database import MemoryOptionStore, MemoryTransientStore

from tests.helpers import FakeClock, make_files


@pytest.fixture
def files() -> MagicMock:
    handler = MagicMock()
    handler.push_file.return_value = True
    return handler


@pytest.fixture
def scheduler(clock: FakeClock) -> QueuedTaskScheduler:
    return QueuedTaskScheduler(clock)


@pytest.fixture
def scanner(site_root: Path, transients: MemoryTransientStore) -> DirectoryScanner:
    return DirectoryScanner(site_root, lambda: PushSettings(), transients)


@pytest.fixture
def processor(
    options: MemoryOptionStore,
    transients: MemoryTransientStore,
    scanner: DirectoryScanner,
    files: MagicMock,
    scheduler: QueuedTaskScheduler,
    clock: FakeClock,
) -> ChunkProcessor:
    proc = ChunkProcessor(
        options,
        transients,
        scanner,
        files,
        scheduler,
        clock=clock,
        sleep=clock.sleep,
    )
    scheduler.register(PUSH_STATIC_FILES, proc.handle_push_static_files)
    scheduler.register(PROCESS_FILE_CHUNK, proc.process_file_chunk)
    return proc


class TestComputePercentage:
    """Tests for compute_percentage()."""

    def test_rounds(self) -> None:
        assert compute_percentage(1, 3) == 33
        assert compute_percentage(2, 3) == 67
        assert compute_percentage(45, 45) == 100

    def test_zero_total(self) -> None:
        assert compute_percentage(0, 0) == 0


class TestBootstrap:
    """Tests for handle_push_static_files()."""

    def test_counts_and_schedules_first_chunk(
        self,
        processor: ChunkProcessor,
        options: MemoryOptionStore,
        scheduler: QueuedTaskScheduler,
        site_root: Path,
    ) -> None:
        make_files(site_root, ["a.css", "b.css", "c.css"])
        options.set(PROCESSED_FILES_KEY, 99)
        options.set(
            PROGRESS_KEY, {"total": 9, "processed": 9, "percentage": 100, "last_update": 1.0}
        )

        assert processor.handle_push_static_files() is True

        assert options.get(TOTAL_FILES_KEY) == 3
        assert options.get(PROGRESS_KEY) is None
        assert options.get(PROCESSED_FILES_KEY) == 0
        pending = scheduler.pending()
        assert [(item.task, item.args) for item in pending] == [(PROCESS_FILE_CHUNK, (0,))]

    def test_skipped_while_chunk_in_flight(
        self,
        processor: ChunkProcessor,
        options: MemoryOptionStore,
        transients: MemoryTransientStore,
        scheduler: QueuedTaskScheduler,
    ) -> None:
        """A held chunk lease makes the bootstrap a no-op."""
        chunk_lease(transients).acquire()
        options.set(PROCESSED_FILES_KEY, 7)

        assert processor.handle_push_static_files() is False

        assert options.get(PROCESSED_FILES_KEY) == 7
        assert scheduler.pending() == []


class TestProcessFileChunk:
    """Tests for process_file_chunk()."""

    def test_full_run_of_45_files(
        self,
        processor: ChunkProcessor,
        options: MemoryOptionStore,
        transients: MemoryTransientStore,
        scheduler: QueuedTaskScheduler,
        files: MagicMock,
        site_root: Path,
    ) -> None:
        """Chunks of 20, 20 and 5 files, then an empty chunk ends the run."""
        make_files(site_root, [f"assets/file{i:02d}.css" for i in range(45)])
        push_lease(transients).mark()
        scheduler.schedule(PUSH_STATIC_FILES)

        offsets = []
        while scheduler.pending():
            item = scheduler.pending()[0]
            if item.task == PROCESS_FILE_CHUNK:
                offsets.append(item.args[0])
            scheduler.run_next()

        assert offsets == [0, 20, 40, 60]
        assert files.push_file.call_count == 45
        assert options.get(PROCESSED_FILES_KEY) == 45
        progress = options.get(PROGRESS_KEY)
        assert progress["total"] == 45
        assert progress["processed"] == 45
        assert progress["percentage"] == 100
        assert push_lease(transients).is_held() is False
        assert chunk_lease(transients).is_held() is False

    def test_each_file_pushed_once(
        self,
        processor: ChunkProcessor,
        scheduler: QueuedTaskScheduler,
        files: MagicMock,
        site_root: Path,
    ) -> None:
        """Every manifest entry reaches the file handler exactly once."""
        created = make_files(site_root, [f"d{i % 4}/f{i}.png" for i in range(33)])
        scheduler.schedule(PUSH_STATIC_FILES)
        scheduler.run_pending()

        pushed = [call.args[1] for call in files.push_file.call_args_list]
        assert len(pushed) == len(set(pushed)) == 33
        assert set(pushed) == {p.relative_to(site_root).as_posix() for p in created}

    def test_failures_still_counted(
        self,
        processor: ChunkProcessor,
        options: MemoryOptionStore,
        files: MagicMock,
        site_root: Path,
    ) -> None:
        """processed_files grows by the slice size whatever the outcome."""
        make_files(site_root, [f"f{i}.css" for i in range(5)])
        files.push_file.side_effect = [True, False, RuntimeError("boom"), False, True]
        processor.handle_push_static_files()

        result = processor.process_file_chunk(0)

        assert result.attempted == 5
        assert result.succeeded == 2
        assert result.next_offset == 20
        assert options.get(PROCESSED_FILES_KEY) == 5

    def test_progress_snapshot_after_chunk(
        self,
        processor: ChunkProcessor,
        options: MemoryOptionStore,
        clock: FakeClock,
        site_root: Path,
    ) -> None:
        make_files(site_root, [f"f{i}.css" for i in range(30)])
        processor.handle_push_static_files()

        processor.process_file_chunk(0)

        assert options.get(PROGRESS_KEY) == {
            "total": 30,
            "processed": 20,
            "percentage": 67,
            "last_update": pytest.approx(clock.now),
        }

    def test_delays(
        self,
        processor: ChunkProcessor,
        scheduler: QueuedTaskScheduler,
        clock: FakeClock,
        site_root: Path,
    ) -> None:
        """Pauses between files, none after the last; next chunk deferred 5s."""
        make_files(site_root, ["a.css", "b.css", "c.css"])
        processor.handle_push_static_files()
        scheduler.clear(PROCESS_FILE_CHUNK)
        start = clock.now

        processor.process_file_chunk(0)

        assert clock.sleeps == [0.1, 0.1]
        (item,) = scheduler.pending()
        assert item.args == (20,)
        assert item.run_at == pytest.approx(start + 0.2 + 5.0)

    def test_skipped_when_lease_held(
        self,
        processor: ChunkProcessor,
        transients: MemoryTransientStore,
        scheduler: QueuedTaskScheduler,
        files: MagicMock,
        site_root: Path,
    ) -> None:
        """Overlapping activations never push concurrently."""
        make_files(site_root, ["a.css"])
        chunk_lease(transients).acquire()

        result = processor.process_file_chunk(0)

        assert result.skipped is True
        assert result.finished is False
        files.push_file.assert_not_called()
        assert scheduler.pending() == []

    def test_lease_released_after_chunk(
        self,
        processor: ChunkProcessor,
        transients: MemoryTransientStore,
        site_root: Path,
    ) -> None:
        make_files(site_root, ["a.css"])
        processor.handle_push_static_files()
        processor.process_file_chunk(0)
        assert chunk_lease(transients).is_held() is False

    def test_empty_slice_ends_run(
        self,
        processor: ChunkProcessor,
        transients: MemoryTransientStore,
        scheduler: QueuedTaskScheduler,
    ) -> None:
        """An empty slice releases both leases and schedules nothing."""
        push_lease(transients).mark()

        result = processor.process_file_chunk(0)

        assert result.finished is True
        assert push_lease(transients).is_held() is False
        assert chunk_lease(transients).is_held() is False
        assert scheduler.pending() == []

    def test_expired_chunk_lease_recovers(
        self,
        processor: ChunkProcessor,
        transients: MemoryTransientStore,
        files: MagicMock,
        clock: FakeClock,
        site_root: Path,
    ) -> None:
        """A crashed activation blocks chunks only until its lease expires."""
        make_files(site_root, ["a.css"])
        chunk_lease(transients).acquire()
        assert processor.process_file_chunk(0).skipped is True

        clock.advance(301)

        assert processor.process_file_chunk(0).attempted == 1
        files.push_file.assert_called_once()

    def test_processed_never_exceeds_total(
        self,
        processor: ChunkProcessor,
        options: MemoryOptionStore,
        scheduler: QueuedTaskScheduler,
        files: MagicMock,
        site_root: Path,
    ) -> None:
        """The counters stay consistent after every activation of a run."""
        make_files(site_root, [f"f{i:02d}.css" for i in range(45)])
        files.push_file.side_effect = lambda absolute, relative: not relative.endswith("7.css")
        scheduler.schedule(PUSH_STATIC_FILES)

        while scheduler.run_next() is not None:
            total = options.get(TOTAL_FILES_KEY)
            processed = options.get(PROCESSED_FILES_KEY)
            assert processed <= total
            snapshot = options.get(PROGRESS_KEY)
            if snapshot is not None:
                assert snapshot["processed"] <= snapshot["total"]
                assert snapshot["percentage"] <= 100

        assert options.get(PROCESSED_FILES_KEY) == 45

    def test_stops_when_run_vanishes(
        self,
        processor: ChunkProcessor,
        options: MemoryOptionStore,
        scheduler: QueuedTaskScheduler,
        transients: MemoryTransientStore,
        files: MagicMock,
        site_root: Path,
    ) -> None:
        """A chunk whose run was cleared neither records progress nor continues."""
        make_files(site_root, ["a.css", "b.css"])
        processor.handle_push_static_files()
        scheduler.clear(PROCESS_FILE_CHUNK)
        options.delete(TOTAL_FILES_KEY)

        result = processor.process_file_chunk(0)

        assert result.attempted == 2
        assert result.cancelled is True
        assert result.finished is False
        assert options.get(PROGRESS_KEY) is None
        assert options.get(PROCESSED_FILES_KEY) == 0
        assert chunk_lease(transients).is_held() is False
        assert scheduler.pending() == []


class TestResetDuringChunk:
    """A reset issued while a chunk is pushing ends the run for good."""

    def test_reset_from_inside_a_push(
        self,
        services_factory: Callable[..., PushServices],
        configured_settings: PushSettings,
        site_root: Path,
    ) -> None:
        make_files(site_root, [f"f{i:02d}.css" for i in range(45)])
        services = services_factory(configured_settings)
        pushed: list[str] = []

        def push_file(absolute_path: str, relative_path: str) -> bool:
            pushed.append(relative_path)
            if len(pushed) == 5:
                services.lifecycle.reset()
            return True

        with patch.object(services.files, "push_file", side_effect=push_file):
            services.lifecycle.request_full_push()
            services.scheduler.run_pending()

        # the interrupted slice completes, nothing after it
        assert len(pushed) == 20
        assert services.options.get(TOTAL_FILES_KEY) is None
        assert services.options.get(PROCESSED_FILES_KEY) is None
        assert services.options.get(PROGRESS_KEY) is None
        assert services.scheduler.pending() == []
        state = services.tracker.get_progress()
        assert state.is_active is False
        assert state.is_processing is False
        assert state.processed == 0

    def test_new_run_after_reset_starts_clean(
        self,
        services_factory: Callable[..., PushServices],
        configured_settings: PushSettings,
        site_root: Path,
    ) -> None:
        make_files(site_root, [f"f{i:02d}.css" for i in range(25)])
        services = services_factory(configured_settings)
        calls = 0

        def push_file(absolute_path: str, relative_path: str) -> bool:
            nonlocal calls
            calls += 1
            if calls == 3:
                services.lifecycle.reset()
            return True

        with patch.object(services.files, "push_file", side_effect=push_file):
            services.lifecycle.request_full_push()
            services.scheduler.run_pending()
            services.lifecycle.request_full_push()
            services.scheduler.run_pending()

        assert services.options.get(TOTAL_FILES_KEY) == 25
        assert services.options.get(PROCESSED_FILES_KEY) == 25
        assert services.options.get(PROGRESS_KEY)["percentage"] == 100
        assert services.tracker.get_progress().is_active is False
