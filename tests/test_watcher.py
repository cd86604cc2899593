"""Tests for the upload directory watcher."""

from __future__ import annotations

import time
from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from watchdog.events import (
    DirCreatedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from pushzone.core.config import PushSettings
from pushzone.services import PushServices
from pushzone.watcher import ChangeType, UploadChange, UploadEventHandler, UploadWatcher

from tests.helpers import make_files


@pytest.fixture
def files() -> MagicMock:
    handler = MagicMock()
    handler.push_file.return_value = True
    handler.delete_file.return_value = True
    return handler


@pytest.fixture
def watcher(
    services_factory: Callable[..., PushServices],
    configured_settings: PushSettings,
    files: MagicMock,
) -> UploadWatcher:
    services = services_factory(configured_settings)
    return UploadWatcher(services.scanner, files, settle_delay_s=0.1)


class TestUploadEventHandler:
    """Tests for event coalescing."""

    def test_records_file_events(self, tmp_path: Path) -> None:
        received: list[list[UploadChange]] = []
        handler = UploadEventHandler(received.append, settle_delay_s=60)

        handler.on_created(FileCreatedEvent(str(tmp_path / "a.css")))
        handler.on_deleted(FileDeletedEvent(str(tmp_path / "b.css")))
        handler.flush()
        handler.stop()

        assert len(received) == 1
        kinds = {change.path.name: change.change_type for change in received[0]}
        assert kinds == {"a.css": ChangeType.CREATED, "b.css": ChangeType.DELETED}

    def test_latest_event_per_path_wins(self, tmp_path: Path) -> None:
        """Several events on one path collapse into the last one."""
        received: list[list[UploadChange]] = []
        handler = UploadEventHandler(received.append, settle_delay_s=60)
        path = str(tmp_path / "a.css")

        handler.on_created(FileCreatedEvent(path))
        handler.on_modified(FileModifiedEvent(path))
        handler.on_modified(FileModifiedEvent(path))
        handler.flush()
        handler.stop()

        assert [change.change_type for change in received[0]] == [ChangeType.MODIFIED]

    def test_ignores_directory_events(self, tmp_path: Path) -> None:
        received: list[list[UploadChange]] = []
        handler = UploadEventHandler(received.append, settle_delay_s=60)

        handler.on_created(DirCreatedEvent(str(tmp_path / "static")))
        handler.flush()

        assert received == []

    def test_moved_keeps_destination(self, tmp_path: Path) -> None:
        received: list[list[UploadChange]] = []
        handler = UploadEventHandler(received.append, settle_delay_s=60)

        handler.on_moved(FileMovedEvent(str(tmp_path / "a.css"), str(tmp_path / "b.css")))
        handler.flush()
        handler.stop()

        change = received[0][0]
        assert change.change_type == ChangeType.MOVED
        assert change.dest_path == tmp_path / "b.css"

    def test_flushes_after_quiet_period(self, tmp_path: Path) -> None:
        received: list[list[UploadChange]] = []
        handler = UploadEventHandler(received.append, settle_delay_s=0.05)

        handler.on_created(FileCreatedEvent(str(tmp_path / "a.css")))
        for _ in range(100):
            if received:
                break
            time.sleep(0.05)

        assert len(received) == 1


class TestApplyChanges:
    """Tests for mirroring changes to the push zone."""

    def test_created_eligible_file_is_pushed(
        self, watcher: UploadWatcher, files: MagicMock, site_root: Path
    ) -> None:
        (path,) = make_files(site_root, ["static/app.css"])

        counts = watcher.apply_changes([UploadChange(path, ChangeType.CREATED)])

        assert counts == {"pushed": 1, "purged": 0}
        files.push_file.assert_called_once_with(path.resolve(), "static/app.css")

    def test_modified_file_is_pushed(
        self, watcher: UploadWatcher, files: MagicMock, site_root: Path
    ) -> None:
        (path,) = make_files(site_root, ["app.js"])
        counts = watcher.apply_changes([UploadChange(path, ChangeType.MODIFIED)])
        assert counts["pushed"] == 1

    def test_ineligible_files_are_ignored(
        self, watcher: UploadWatcher, files: MagicMock, site_root: Path
    ) -> None:
        """Wrong extensions and excluded directories are skipped."""
        paths = make_files(site_root, ["notes.txt", "wp-admin/admin.css"])

        counts = watcher.apply_changes(
            [UploadChange(path, ChangeType.CREATED) for path in paths]
        )

        assert counts == {"pushed": 0, "purged": 0}
        files.push_file.assert_not_called()

    def test_outside_root_is_ignored(
        self, watcher: UploadWatcher, files: MagicMock, tmp_path: Path
    ) -> None:
        (path,) = make_files(tmp_path, ["elsewhere/app.css"])
        counts = watcher.apply_changes([UploadChange(path, ChangeType.CREATED)])
        assert counts["pushed"] == 0

    def test_deleted_file_is_purged(
        self, watcher: UploadWatcher, files: MagicMock, site_root: Path
    ) -> None:
        path = site_root / "static" / "old.css"

        counts = watcher.apply_changes([UploadChange(path, ChangeType.DELETED)])

        assert counts == {"pushed": 0, "purged": 1}
        files.delete_file.assert_called_once_with("static/old.css")

    def test_moved_purges_source_and_pushes_destination(
        self, watcher: UploadWatcher, files: MagicMock, site_root: Path
    ) -> None:
        (dest,) = make_files(site_root, ["new.css"])

        counts = watcher.apply_changes(
            [UploadChange(site_root / "old.css", ChangeType.MOVED, dest_path=dest)]
        )

        assert counts == {"pushed": 1, "purged": 1}
        files.delete_file.assert_called_once_with("old.css")
        files.push_file.assert_called_once_with(dest.resolve(), "new.css")

    def test_failed_push_not_counted(
        self, watcher: UploadWatcher, files: MagicMock, site_root: Path
    ) -> None:
        files.push_file.return_value = False
        (path,) = make_files(site_root, ["app.css"])
        counts = watcher.apply_changes([UploadChange(path, ChangeType.CREATED)])
        assert counts["pushed"] == 0

    def test_error_does_not_stop_batch(
        self, watcher: UploadWatcher, files: MagicMock, site_root: Path
    ) -> None:
        """An exception on one change is logged and the rest still run."""
        files.push_file.side_effect = [RuntimeError("boom"), True]
        paths = make_files(site_root, ["a.css", "b.css"])

        counts = watcher.apply_changes(
            [UploadChange(path, ChangeType.CREATED) for path in paths]
        )

        assert counts["pushed"] == 1
        assert files.push_file.call_count == 2


class TestUploadWatcher:
    """Tests for the observer lifecycle."""

    def test_start_stop(self, watcher: UploadWatcher) -> None:
        assert watcher.is_running is False
        with watcher:
            assert watcher.is_running is True
        assert watcher.is_running is False

    def test_pushes_new_file(
        self, watcher: UploadWatcher, files: MagicMock, site_root: Path
    ) -> None:
        with watcher:
            make_files(site_root, ["live.css"])
            for _ in range(100):
                if files.push_file.called:
                    break
                time.sleep(0.05)

        assert files.push_file.called
        assert files.push_file.call_args.args[1] == "live.css"
