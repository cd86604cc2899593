"""Tests for service wiring."""

from __future__ import annotations

from pathlib import Path

from pushzone.core.config import PushSettings
from pushzone.jobs.scheduler import PROCESS_FILE_CHUNK, PUSH_STATIC_FILES, QueuedTaskScheduler
from pushzone.services import build_services


class TestBuildServices:
    """Tests for build_services()."""

    def test_in_memory_by_default(self, site_root: Path) -> None:
        services = build_services(site_root, environ={})
        try:
            assert services.database is None
            assert isinstance(services.scheduler, QueuedTaskScheduler)
            assert services.root == site_root.resolve()
        finally:
            services.close()

    def test_registers_task_handlers(self, site_root: Path) -> None:
        services = build_services(site_root, environ={}, file_delay=0.0, next_chunk_delay=0.0)
        try:
            services.scheduler.schedule(PUSH_STATIC_FILES)
            scheduler = services.scheduler
            assert isinstance(scheduler, QueuedTaskScheduler)

            # Bootstrap, then one empty chunk that ends the run
            assert scheduler.run_pending() == 2
            assert not scheduler.is_scheduled(PROCESS_FILE_CHUNK)
        finally:
            services.close()

    def test_sqlite_persists_between_instances(self, site_root: Path, tmp_path: Path) -> None:
        db_path = tmp_path / "pushzone.db"
        first = build_services(site_root, db_path=db_path, environ={})
        first.settings.save(PushSettings(api_key="k", push_zone_id="7"))
        first.close()

        second = build_services(site_root, db_path=db_path, environ={})
        try:
            assert second.database is not None
            assert second.credentials.is_configured() is True
            assert second.settings.load().push_zone_id == "7"
        finally:
            second.close()

    def test_overrides_win(self, site_root: Path) -> None:
        services = build_services(
            site_root,
            overrides={"api_key": "from-constant"},
            environ={"KEYCDN_API_KEY": "from-env"},
        )
        try:
            services.settings.save(PushSettings(api_key="stored", push_zone_id="1"))
            assert services.credentials.api_key() == "from-constant"
            assert services.credentials.push_zone_id() == "1"
        finally:
            services.close()
