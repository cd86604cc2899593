"""Shared fixtures for pushzone tests."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from pushzone.core.config import PushSettings
from pushzone.services import PushServices, build_services
from pushzone.store.database import MemoryOptionStore, MemoryTransientStore
from pushzone.store.settings import SettingsRepository

from tests.helpers import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def options() -> MemoryOptionStore:
    return MemoryOptionStore()


@pytest.fixture
def transients(clock: FakeClock) -> MemoryTransientStore:
    return MemoryTransientStore(clock)


@pytest.fixture
def settings_repo(options: MemoryOptionStore) -> SettingsRepository:
    return SettingsRepository(options)


@pytest.fixture
def configured_settings() -> PushSettings:
    return PushSettings(api_key="sk_test_123456", push_zone_id="42", cdn_url="cdn.example.com")


@pytest.fixture
def site_root(tmp_path: Path) -> Path:
    root = tmp_path / "site"
    root.mkdir()
    return root


@pytest.fixture
def services_factory(
    site_root: Path, clock: FakeClock
) -> Iterator[Callable[..., PushServices]]:
    """Build in-memory services with no delays and a fake clock."""
    built: list[PushServices] = []

    def factory(settings: PushSettings | None = None, **kwargs: object) -> PushServices:
        kwargs.setdefault("environ", {})
        kwargs.setdefault("file_delay", 0.0)
        kwargs.setdefault("next_chunk_delay", 0.0)
        services = build_services(
            root=site_root,
            clock=clock,
            sleep=clock.sleep,
            **kwargs,  # type: ignore[arg-type]
        )
        if settings is not None:
            services.settings.save(settings)
        built.append(services)
        return services

    yield factory

    for services in built:
        services.close()


@pytest.fixture(autouse=True)
def reset_pushzone_logger() -> Iterator[None]:
    """Undo setup_logging() calls made by commands under test."""
    logger = logging.getLogger("pushzone")
    level = logger.level
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep credentials and paths from the host environment out of tests."""
    for name in (
        "KEYCDN_API_KEY",
        "KEYCDN_PUSH_ZONE_ID",
        "PUSHZONE_ROOT",
        "PUSHZONE_DB_PATH",
        "PUSHZONE_LOG_PATH",
        "PUSHZONE_ADMIN_TOKEN",
    ):
        monkeypatch.delenv(name, raising=False)
