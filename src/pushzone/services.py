"""Explicit construction of the push zone components.

build_services() wires stores, client, scanner, scheduler and the job
handlers together. There is no module-level singleton: each caller (CLI
command, HTTP app, test) builds and closes its own PushServices.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

import httpx

from pushzone.client.api import PushZoneClient
from pushzone.client.files import FileHandler
from pushzone.client.ratelimit import RateLimiter
from pushzone.core.config import ApiConfig, CredentialResolver
from pushzone.jobs.lifecycle import LifecycleController
from pushzone.jobs.processor import ChunkProcessor
from pushzone.jobs.progress import ProgressTracker
from pushzone.jobs.scheduler import (
    PROCESS_FILE_CHUNK,
    PUSH_STATIC_FILES,
    BackgroundTaskScheduler,
    QueuedTaskScheduler,
    TaskScheduler,
)
from pushzone.scan.scanner import DirectoryScanner
from pushzone.store.database import (
    Database,
    MemoryOptionStore,
    MemoryTransientStore,
    OptionStore,
    TransientStore,
)
from pushzone.store.settings import SettingsRepository

logger = logging.getLogger(__name__)


@dataclass
class PushServices:
    """Every component of a push zone installation."""

    root: Path
    options: OptionStore
    transients: TransientStore
    settings: SettingsRepository
    credentials: CredentialResolver
    rate_limiter: RateLimiter
    client: PushZoneClient
    files: FileHandler
    scanner: DirectoryScanner
    scheduler: TaskScheduler
    processor: ChunkProcessor
    tracker: ProgressTracker
    lifecycle: LifecycleController
    database: Database | None = None

    def close(self) -> None:
        """Stop the scheduler and release the HTTP client and database."""
        self.scheduler.stop()
        self.client.close()
        if self.database is not None:
            self.database.close()


def build_services(
    root: str | Path,
    db_path: str | Path | None = None,
    scheduler: TaskScheduler | None = None,
    background: bool = False,
    overrides: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
    api_config: ApiConfig | None = None,
    transport: httpx.BaseTransport | None = None,
    clock: Callable[[], float] = time.time,
    sleep: Callable[[float], None] = time.sleep,
    file_delay: float | None = None,
    next_chunk_delay: float | None = None,
) -> PushServices:
    """Build a PushServices instance.

    Args:
        root: Installation root the scanner walks.
        db_path: SQLite database path. None keeps everything in memory.
        scheduler: Task scheduler. Defaults to a QueuedTaskScheduler.
        background: Without an explicit scheduler, use a
            BackgroundTaskScheduler whose jobs persist in the database.
        overrides: Deploy-time credential overrides.
        environ: Environment mapping for credential lookup.
        api_config: API base URL and timeout.
        transport: Optional httpx transport (used by tests).
        clock: Time source shared by every component.
        sleep: Sleep function used between pushes.
        file_delay: Override for the pause between two pushes.
        next_chunk_delay: Override for the defer before the next chunk.

    Returns:
        Wired services with the task handlers registered.
    """
    root_path = Path(root).resolve()

    database: Database | None = None
    options: OptionStore
    transients: TransientStore
    if db_path is None:
        options = MemoryOptionStore()
        transients = MemoryTransientStore(clock)
    else:
        database = Database(db_path, clock)
        options = database.options
        transients = database.transients

    settings = SettingsRepository(options)
    credentials = CredentialResolver(settings.load, overrides=overrides, environ=environ)
    rate_limiter = RateLimiter(transients, clock=clock)
    client = PushZoneClient(
        credentials,
        rate_limiter,
        config=api_config,
        root=root_path,
        transport=transport,
    )
    files = FileHandler(client, settings.load, root_path)
    scanner = DirectoryScanner(root_path, settings.load, transients)

    if scheduler is None and background:
        scheduler = BackgroundTaskScheduler(engine=database.engine if database else None)
    elif scheduler is None:
        scheduler = QueuedTaskScheduler(clock)

    processor_kwargs: dict[str, float] = {}
    if file_delay is not None:
        processor_kwargs["file_delay"] = file_delay
    if next_chunk_delay is not None:
        processor_kwargs["next_chunk_delay"] = next_chunk_delay
    processor = ChunkProcessor(
        options,
        transients,
        scanner,
        files,
        scheduler,
        clock=clock,
        sleep=sleep,
        **processor_kwargs,
    )
    scheduler.register(PUSH_STATIC_FILES, processor.handle_push_static_files)
    scheduler.register(PROCESS_FILE_CHUNK, processor.process_file_chunk)

    tracker = ProgressTracker(options, transients, clock=clock)
    lifecycle = LifecycleController(
        options,
        transients,
        settings,
        scheduler,
        scanner,
        tracker,
        client,
        rate_limiter,
    )

    logger.debug("Services built for %s (database: %s)", root_path, db_path or "memory")
    return PushServices(
        root=root_path,
        options=options,
        transients=transients,
        settings=settings,
        credentials=credentials,
        rate_limiter=rate_limiter,
        client=client,
        files=files,
        scanner=scanner,
        scheduler=scheduler,
        processor=processor,
        tracker=tracker,
        lifecycle=lifecycle,
        database=database,
    )
