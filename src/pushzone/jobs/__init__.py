"""Background jobs for full push runs.

Architecture:
    LifecycleController → TaskScheduler → ChunkProcessor → FileHandler

Components:
- **LifecycleController**: arms, resets and tears down runs
- **TaskScheduler**: delivers named tasks (APScheduler or in-process queue)
- **ChunkProcessor**: bootstrap and per-chunk task handlers
- **ProgressTracker**: read-only status derived from stores and leases
- **Lease**: time-boxed exclusivity flags
"""

from pushzone.jobs.leases import (
    PROCESSING_CHUNK,
    PROCESSING_CHUNK_TTL,
    PUSHING_FILES,
    PUSHING_FILES_TTL,
    Lease,
    chunk_lease,
    push_lease,
)
from pushzone.jobs.lifecycle import (
    LifecycleController,
    NotConfiguredError,
    PushAlreadyActiveError,
    PushZoneError,
    SettingsUpdate,
)
from pushzone.jobs.processor import (
    DEFAULT_CHUNK_SIZE,
    PROCESSED_FILES_KEY,
    PROGRESS_KEY,
    TOTAL_FILES_KEY,
    ChunkProcessor,
    ChunkResult,
    compute_percentage,
)
from pushzone.jobs.progress import STALL_THRESHOLD, ProgressPoller, ProgressTracker
from pushzone.jobs.scheduler import (
    PROCESS_FILE_CHUNK,
    PUSH_STATIC_FILES,
    BackgroundTaskScheduler,
    QueuedTaskScheduler,
    ScheduledTask,
    TaskScheduler,
    UnknownTaskError,
    run_scheduled_task,
)

__all__ = [
    # Leases
    "Lease",
    "PROCESSING_CHUNK",
    "PROCESSING_CHUNK_TTL",
    "PUSHING_FILES",
    "PUSHING_FILES_TTL",
    "chunk_lease",
    "push_lease",
    # Lifecycle
    "LifecycleController",
    "NotConfiguredError",
    "PushAlreadyActiveError",
    "PushZoneError",
    "SettingsUpdate",
    # Processor
    "ChunkProcessor",
    "ChunkResult",
    "DEFAULT_CHUNK_SIZE",
    "PROCESSED_FILES_KEY",
    "PROGRESS_KEY",
    "TOTAL_FILES_KEY",
    "compute_percentage",
    # Progress
    "ProgressPoller",
    "ProgressTracker",
    "STALL_THRESHOLD",
    # Scheduler
    "BackgroundTaskScheduler",
    "PROCESS_FILE_CHUNK",
    "PUSH_STATIC_FILES",
    "QueuedTaskScheduler",
    "ScheduledTask",
    "TaskScheduler",
    "UnknownTaskError",
    "run_scheduled_task",
]
