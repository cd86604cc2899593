"""Lifecycle of full push runs.

This module provides:
- LifecycleController: arms, resets and tears down push runs, and applies
  settings changes that affect them
- SettingsUpdate: what update_settings() changed and scheduled
- PushZoneError / NotConfiguredError / PushAlreadyActiveError: failures of
  administrative actions
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pushzone.client.api import PushZoneClient
from pushzone.client.ratelimit import RateLimiter
from pushzone.core.config import PushSettings
from pushzone.jobs.leases import chunk_lease, push_lease
from pushzone.jobs.processor import PROCESSED_FILES_KEY, PROGRESS_KEY, TOTAL_FILES_KEY
from pushzone.jobs.progress import ProgressTracker
from pushzone.jobs.scheduler import PROCESS_FILE_CHUNK, PUSH_STATIC_FILES, TaskScheduler
from pushzone.scan.scanner import DirectoryScanner
from pushzone.store.database import OptionStore, TransientStore
from pushzone.store.settings import SettingsRepository

logger = logging.getLogger(__name__)

DEPLOY_KINDS = ("theme", "plugin")


class PushZoneError(Exception):
    """Base exception for administrative actions."""


class NotConfiguredError(PushZoneError):
    """API key or push zone ID missing."""

    def __init__(self, message: str = "API key or Push Zone ID not configured.") -> None:
        super().__init__(message)


class PushAlreadyActiveError(PushZoneError):
    """A full push run is already in progress."""

    def __init__(self, message: str = "File push already in progress.") -> None:
        super().__init__(message)


@dataclass(frozen=True)
class SettingsUpdate:
    """Outcome of LifecycleController.update_settings().

    Attributes:
        changed: Credentials or directory settings changed.
        push_scheduled: A new full push run was armed by this update.
    """

    changed: bool
    push_scheduled: bool = False


def _push_relevant_changes(old: PushSettings, new: PushSettings) -> tuple[bool, bool]:
    """Compare settings.

    Returns:
        (settings_changed, policy_changed): credentials or directory
        settings changed; the directory policy itself changed.
    """
    policy_changed = old.policy() != new.policy()
    credentials_changed = (
        old.api_key != new.api_key or old.push_zone_id != new.push_zone_id
    )
    directories_changed = (
        old.include_default_upload_dir != new.include_default_upload_dir
        or old.custom_directories != new.custom_directories
    )
    return credentials_changed or directories_changed, policy_changed


class LifecycleController:
    """Schedules, resets and tears down full push runs."""

    def __init__(
        self,
        options: OptionStore,
        transients: TransientStore,
        settings: SettingsRepository,
        scheduler: TaskScheduler,
        scanner: DirectoryScanner,
        tracker: ProgressTracker,
        client: PushZoneClient,
        rate_limiter: RateLimiter,
    ) -> None:
        self._options = options
        self._settings = settings
        self._scheduler = scheduler
        self._scanner = scanner
        self._tracker = tracker
        self._client = client
        self._rate_limiter = rate_limiter
        self._push_lease = push_lease(transients)
        self._chunk_lease = chunk_lease(transients)

    # === Runs ===

    def schedule_full_push(self) -> bool:
        """Arm a full push run.

        Idempotent: nothing happens if the bootstrap task is already
        scheduled.

        Returns:
            True if a run was scheduled.
        """
        if self._scheduler.is_scheduled(PUSH_STATIC_FILES):
            logger.debug("Full push already scheduled")
            return False

        self._scheduler.schedule(PUSH_STATIC_FILES)
        self._push_lease.mark()
        # stale snapshot of the previous run
        self._options.delete(PROGRESS_KEY)
        logger.info("Full push scheduled")
        return True

    def request_full_push(self) -> bool:
        """Administrative "push all files" action.

        Raises:
            NotConfiguredError: If credentials are missing.
            PushAlreadyActiveError: If a run is active.
        """
        if not self._client.is_configured():
            raise NotConfiguredError()
        if self._tracker.get_progress().is_active:
            raise PushAlreadyActiveError()
        return self.schedule_full_push()

    def reset(self) -> None:
        """Clear scheduled tasks, leases, progress and the manifest cache.

        Safe in any state. A chunk already running finishes its slice, then
        sees total_files gone and neither records progress nor schedules
        another chunk.
        """
        self._scheduler.clear(PUSH_STATIC_FILES)
        self._scheduler.clear(PROCESS_FILE_CHUNK)

        self._push_lease.release()
        self._chunk_lease.release()

        self._options.delete(PROGRESS_KEY)
        self._options.delete(TOTAL_FILES_KEY)
        self._options.delete(PROCESSED_FILES_KEY)

        self._scanner.clear_cache()
        logger.info("Push process reset")

    # === Admin actions ===

    def purge_cache(self) -> bool:
        """Administrative "purge zone cache" action.

        Raises:
            NotConfiguredError: If credentials are missing.
        """
        if not self._client.is_configured():
            raise NotConfiguredError()
        return self._client.purge_zone_cache()

    # === Settings and hooks ===

    def update_settings(self, new: PushSettings) -> SettingsUpdate:
        """Persist settings and react to push-relevant changes.

        A directory policy change always drops the cached manifest. When
        credentials or directory settings changed and push_on_settings_update
        is on, a full push is scheduled.

        Returns:
            SettingsUpdate telling whether push-relevant settings changed
            and whether a run was actually scheduled. No run is scheduled
            when one is already pending.
        """
        old = self._settings.load()
        self._settings.save(new)

        settings_changed, policy_changed = _push_relevant_changes(old, new)
        if policy_changed:
            self._scanner.clear_cache()

        scheduled = False
        if new.push_on_settings_update and settings_changed:
            self._scanner.clear_cache()
            scheduled = self.schedule_full_push()

        return SettingsUpdate(changed=settings_changed, push_scheduled=scheduled)

    def handle_deploy(self, kind: str) -> bool:
        """React to a theme or plugin deploy.

        Returns:
            True if a full push was scheduled.
        """
        if kind not in DEPLOY_KINDS:
            return False
        if not self._settings.load().push_static_files or not self._client.is_configured():
            return False
        return self.schedule_full_push()

    def uninstall(self) -> None:
        """Remove every record this package stores."""
        self.reset()
        self._settings.clear()
        self._rate_limiter.reset()
        logger.info("All push zone state removed")
