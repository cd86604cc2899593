"""Read-only progress view and a polling consumer.

This module provides:
- ProgressTracker: derives ProgressState from persisted progress and leases
- ProgressPoller: polls the tracker while a run is active, can be paused
  while its consumer is not visible, and signals once when the run ends
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from pushzone.core.types import ProgressState
from pushzone.jobs.leases import chunk_lease, push_lease
from pushzone.jobs.processor import PROGRESS_KEY
from pushzone.store.database import OptionStore, TransientStore

logger = logging.getLogger(__name__)

STALL_THRESHOLD = 300  # seconds without a progress update
POLL_INTERVAL = 5.0
FINISH_DELAY = 1.0


class ProgressTracker:
    """Derives the status view without mutating anything."""

    def __init__(
        self,
        options: OptionStore,
        transients: TransientStore,
        stall_threshold: float = STALL_THRESHOLD,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._options = options
        self._push_lease = push_lease(transients)
        self._chunk_lease = chunk_lease(transients)
        self._stall_threshold = stall_threshold
        self._clock = clock

    def get_progress(self) -> ProgressState:
        """Current progress of the full push run.

        stalled is a liveness heuristic: the run is active but no chunk has
        reported for longer than the threshold. A run whose first chunk has
        not completed yet (last_update 0) is never stalled.
        """
        stored = self._options.get(PROGRESS_KEY) or {}
        state = ProgressState(
            total=int(stored.get("total", 0)),
            processed=int(stored.get("processed", 0)),
            percentage=int(stored.get("percentage", 0)),
            last_update=float(stored.get("last_update", 0)),
            is_active=self._push_lease.is_held(),
            is_processing=self._chunk_lease.is_held(),
        )
        if state.is_active and state.last_update > 0:
            state.stalled = self._clock() - state.last_update > self._stall_threshold
        return state


class ProgressPoller:
    """Polls a tracker at a fixed interval while a run is active.

    Usage:
        poller = ProgressPoller(tracker, on_update=render, on_finished=refresh)
        thread = threading.Thread(target=poller.run, daemon=True)
        thread.start()
        poller.pause()   # consumer hidden
        poller.resume()  # consumer visible again, refreshes immediately
    """

    def __init__(
        self,
        tracker: ProgressTracker,
        on_update: Callable[[ProgressState], None],
        on_finished: Callable[[], None] | None = None,
        interval: float = POLL_INTERVAL,
        finish_delay: float = FINISH_DELAY,
    ) -> None:
        """Initialize the poller.

        Args:
            tracker: Source of progress snapshots.
            on_update: Called with every snapshot.
            on_finished: Called once after the run stops being active.
            interval: Seconds between two polls.
            finish_delay: Pause before on_finished.
        """
        self._tracker = tracker
        self._on_update = on_update
        self._on_finished = on_finished
        self._interval = interval
        self._finish_delay = finish_delay

        self._visible = threading.Event()
        self._visible.set()
        self._wakeup = threading.Event()
        self._stopped = threading.Event()

    @property
    def paused(self) -> bool:
        return not self._visible.is_set()

    def pause(self) -> None:
        """Stop polling until resume() is called."""
        self._visible.clear()

    def resume(self) -> None:
        """Resume polling with an immediate refresh."""
        self._visible.set()
        self._wakeup.set()

    def stop(self) -> None:
        """Stop the polling loop."""
        self._stopped.set()
        self._visible.set()
        self._wakeup.set()

    def poll_once(self) -> ProgressState:
        """Fetch and publish one snapshot."""
        state = self._tracker.get_progress()
        self._on_update(state)
        return state

    def run(self) -> ProgressState | None:
        """Poll until the run is no longer active or stop() is called.

        on_finished fires only when a run seen active has ended. Started
        while idle, the poller returns after the first snapshot.

        Returns:
            The last snapshot published, or None if stopped first.
        """
        last: ProgressState | None = None
        seen_active = False
        while not self._stopped.is_set():
            self._visible.wait()
            if self._stopped.is_set():
                break

            last = self.poll_once()
            if not last.is_active:
                if seen_active:
                    if self._finish_delay > 0:
                        self._stopped.wait(self._finish_delay)
                    if self._on_finished is not None:
                        self._on_finished()
                return last
            seen_active = True

            self._wakeup.wait(self._interval)
            self._wakeup.clear()
        return last
