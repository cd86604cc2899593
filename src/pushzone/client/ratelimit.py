"""Fixed-window rate limiter for outbound API calls.

The window is persisted in the transient store so that independent task
activations share a single global quota. There is no queuing or backoff:
a rejected call is a plain failure for the caller.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pushzone.core.types import RateLimitWindow
from pushzone.store.database import TransientStore

logger = logging.getLogger(__name__)

RATE_LIMIT_KEY = "rate_limit"
DEFAULT_QUOTA = 60
DEFAULT_WINDOW_SECONDS = 60


class RateLimiter:
    """Gate outbound calls to a fixed quota per rolling window.

    Not thread-safe; callers serialize access through the shared window.
    """

    def __init__(
        self,
        store: TransientStore,
        quota: int = DEFAULT_QUOTA,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Transient store holding the window record.
            quota: Maximum calls allowed per window.
            window_seconds: Window length in seconds.
            clock: Time source.
        """
        self._store = store
        self._quota = quota
        self._window_seconds = window_seconds
        self._clock = clock

    def _load(self, now: float) -> RateLimitWindow:
        data = self._store.get(RATE_LIMIT_KEY)
        if data is None:
            return RateLimitWindow(count=0, window_start=now)
        return RateLimitWindow.from_dict(data)

    def _save(self, window: RateLimitWindow) -> None:
        # Record outlives its window so an idle limiter starts fresh
        self._store.set(RATE_LIMIT_KEY, window.to_dict(), ttl=self._window_seconds * 2)

    def allow(self) -> bool:
        """Consume one call from the current window.

        Returns:
            True if the call may proceed, False if the quota is exhausted.
        """
        now = self._clock()
        window = self._load(now)

        if now - window.window_start > self._window_seconds:
            self._save(RateLimitWindow(count=1, window_start=now))
            return True

        if window.count >= self._quota:
            logger.warning("API rate limit exceeded (%d calls per %ds)", self._quota, self._window_seconds)
            return False

        window.count += 1
        self._save(window)
        return True

    def reset(self) -> None:
        """Forget the current window."""
        self._store.delete(RATE_LIMIT_KEY)
