"""Shared types for pushzone.

This module defines the records exchanged between the scanner, the
background jobs and the status surfaces.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class FileRecord:
    """A local file eligible for pushing.

    Attributes:
        absolute_path: Full path on disk (identity of the record).
        relative_path: Path relative to the installation root, "/" separated.
    """

    absolute_path: str
    relative_path: str

    def to_dict(self) -> dict[str, str]:
        """Convert to a JSON-serializable dictionary."""
        return {"path": self.absolute_path, "relative_path": self.relative_path}

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> FileRecord:
        """Create from a cached manifest entry."""
        return cls(absolute_path=data["path"], relative_path=data["relative_path"])


@dataclass
class ProgressState:
    """Read-only view of a full push run.

    Attributes:
        total: Number of files counted when the run started.
        processed: Files handled so far (successful or not).
        percentage: Rounded processed/total ratio (0-100).
        last_update: Unix timestamp of the last chunk completion (0 if none).
        is_active: Whether the long "push in progress" lease is held.
        is_processing: Whether a chunk is currently in flight.
        stalled: Active run with no progress update for too long.
    """

    total: int = 0
    processed: int = 0
    percentage: int = 0
    last_update: float = 0
    is_active: bool = False
    is_processing: bool = False
    stalled: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to the status query payload."""
        return {
            "total": self.total,
            "processed": self.processed,
            "percentage": self.percentage,
            "last_update": self.last_update,
            "is_active": self.is_active,
            "is_processing": self.is_processing,
            "stalled": self.stalled,
        }


@dataclass
class RateLimitWindow:
    """Rolling window shared by every outbound API call."""

    count: int
    window_start: float

    def to_dict(self) -> dict[str, float]:
        return {"count": self.count, "window_start": self.window_start}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RateLimitWindow:
        return cls(count=int(data["count"]), window_start=float(data["window_start"]))
