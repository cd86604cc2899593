"""Test helpers shared across modules."""

from __future__ import annotations

from pathlib import Path

API_URL = "https://api.keycdn.com"


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_files(root: Path, paths: list[str], content: bytes = b"body{}") -> list[Path]:
    """Create files (and their parents) under root."""
    created = []
    for relative in paths:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        created.append(path)
    return created
