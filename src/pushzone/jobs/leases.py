"""Time-boxed exclusivity leases.

A lease is a named flag in the transient store that expires on its own,
so a crashed activation can block others for at most the lease TTL.
"""

from __future__ import annotations

from pushzone.store.database import TransientStore

PUSHING_FILES = "pushing_files"
PUSHING_FILES_TTL = 3600
PROCESSING_CHUNK = "processing_chunk"
PROCESSING_CHUNK_TTL = 300


class Lease:
    """Named, auto-expiring flag."""

    def __init__(self, store: TransientStore, name: str, ttl: float) -> None:
        self._store = store
        self.name = name
        self.ttl = ttl

    def acquire(self) -> bool:
        """Take the lease if nobody holds it.

        Returns:
            True if this caller now holds the lease.
        """
        return self._store.add(self.name, True, ttl=self.ttl)

    def mark(self) -> None:
        """Set the lease unconditionally, restarting its TTL."""
        self._store.set(self.name, True, ttl=self.ttl)

    def release(self) -> None:
        self._store.delete(self.name)

    def is_held(self) -> bool:
        return self._store.exists(self.name)


def push_lease(store: TransientStore) -> Lease:
    """Long lease marking a full push run as active."""
    return Lease(store, PUSHING_FILES, PUSHING_FILES_TTL)


def chunk_lease(store: TransientStore) -> Lease:
    """Short lease preventing overlapping chunk activations."""
    return Lease(store, PROCESSING_CHUNK, PROCESSING_CHUNK_TTL)
