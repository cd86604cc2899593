"""Directory scanner producing the file manifest.

This module provides:
- DirectoryScanner: walks the installation root, applies the directory
  policy, and serves the cached manifest by count and by slice

Walk order:
    Depth-first from the root. Within a directory, entries are listed once;
    sub-directories are recursed into first (listing order), then files are
    accepted (listing order). No sorting is applied.

Caching:
    The manifest and its count are cached in the transient store for an
    hour so every chunk of a run reads the same list. Any change to the
    directory policy must go through clear_cache().
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path

from pushzone.core.config import DirectoryPolicy, PushSettings
from pushzone.core.redaction import redact
from pushzone.core.types import FileRecord
from pushzone.store.database import TransientStore

logger = logging.getLogger(__name__)

FILES_LIST_KEY = "files_list"
FILES_COUNT_KEY = "files_count"
MANIFEST_TTL = 3600


class DirectoryScanner:
    """Enumerates files eligible for pushing."""

    def __init__(
        self,
        root: str | Path,
        settings: Callable[[], PushSettings],
        cache: TransientStore,
        cache_ttl: float = MANIFEST_TTL,
    ) -> None:
        """Initialize the scanner.

        Args:
            root: Installation root the walk starts from.
            settings: Callable returning the current settings.
            cache: Transient store holding the cached manifest.
            cache_ttl: Manifest lifetime in seconds.
        """
        self._root = Path(root).resolve()
        self._settings = settings
        self._cache = cache
        self._cache_ttl = cache_ttl

    @property
    def root(self) -> Path:
        return self._root

    def _relative(self, path: Path) -> str:
        rel = path.relative_to(self._root).as_posix()
        return "" if rel == "." else rel

    def _should_descend(self, relative_dir: str, policy: DirectoryPolicy) -> bool:
        """Check exclusion, then eligibility (or being on the way to it)."""
        if policy.is_excluded(relative_dir):
            return False
        return policy.is_eligible(relative_dir) or policy.leads_to_eligible(relative_dir)

    def _walk(self, directory: Path, policy: DirectoryPolicy, manifest: list[FileRecord]) -> None:
        relative_dir = self._relative(directory)
        if not self._should_descend(relative_dir, policy):
            return

        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            logger.warning("Cannot read directory %s", redact(f"{directory}: {e}", self._root))
            return

        subdirs: list[Path] = []
        files: list[os.DirEntry[str]] = []
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    subdirs.append(Path(entry.path))
                elif entry.is_file():
                    files.append(entry)
            except OSError:
                continue

        for subdir in subdirs:
            self._walk(subdir, policy, manifest)

        if not policy.is_eligible(relative_dir):
            return

        for entry in files:
            if policy.accepts_extension(entry.name):
                path = Path(entry.path)
                manifest.append(
                    FileRecord(absolute_path=str(path), relative_path=self._relative(path))
                )

    def scan(self) -> list[FileRecord]:
        """Walk the tree without touching the cache.

        Returns:
            Eligible files in scan order.
        """
        policy = self._settings().policy()
        manifest: list[FileRecord] = []
        self._walk(self._root, policy, manifest)
        logger.debug("Scanned %d eligible files", len(manifest))
        return manifest

    def _manifest(self) -> list[FileRecord]:
        cached = self._cache.get(FILES_LIST_KEY)
        if cached is not None:
            return [FileRecord.from_dict(item) for item in cached]

        manifest = self.scan()
        self._cache.set(
            FILES_LIST_KEY, [record.to_dict() for record in manifest], ttl=self._cache_ttl
        )
        self._cache.set(FILES_COUNT_KEY, len(manifest), ttl=self._cache_ttl)
        return manifest

    def count_files(self) -> int:
        """Number of eligible files (cached)."""
        cached = self._cache.get(FILES_COUNT_KEY)
        if cached is not None:
            return int(cached)
        return len(self._manifest())

    def list_chunk(self, offset: int, limit: int) -> list[FileRecord]:
        """Slice [offset, offset + limit) of the cached manifest."""
        if offset < 0 or limit <= 0:
            return []
        return self._manifest()[offset:offset + limit]

    def clear_cache(self) -> None:
        """Drop the cached manifest and count."""
        self._cache.delete(FILES_COUNT_KEY)
        self._cache.delete(FILES_LIST_KEY)

    def is_eligible_file(self, path: str | Path) -> bool:
        """Apply the walk rules to a single file path.

        Returns:
            True if a full scan would include this file.
        """
        file_path = Path(path)
        if not file_path.is_absolute():
            file_path = self._root / file_path
        try:
            file_path.relative_to(self._root)
        except ValueError:
            return False

        policy = self._settings().policy()
        if not policy.accepts_extension(file_path.name):
            return False

        parent = file_path.parent
        ancestors = [parent, *parent.parents]
        for directory in reversed(ancestors):
            try:
                relative_dir = self._relative(directory)
            except ValueError:
                continue
            if directory.is_symlink() or not self._should_descend(relative_dir, policy):
                return False
        return policy.is_eligible(self._relative(parent))
