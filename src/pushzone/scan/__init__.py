"""Scan module - directory walking and the cached file manifest."""

from pushzone.scan.scanner import (
    FILES_COUNT_KEY,
    FILES_LIST_KEY,
    MANIFEST_TTL,
    DirectoryScanner,
)

__all__ = [
    "DirectoryScanner",
    "FILES_COUNT_KEY",
    "FILES_LIST_KEY",
    "MANIFEST_TTL",
]
