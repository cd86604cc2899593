"""File validation in front of the push zone client.

This module provides:
- FileHandler: validates a local file before pushing it, and purges the
  CDN copy of a deleted file
- ALLOWED_MIME_TYPES: content types accepted for pushing
"""

from __future__ import annotations

import logging
import mimetypes
from collections.abc import Callable
from pathlib import Path

from pushzone.client.api import PushZoneClient
from pushzone.core.config import PushSettings
from pushzone.core.redaction import redact

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 100 * 1024 * 1024  # 100 MiB

ALLOWED_MIME_TYPES = frozenset({
    "text/css",
    "text/javascript",
    "application/javascript",
    "application/x-javascript",
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/svg+xml",
    "font/woff",
    "font/woff2",
    "font/ttf",
    "application/font-woff",
    "application/font-woff2",
    "application/x-font-ttf",
    "application/vnd.ms-fontobject",
    "image/x-icon",
    "image/vnd.microsoft.icon",
})

# Fallback when the platform mime database lacks an entry
EXTENSION_MIME_TYPES = {
    "css": "text/css",
    "js": "text/javascript",
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "ttf": "font/ttf",
    "woff": "font/woff",
    "woff2": "font/woff2",
    "eot": "application/vnd.ms-fontobject",
    "ico": "image/x-icon",
}


def guess_mime_type(path: Path) -> str | None:
    """Guess the content type of a file from its name."""
    mime_type = mimetypes.guess_type(path.name)[0]
    if mime_type:
        return mime_type
    return EXTENSION_MIME_TYPES.get(path.suffix.lower().lstrip("."))


class FileHandler:
    """Validate and push individual files."""

    def __init__(
        self,
        client: PushZoneClient,
        settings: Callable[[], PushSettings],
        root: str | Path,
        max_file_size: int = MAX_FILE_SIZE,
        allowed_mime_types: frozenset[str] = ALLOWED_MIME_TYPES,
    ) -> None:
        """Initialize the handler.

        Args:
            client: Push zone API client.
            settings: Callable returning the current settings.
            root: Installation root (for log redaction).
            max_file_size: Largest file accepted, in bytes.
            allowed_mime_types: Content types accepted for pushing.
        """
        self._client = client
        self._settings = settings
        self._root = str(root)
        self._max_file_size = max_file_size
        self._allowed_mime_types = allowed_mime_types

    def _log_error(self, message: str) -> None:
        logger.error("%s", redact(message, self._root))

    def validate_file(self, file_path: str | Path) -> bool:
        """Check existence, size, extension and content type.

        Returns:
            True if the file may be pushed.
        """
        path = Path(file_path)
        if not path.is_file():
            self._log_error(f"File does not exist: {path}")
            return False

        if path.stat().st_size > self._max_file_size:
            self._log_error(f"File exceeds maximum size: {path}")
            return False

        policy = self._settings().policy()
        if not policy.accepts_extension(path.name):
            self._log_error(f"File type not allowed: {path.suffix.lower().lstrip('.')}")
            return False

        mime_type = guess_mime_type(path)
        if mime_type not in self._allowed_mime_types:
            self._log_error(f"MIME type not allowed: {mime_type}")
            return False

        return True

    def push_file(self, file_path: str | Path, relative_path: str) -> bool:
        """Validate then push a file.

        Returns:
            True on success, False on validation or API failure.
        """
        if not self.validate_file(file_path):
            return False
        return self._client.push_file(file_path, relative_path)

    def cdn_url_for(self, relative_path: str) -> str | None:
        """Build the public CDN URL of a root-relative path."""
        cdn_url = self._settings().cdn_url
        if not cdn_url:
            return None
        host = cdn_url.split("://", 1)[-1].rstrip("/")
        return f"https://{host}/{relative_path.lstrip('/')}"

    def delete_file(self, relative_path: str) -> bool:
        """Purge the CDN copy of a file that was removed locally.

        Returns:
            True if the purge request succeeded.
        """
        url = self.cdn_url_for(relative_path)
        if url is None:
            self._log_error("CDN URL not configured")
            return False
        return self._client.purge_url(url)
