"""Log redaction and logging setup.

Every diagnostic that may carry credentials or local paths goes through
redact() before it reaches a sink. RedactingFilter applies the same rules
to log records on every handler installed by setup_logging().
"""

from __future__ import annotations

import logging
import re
import sys
from pathlib import Path

REDACTED = "[REDACTED]"
ROOT_PLACEHOLDER = "[ROOT]/"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_SECRET_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(r"api[_\-]?key\s*[:=]\s*[\"']?([^\"'\s,&]+)[\"']?", re.IGNORECASE),
        f"api_key: {REDACTED}",
    ),
    (
        re.compile(r"password\s*[:=]\s*[\"']?([^\"'\s,&]+)[\"']?", re.IGNORECASE),
        f"password: {REDACTED}",
    ),
    (
        re.compile(r"secret\s*[:=]\s*[\"']?([^\"'\s,&]+)[\"']?", re.IGNORECASE),
        f"secret: {REDACTED}",
    ),
    (
        re.compile(r"token\s*[:=]\s*[\"']?([^\"'\s,&]+)[\"']?", re.IGNORECASE),
        f"token: {REDACTED}",
    ),
    (
        re.compile(r"(Basic|Bearer)\s+[A-Za-z0-9+/=._\-]+", re.IGNORECASE),
        rf"\1 {REDACTED}",
    ),
]


def redact(text: str, root: str | Path | None = None) -> str:
    """Mask credential-shaped substrings and rewrite the installation root.

    Args:
        text: Message to sanitize.
        root: Installation root to replace with a placeholder.

    Returns:
        Sanitized message.
    """
    for pattern, replacement in _SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    if root:
        root_str = str(root).rstrip("/\\")
        if root_str:
            text = text.replace(root_str + "/", ROOT_PLACEHOLDER)
            text = text.replace(root_str, ROOT_PLACEHOLDER.rstrip("/"))
    return text


def mask_secret(value: str) -> str:
    """Keep the last four characters of a secret."""
    if not value:
        return ""
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]


class RedactingFilter(logging.Filter):
    """Logging filter that redacts the fully formatted message."""

    def __init__(self, root: str | Path | None = None) -> None:
        super().__init__()
        self._root = root

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            return True
        record.msg = redact(message, self._root)
        record.args = None
        return True


def setup_logging(
    level: int = logging.INFO,
    log_path: Path | None = None,
    root: str | Path | None = None,
) -> logging.Logger:
    """Configure the pushzone logger to output to stdout and optionally a file.

    Args:
        level: Log level for the pushzone logger.
        log_path: Optional path to a log file.
        root: Installation root rewritten to a placeholder in messages.

    Returns:
        The configured pushzone logger.
    """
    formatter = logging.Formatter(LOG_FORMAT)
    redacting = RedactingFilter(root)

    root_logger = logging.getLogger("pushzone")
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    stdout_handler.addFilter(redacting)
    root_logger.addHandler(stdout_handler)

    if log_path is not None:
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler.addFilter(redacting)
        root_logger.addHandler(file_handler)

    return root_logger
