"""Core module - Shared configuration, types, and log redaction."""

from pushzone.core.config import (
    DEFAULT_API_URL,
    DEFAULT_EXCLUDED_DIRS,
    DEFAULT_INCLUDED_EXTENSIONS,
    DEFAULT_UPLOAD_DIR,
    ApiConfig,
    CredentialResolver,
    DirectoryPolicy,
    PushSettings,
)
from pushzone.core.redaction import RedactingFilter, mask_secret, redact, setup_logging
from pushzone.core.types import FileRecord, ProgressState, RateLimitWindow

__all__ = [
    # Config
    "ApiConfig",
    "CredentialResolver",
    "DEFAULT_API_URL",
    "DEFAULT_EXCLUDED_DIRS",
    "DEFAULT_INCLUDED_EXTENSIONS",
    "DEFAULT_UPLOAD_DIR",
    "DirectoryPolicy",
    "PushSettings",
    # Redaction
    "RedactingFilter",
    "mask_secret",
    "redact",
    "setup_logging",
    # Types
    "FileRecord",
    "ProgressState",
    "RateLimitWindow",
]
