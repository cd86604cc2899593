"""Client module - push zone API access, rate limiting, and file validation."""

from pushzone.client.api import PushZoneClient
from pushzone.client.files import ALLOWED_MIME_TYPES, MAX_FILE_SIZE, FileHandler
from pushzone.client.ratelimit import (
    DEFAULT_QUOTA,
    DEFAULT_WINDOW_SECONDS,
    RATE_LIMIT_KEY,
    RateLimiter,
)

__all__ = [
    "ALLOWED_MIME_TYPES",
    "DEFAULT_QUOTA",
    "DEFAULT_WINDOW_SECONDS",
    "FileHandler",
    "MAX_FILE_SIZE",
    "PushZoneClient",
    "RATE_LIMIT_KEY",
    "RateLimiter",
]
