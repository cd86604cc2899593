"""Shared configuration classes for pushzone.

This module defines:
- ApiConfig: connection settings for the push zone REST API
- DirectoryPolicy: which directories and extensions are eligible for pushing
- PushSettings: the persisted settings blob
- CredentialResolver: override > environment > stored setting lookup
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

DEFAULT_API_URL = "https://api.keycdn.com"
DEFAULT_UPLOAD_DIR = "wp-content/uploads"

DEFAULT_INCLUDED_EXTENSIONS = [
    "css", "js", "jpeg", "jpg", "png", "gif", "webp", "svg",
    "ttf", "woff", "woff2", "eot", "ico",
]
DEFAULT_EXCLUDED_DIRS = ["wp-admin", "wp-includes"]

API_KEY_ENV = "KEYCDN_API_KEY"
PUSH_ZONE_ID_ENV = "KEYCDN_PUSH_ZONE_ID"


def _normalize_dir(path: str) -> str:
    """Strip surrounding slashes so directories compare as relative paths."""
    return path.strip().replace("\\", "/").strip("/")


@dataclass
class ApiConfig:
    """Configuration for connecting to the push zone API.

    Attributes:
        base_url: Base URL of the API (e.g., "https://api.keycdn.com").
        timeout: Request timeout in seconds.
    """

    base_url: str = DEFAULT_API_URL
    timeout: float = 45.0

    def __post_init__(self) -> None:
        """Normalize base URL."""
        self.base_url = self.base_url.rstrip("/")


@dataclass
class DirectoryPolicy:
    """Inclusion/exclusion rules applied by the directory scanner.

    A directory is eligible when no excluded_dir is a substring of its
    relative path and it lies under the default upload dir (when enabled)
    or under an enabled custom directory. With no custom directories and
    the default upload dir enabled, every directory is eligible.
    """

    include_default_upload_dir: bool = True
    custom_directories: dict[str, bool] = field(default_factory=dict)
    excluded_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_DIRS))
    included_extensions: list[str] = field(
        default_factory=lambda: list(DEFAULT_INCLUDED_EXTENSIONS)
    )
    upload_dir: str = DEFAULT_UPLOAD_DIR

    @property
    def allows_everything(self) -> bool:
        """Back-compatible default: no custom dirs and default upload dir on."""
        return not self.custom_directories and self.include_default_upload_dir

    def eligible_roots(self) -> list[str]:
        """Relative directories whose subtrees are eligible."""
        roots: list[str] = []
        if self.include_default_upload_dir:
            roots.append(_normalize_dir(self.upload_dir))
        for directory, enabled in self.custom_directories.items():
            if enabled:
                roots.append(_normalize_dir(directory))
        return roots

    def is_excluded(self, relative_dir: str) -> bool:
        """Literal substring match against every excluded directory."""
        return any(excluded and excluded in relative_dir for excluded in self.excluded_dirs)

    def is_eligible(self, relative_dir: str) -> bool:
        """Check whether files directly inside relative_dir may be pushed."""
        if self.allows_everything:
            return True
        candidate = _normalize_dir(relative_dir) + "/"
        return any(candidate.startswith(root + "/") for root in self.eligible_roots())

    def leads_to_eligible(self, relative_dir: str) -> bool:
        """Check whether relative_dir is an ancestor of an eligible root."""
        candidate = _normalize_dir(relative_dir)
        if not candidate:
            return bool(self.eligible_roots())
        return any(root.startswith(candidate + "/") for root in self.eligible_roots())

    def accepts_extension(self, filename: str) -> bool:
        """Check the lowercase extension against included_extensions."""
        _, dot, ext = filename.rpartition(".")
        if not dot:
            return False
        return ext.lower() in {e.lower() for e in self.included_extensions}


@dataclass
class PushSettings:
    """Persisted settings blob.

    Attributes:
        api_key: API key for the push zone API.
        push_zone_id: Identifier of the target push zone.
        push_static_files: Push everything again after theme/plugin deploys.
        push_on_settings_update: Start a full push when settings change.
        include_default_upload_dir: Treat the upload dir as eligible.
        custom_directories: Ordered mapping of relative dir -> enabled.
        cdn_url: Public CDN hostname used to build purge URLs.
        included_extensions: File extensions eligible for pushing.
        excluded_dirs: Directory substrings that prune the scan.
        upload_dir: Default upload directory relative to the root.
    """

    api_key: str = ""
    push_zone_id: str = ""
    push_static_files: bool = False
    push_on_settings_update: bool = False
    include_default_upload_dir: bool = True
    custom_directories: dict[str, bool] = field(default_factory=dict)
    cdn_url: str = ""
    included_extensions: list[str] = field(
        default_factory=lambda: list(DEFAULT_INCLUDED_EXTENSIONS)
    )
    excluded_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_DIRS))
    upload_dir: str = DEFAULT_UPLOAD_DIR

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> PushSettings:
        """Create from a stored blob, ignoring unknown keys."""
        data = data or {}
        settings = cls()
        for name in (
            "api_key",
            "push_zone_id",
            "cdn_url",
            "upload_dir",
        ):
            if name in data and data[name] is not None:
                setattr(settings, name, str(data[name]).strip())
        for name in (
            "push_static_files",
            "push_on_settings_update",
            "include_default_upload_dir",
        ):
            if name in data:
                setattr(settings, name, bool(data[name]))
        if isinstance(data.get("custom_directories"), Mapping):
            settings.custom_directories = {
                str(directory).strip(): bool(enabled)
                for directory, enabled in data["custom_directories"].items()
                if str(directory).strip()
            }
        if data.get("included_extensions") is not None:
            settings.included_extensions = [
                str(e).strip().lower().lstrip(".") for e in data["included_extensions"] if str(e).strip()
            ]
        if data.get("excluded_dirs") is not None:
            settings.excluded_dirs = [
                str(d).strip() for d in data["excluded_dirs"] if str(d).strip()
            ]
        return settings

    def to_dict(self) -> dict[str, Any]:
        """Convert to the stored blob."""
        return {
            "api_key": self.api_key,
            "push_zone_id": self.push_zone_id,
            "push_static_files": self.push_static_files,
            "push_on_settings_update": self.push_on_settings_update,
            "include_default_upload_dir": self.include_default_upload_dir,
            "custom_directories": dict(self.custom_directories),
            "cdn_url": self.cdn_url,
            "included_extensions": list(self.included_extensions),
            "excluded_dirs": list(self.excluded_dirs),
            "upload_dir": self.upload_dir,
        }

    def policy(self) -> DirectoryPolicy:
        """Directory policy derived from these settings."""
        return DirectoryPolicy(
            include_default_upload_dir=self.include_default_upload_dir,
            custom_directories=dict(self.custom_directories),
            excluded_dirs=list(self.excluded_dirs),
            included_extensions=list(self.included_extensions),
            upload_dir=self.upload_dir,
        )


class CredentialResolver:
    """Resolve API credentials.

    Precedence per credential: explicit override (deploy-time constant),
    then process environment, then the stored setting. Empty values fall
    through to the next source.
    """

    def __init__(
        self,
        settings: Callable[[], PushSettings],
        overrides: Mapping[str, str] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            settings: Callable returning the current stored settings.
            overrides: Explicit values keyed by "api_key" / "push_zone_id".
            environ: Environment mapping (defaults to os.environ).
        """
        self._settings = settings
        self._overrides = dict(overrides or {})
        self._environ = environ if environ is not None else os.environ

    def _resolve(self, name: str, env_name: str) -> str:
        override = self._overrides.get(name)
        if override:
            return override
        env_value = self._environ.get(env_name)
        if env_value:
            return env_value
        return str(getattr(self._settings(), name) or "")

    def api_key(self) -> str:
        return self._resolve("api_key", API_KEY_ENV)

    def push_zone_id(self) -> str:
        return self._resolve("push_zone_id", PUSH_ZONE_ID_ENV)

    def is_configured(self) -> bool:
        """Both credentials resolve to non-empty values."""
        return bool(self.api_key()) and bool(self.push_zone_id())
