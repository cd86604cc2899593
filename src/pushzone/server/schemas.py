"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from pydantic import BaseModel

from pushzone.core.config import PushSettings
from pushzone.core.redaction import mask_secret
from pushzone.core.types import ProgressState

# === Progress schemas ===


class ProgressResponse(BaseModel):
    """Status query response."""

    processed: int
    total: int
    percentage: int
    stalled: bool
    is_active: bool
    is_processing: bool
    last_update: float


class PushScheduledResponse(BaseModel):
    """Response for the push all files action."""

    scheduled: bool
    message: str


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str


# === Cache schemas ===


class PurgeCacheResponse(BaseModel):
    """Response for the zone cache purge action."""

    purged: bool
    message: str


# === Settings schemas ===


class SettingsResponse(BaseModel):
    """Settings in responses, with the API key masked."""

    api_key: str
    push_zone_id: str
    push_static_files: bool
    push_on_settings_update: bool
    include_default_upload_dir: bool
    custom_directories: dict[str, bool]
    cdn_url: str
    included_extensions: list[str]
    excluded_dirs: list[str]
    upload_dir: str


class SettingsUpdateRequest(BaseModel):
    """Partial settings update; omitted fields keep their stored value."""

    api_key: str | None = None
    push_zone_id: str | None = None
    push_static_files: bool | None = None
    push_on_settings_update: bool | None = None
    include_default_upload_dir: bool | None = None
    custom_directories: dict[str, bool] | None = None
    cdn_url: str | None = None
    included_extensions: list[str] | None = None
    excluded_dirs: list[str] | None = None
    upload_dir: str | None = None


class SettingsUpdateResponse(BaseModel):
    """Response for a settings update."""

    settings: SettingsResponse
    push_relevant_change: bool
    push_scheduled: bool


# === Health schema ===


class HealthResponse(BaseModel):
    """Health check response."""

    status: str


# === Converters ===


def progress_to_response(state: ProgressState) -> ProgressResponse:
    """Convert ProgressState to response."""
    return ProgressResponse(**state.to_dict())


def settings_to_response(settings: PushSettings) -> SettingsResponse:
    """Convert PushSettings to response, masking the API key."""
    data = settings.to_dict()
    data["api_key"] = mask_secret(settings.api_key)
    return SettingsResponse(**data)
