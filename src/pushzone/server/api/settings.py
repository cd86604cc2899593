"""Settings API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from pushzone.core.config import PushSettings
from pushzone.core.redaction import mask_secret
from pushzone.server.api.deps import get_services, require_admin
from pushzone.server.schemas import (
    SettingsResponse,
    SettingsUpdateRequest,
    SettingsUpdateResponse,
    settings_to_response,
)
from pushzone.services import PushServices

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("", response_model=SettingsResponse)
def get_settings(
    services: PushServices = Depends(get_services),
    _admin: str = Depends(require_admin),
) -> SettingsResponse:
    """Stored settings with the API key masked."""
    return settings_to_response(services.settings.load())


@router.put("", response_model=SettingsUpdateResponse)
def update_settings(
    body: SettingsUpdateRequest,
    services: PushServices = Depends(get_services),
    _admin: str = Depends(require_admin),
) -> SettingsUpdateResponse:
    """Update settings; may schedule a full push."""
    current = services.settings.load()
    changes = body.model_dump(exclude_none=True)

    # A masked key echoed back from GET keeps the stored key
    if changes.get("api_key") == mask_secret(current.api_key):
        changes.pop("api_key")

    updated = PushSettings.from_dict({**current.to_dict(), **changes})
    result = services.lifecycle.update_settings(updated)

    return SettingsUpdateResponse(
        settings=settings_to_response(updated),
        push_relevant_change=result.changed,
        push_scheduled=result.push_scheduled,
    )
