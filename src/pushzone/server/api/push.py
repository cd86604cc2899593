"""Push run API routes: status query and admin actions."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from pushzone.jobs.lifecycle import NotConfiguredError, PushAlreadyActiveError
from pushzone.server.api.deps import get_services, require_admin
from pushzone.server.schemas import (
    MessageResponse,
    ProgressResponse,
    PurgeCacheResponse,
    PushScheduledResponse,
    progress_to_response,
)
from pushzone.services import PushServices

router = APIRouter(prefix="/api", tags=["push"])


@router.get("/push/progress", response_model=ProgressResponse)
def get_progress(
    services: PushServices = Depends(get_services),
    _admin: str = Depends(require_admin),
) -> ProgressResponse:
    """Current progress of the full push run."""
    return progress_to_response(services.tracker.get_progress())


@router.post("/push", response_model=PushScheduledResponse)
def push_all_files(
    services: PushServices = Depends(get_services),
    _admin: str = Depends(require_admin),
) -> PushScheduledResponse:
    """Schedule a full push of every eligible file."""
    try:
        scheduled = services.lifecycle.request_full_push()
    except NotConfiguredError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    except PushAlreadyActiveError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        ) from e

    if scheduled:
        return PushScheduledResponse(scheduled=True, message="File push scheduled.")
    return PushScheduledResponse(scheduled=False, message="File push already scheduled.")


@router.post("/push/reset", response_model=MessageResponse)
def reset_push(
    services: PushServices = Depends(get_services),
    _admin: str = Depends(require_admin),
) -> MessageResponse:
    """Clear scheduled tasks, leases and progress."""
    services.lifecycle.reset()
    return MessageResponse(message="Push process reset successfully.")


@router.post("/cache/purge", response_model=PurgeCacheResponse)
def purge_cache(
    services: PushServices = Depends(get_services),
    _admin: str = Depends(require_admin),
) -> PurgeCacheResponse:
    """Purge the whole push zone cache."""
    try:
        purged = services.lifecycle.purge_cache()
    except NotConfiguredError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e

    if not purged:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to purge cache.",
        )
    return PurgeCacheResponse(purged=True, message="Cache purged successfully.")
