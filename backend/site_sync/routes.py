"""
Sync API routes for the catalogue editor

Provides REST endpoints for synchronizing the site repository:
- GET  /api/sync/status  local state of the tracked data files (no network)
- POST /api/sync/pull    fetch + fast-forward-only pull
- POST /api/sync/push    stage, commit and lease-guarded push

Expected git failures (diverged history, rejected push) are 409 with the git
output embedded in `error`. Broken-checkout failures propagate as GitCommandError
and become 500 via the application exception handler.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from models.sync_models import (
    PullResponse,
    PushRequest,
    PushResponse,
    SyncStatusResponse,
)
from site_sync.facade import SyncFacade

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])

# Module-level facade reference (set during app creation)
_sync_facade: Optional[SyncFacade] = None
_unavailable_reason: str = "Sync facade not initialized"


def set_sync_facade(facade: Optional[SyncFacade], unavailable_reason: Optional[str] = None) -> None:
    """Set the sync facade reference. None marks sync as unavailable."""
    global _sync_facade, _unavailable_reason
    _sync_facade = facade
    if unavailable_reason:
        _unavailable_reason = unavailable_reason


def get_sync_facade() -> SyncFacade:
    """Get sync facade, raising 503 if git is unavailable."""
    if _sync_facade is None:
        raise HTTPException(status_code=503, detail=_unavailable_reason)
    return _sync_facade


def _result_response(result) -> JSONResponse:
    """200 on success, 409 on an expected git failure. Absent fields are omitted."""
    return JSONResponse(
        status_code=200 if result.success else 409,
        content=result.model_dump(exclude_none=True),
    )


@router.get("/status", response_model=SyncStatusResponse)
async def get_sync_status(facade: SyncFacade = Depends(get_sync_facade)):
    """Local git state: uncommitted tracked files and ahead/behind counts (no fetch)."""
    return await facade.get_status()


@router.post(
    "/pull",
    response_model=PullResponse,
    response_model_exclude_none=True,
    responses={409: {"model": PullResponse, "description": "Fetch or fast-forward failed"}},
)
async def pull_site_repository(facade: SyncFacade = Depends(get_sync_facade)):
    """Fetch and fast-forward the local clone. Never merges."""
    result = await facade.do_pull()
    return _result_response(result)


@router.post(
    "/push",
    response_model=PushResponse,
    response_model_exclude_none=True,
    responses={409: {"model": PushResponse, "description": "Commit or push rejected"}},
)
async def push_site_repository(
    data: Optional[PushRequest] = None,
    facade: SyncFacade = Depends(get_sync_facade),
):
    """Commit the data files and push under a lease."""
    message = data.message if data else None
    result = await facade.do_publish(message)
    if result.success:
        logger.info(f"Catalogue published at {result.sha}")
    return _result_response(result)
