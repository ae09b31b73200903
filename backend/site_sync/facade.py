"""
Sync facade: the single entry point the HTTP layer uses for repository sync.

Translates SiteSyncService dataclass results into the API response models and
applies the default commit message. No other validation happens here; an empty
publish is a legitimate success.
"""
import logging
from typing import Optional

from models.sync_models import PullResponse, PushResponse, SyncStatusResponse
from site_sync.sync_service import SiteSyncService

logger = logging.getLogger(__name__)

DEFAULT_COMMIT_MESSAGE = "Update catalogue"


class SyncFacade:
    """Thin pass-through over SiteSyncService with response-shape normalization."""

    def __init__(self, service: SiteSyncService):
        self.service = service

    async def get_status(self) -> SyncStatusResponse:
        status = await self.service.status()
        return SyncStatusResponse(
            dirty=status.dirty,
            ahead=status.ahead,
            behind=status.behind,
            changed_files=status.changed_files,
        )

    async def do_pull(self) -> PullResponse:
        result = await self.service.pull()
        return PullResponse(success=result.success, error=result.error)

    async def do_publish(self, message: Optional[str] = None) -> PushResponse:
        commit_message = (message or '').strip() or DEFAULT_COMMIT_MESSAGE
        result = await self.service.publish(commit_message)
        return PushResponse(success=result.success, sha=result.sha, error=result.error)
