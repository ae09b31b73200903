"""
Startup sequencer: pulls the site repository once before traffic is accepted.

The outcome is kept for the read-only GET /api/status endpoint so the browser
can warn the operator that the local copy may be stale. A failed pull never
stops the server.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from site_sync.facade import SyncFacade
from site_sync.runner import GitCommandError

logger = logging.getLogger(__name__)


@dataclass
class StartupState:
    """Result of the startup pull. checked=False until the pull has run."""
    checked: bool = False
    success: bool = False
    error: Optional[str] = None


async def run_startup_pull(facade: Optional[SyncFacade], state: StartupState) -> StartupState:
    """
    Pull once and record the outcome in `state`.

    Args:
        facade: Sync facade, or None when git is unavailable
        state: State object shared with the status route

    Returns:
        The updated state
    """
    if facade is None:
        state.checked = True
        state.success = False
        state.error = "git is not available"
        logger.warning("Skipping startup pull: git is not available")
        return state

    try:
        result = await facade.do_pull()
        state.success = result.success
        state.error = result.error
    except GitCommandError as e:
        state.success = False
        state.error = str(e)

    state.checked = True
    if state.success:
        logger.info("Startup pull completed")
    else:
        logger.warning(f"Startup pull failed, serving possibly stale data: {state.error}")
    return state
