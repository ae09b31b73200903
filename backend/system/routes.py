"""
System routes: startup status, health check, and the quit command.
"""

import asyncio
import logging
import os
import signal

from fastapi import APIRouter, Request

from models.sync_models import StartupStatusResponse
from system.startup import StartupState

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])

# Delay before the process signals itself, so the quit response is delivered
QUIT_DELAY_SECONDS = 1.0


def _schedule_shutdown(delay: float = QUIT_DELAY_SECONDS) -> None:
    """Send SIGINT to this process after `delay`; uvicorn shuts down gracefully on it."""
    loop = asyncio.get_running_loop()
    loop.call_later(delay, os.kill, os.getpid(), signal.SIGINT)


@router.get("/api/status", response_model=StartupStatusResponse, response_model_exclude_none=True)
async def get_startup_status(request: Request):
    """Outcome of the pull performed at startup."""
    state: StartupState = request.app.state.startup
    return StartupStatusResponse(checked=state.checked, success=state.success, error=state.error)


@router.post("/api/quit")
async def quit_application():
    """Stop the editor. The response is sent before the process exits."""
    logger.info("Quit requested, closing app...")
    _schedule_shutdown()
    return {"detail": "Server is closing..."}


@router.get("/health")
async def health_check():
    """Health check endpoint - no authentication required"""
    return {"status": "healthy", "service": "catalogue-editor"}
