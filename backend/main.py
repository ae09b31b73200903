#!/usr/bin/env python3
"""
Catalogue Editor Backend - local editor for a git-versioned static site catalogue

The catalogue (books + tag/rating taxonomy) lives as two JSON files inside a
clone of the static site repository. The editor mutates them locally and
synchronizes the clone with its upstream so the site can rebuild.

Run with:
    SITE_REPO_PATH=/abs/path/to/site uvicorn main:create_app --factory
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from catalogue import routes as catalogue_routes
from catalogue.store import CatalogueStore, CatalogueStoreError
from config.settings import AppConfig, get_site_repo_path, setup_logging
from site_sync import routes as sync_routes
from site_sync.facade import SyncFacade
from site_sync.runner import GitCommandError, GitNotAvailableError, GitRunner
from site_sync.sync_service import SiteSyncService
from system import routes as system_routes
from system.startup import StartupState, run_startup_pull

logger = logging.getLogger(__name__)


def build_sync_facade(repo_path: str, store: CatalogueStore, timeout: int) -> SyncFacade:
    """
    Wire runner -> service -> facade for one repository.

    Raises:
        GitNotAvailableError: If git is not installed
    """
    runner = GitRunner(repo_path, timeout=timeout)
    service = SiteSyncService(runner, store.tracked_paths())
    return SyncFacade(service)


def create_app(
    site_repo_path: Optional[str] = None,
    sync_facade: Optional[SyncFacade] = None,
    startup_pull: Optional[bool] = None,
    static_dir: Optional[str] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Application factory.

    Args:
        site_repo_path: Repository working directory; defaults to SITE_REPO_PATH
        sync_facade: Pre-built facade (tests); built from the path when omitted
        startup_pull: Override CATALOGUE_STARTUP_PULL
        static_dir: Override CATALOGUE_STATIC_DIR
        configure_logging: Install the application log handlers

    Raises:
        ConfigurationError: If the repository path is missing or invalid
    """
    if configure_logging:
        setup_logging()

    # Validate configuration early to fail fast on misconfiguration
    AppConfig.validate()
    repo_path = get_site_repo_path(site_repo_path)

    store = CatalogueStore(repo_path)
    if sync_facade is None:
        try:
            sync_facade = build_sync_facade(repo_path, store, AppConfig.GIT_TIMEOUT)
        except GitNotAvailableError as e:
            logger.error(f"Repository sync disabled: {e}")
            sync_facade = None

    do_startup_pull = AppConfig.STARTUP_PULL if startup_pull is None else startup_pull
    static_dir = static_dir if static_dir is not None else AppConfig.STATIC_DIR

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle"""
        logger.info(f"Starting catalogue editor for {repo_path}")
        if do_startup_pull:
            await run_startup_pull(sync_facade, app.state.startup)
        yield
        logger.info("Shutting down catalogue editor...")

    app = FastAPI(
        title="Catalogue Editor API",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.startup = StartupState()

    catalogue_routes.set_catalogue_store(store)
    sync_routes.set_sync_facade(
        sync_facade,
        unavailable_reason=None if sync_facade else "Git is not available; repository sync disabled",
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """
        Custom handler for Pydantic validation errors.
        Returns user-friendly error messages with field-level details.
        """
        errors = []
        for error in exc.errors():
            field = " -> ".join(str(x) for x in error['loc'])
            errors.append({
                "field": field,
                "message": error['msg'],
                "type": error['type']
            })

        logger.warning(f"Validation failed for {request.url.path}: {errors}")

        return JSONResponse(
            status_code=422,
            content={
                "detail": "Invalid request data",
                "errors": errors
            }
        )

    @app.exception_handler(GitCommandError)
    async def git_command_exception_handler(request: Request, exc: GitCommandError):
        """A strict git step failed: the checkout itself is broken."""
        logger.error(f"Git command failed during {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    @app.exception_handler(CatalogueStoreError)
    async def store_exception_handler(request: Request, exc: CatalogueStoreError):
        logger.error(f"Catalogue store error during {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    # ==================== API Routes ====================

    app.include_router(system_routes.router)
    app.include_router(catalogue_routes.router)
    app.include_router(sync_routes.router)

    # Browser assets last so API routes take precedence
    if static_dir:
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:create_app",
        factory=True,
        host=AppConfig.HOST,
        port=AppConfig.PORT,
    )
