"""
Repository sync module for the catalogue editor.

This module provides:
- GitRunner: Runs git in the site repository (strict and safe conventions)
- SiteSyncService: status / fast-forward pull / lease-guarded publish
- SyncFacade: Entry point used by the HTTP routes
"""
from site_sync.runner import (
    GitRunner,
    CommandOutcome,
    GitCommandError,
    GitNotAvailableError,
    sanitize_git_output,
)
from site_sync.sync_service import (
    SiteSyncService,
    SyncStatus,
    PullResult,
    PushResult,
)
from site_sync.facade import SyncFacade, DEFAULT_COMMIT_MESSAGE

__all__ = [
    # runner exports
    'GitRunner',
    'CommandOutcome',
    'GitCommandError',
    'GitNotAvailableError',
    'sanitize_git_output',
    # sync_service exports
    'SiteSyncService',
    'SyncStatus',
    'PullResult',
    'PushResult',
    # facade exports
    'SyncFacade',
    'DEFAULT_COMMIT_MESSAGE',
]
