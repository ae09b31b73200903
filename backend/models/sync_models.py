"""
Sync Models for the catalogue editor API

Pydantic models for the repository sync endpoints.
Field names follow the JSON the browser UI consumes (camelCase aliases where
the Python name differs). Optional fields are omitted from responses when unset.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SyncStatusResponse(BaseModel):
    """Local git state of the tracked data files (no fetch)."""
    model_config = ConfigDict(populate_by_name=True)

    dirty: bool
    ahead: int = Field(default=0, ge=0)
    behind: int = Field(default=0, ge=0)
    changed_files: List[str] = Field(default_factory=list, alias="changedFiles")


class PullResponse(BaseModel):
    """Response model for a fast-forward pull."""
    success: bool
    error: Optional[str] = None


class PushResponse(BaseModel):
    """Response model for publishing the data files."""
    success: bool
    sha: Optional[str] = None
    error: Optional[str] = None


class PushRequest(BaseModel):
    """Request body for POST /api/sync/push. Blank messages fall back to a default."""
    message: Optional[str] = Field(default=None, max_length=2000)

    @field_validator('message')
    @classmethod
    def normalize_message(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class StartupStatusResponse(BaseModel):
    """Outcome of the pull performed once at startup."""
    checked: bool
    success: bool
    error: Optional[str] = None
