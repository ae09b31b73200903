"""
Catalogue Models for the catalogue editor API

Pydantic models for the two JSON documents kept in the site repository:
- data/books.json   array of Book records
- data/config.json  tag and rating taxonomy

Field names are the ones the static site reads, so they are kept verbatim.
Unknown fields are preserved so the editor never drops data it does not manage.
"""

import re
import unicodedata
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _strip_optional(v: Optional[str]) -> Optional[str]:
    """Trim a free-text field; blank becomes None."""
    if v is None:
        return None
    v = v.strip()
    return v or None


# =============================================================================
# Stored documents
# =============================================================================


class Book(BaseModel):
    """One catalogue record."""
    model_config = ConfigDict(extra='allow')

    id: int
    titolo: str
    volume: Optional[str] = None
    copie: int = 1
    autori: Optional[str] = None
    editore: Optional[str] = None
    data: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    rating: Optional[int] = None
    note: Optional[str] = None


class TagMeta(BaseModel):
    """Tag taxonomy entry. Books reference tags by label."""
    model_config = ConfigDict(extra='allow')

    id: str
    label: str
    description: Optional[str] = None


class RatingMeta(BaseModel):
    """Rating taxonomy entry."""
    model_config = ConfigDict(extra='allow')

    value: int
    label: str
    description: Optional[str] = None


class CatalogueConfig(BaseModel):
    """Contents of data/config.json."""
    model_config = ConfigDict(extra='allow')

    tags: List[TagMeta] = Field(default_factory=list)
    ratings: List[RatingMeta] = Field(default_factory=list)


# =============================================================================
# Requests
# =============================================================================


class BookCreate(BaseModel):
    """Request model for adding a book. The id is assigned by the server."""
    model_config = ConfigDict(extra='allow')

    titolo: str = Field(..., min_length=1)
    volume: Optional[str] = None
    copie: int = Field(default=1, ge=0)
    autori: Optional[str] = None
    editore: Optional[str] = None
    data: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    rating: Optional[int] = None
    note: Optional[str] = None

    @field_validator('titolo')
    @classmethod
    def validate_titolo(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('Title cannot be empty')
        return v.strip()


class BookUpdate(BaseModel):
    """Request model for a partial book update. Only supplied fields change."""
    model_config = ConfigDict(extra='allow')

    titolo: Optional[str] = None
    volume: Optional[str] = None
    copie: Optional[int] = Field(default=None, ge=0)
    autori: Optional[str] = None
    editore: Optional[str] = None
    data: Optional[str] = None
    tags: Optional[List[str]] = None
    rating: Optional[int] = None
    note: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly sent by the client, never including id."""
        updates = self.model_dump(exclude_unset=True)
        updates.pop('id', None)
        return updates


class TagCreate(BaseModel):
    """Request model for adding a tag. Missing id is derived from the label."""
    id: Optional[str] = None
    label: Optional[str] = None
    description: Optional[str] = None

    @field_validator('id', 'label', 'description')
    @classmethod
    def normalize_text(cls, v: Optional[str]) -> Optional[str]:
        return _strip_optional(v)


class TagUpdate(BaseModel):
    """Request model for renaming a tag."""
    label: Optional[str] = None
    description: Optional[str] = None

    @field_validator('label', 'description')
    @classmethod
    def normalize_text(cls, v: Optional[str]) -> Optional[str]:
        return _strip_optional(v)


# =============================================================================
# Responses
# =============================================================================


class TagRenameResponse(BaseModel):
    """Response model for a tag rename."""
    model_config = ConfigDict(populate_by_name=True)

    tag: TagMeta
    affected_books: int = Field(alias="affectedBooks")


class TagDeleteResponse(BaseModel):
    """Response model for a tag removal."""
    model_config = ConfigDict(populate_by_name=True)

    removed: TagMeta
    affected_books: int = Field(alias="affectedBooks")


# =============================================================================
# Helpers
# =============================================================================


def slugify(label: str) -> str:
    """
    Derive a tag id from its label.

    Lower-cases, strips accents, collapses non-alphanumeric runs to '-'.

    Examples:
        >>> slugify("Funghi Velenosi")
        'funghi-velenosi'
        >>> slugify("Città d'arte")
        'citta-d-arte'
    """
    normalized = unicodedata.normalize('NFD', label.lower())
    without_accents = ''.join(c for c in normalized if not unicodedata.combining(c))
    slug = re.sub(r'[^a-z0-9]+', '-', without_accents)
    return slug.strip('-')
