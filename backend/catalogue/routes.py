"""
Catalogue API routes

Provides REST endpoints for editing the catalogue documents:
- Books CRUD (ids assigned server-side, immutable)
- Taxonomy document read/replace
- Tags add / rename / delete, cascading label changes to every book

Only the working tree is touched here. Nothing is committed until the operator
publishes through the sync routes.
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from catalogue.store import CatalogueStore
from models.catalogue_models import (
    Book,
    BookCreate,
    BookUpdate,
    CatalogueConfig,
    TagCreate,
    TagDeleteResponse,
    TagMeta,
    TagRenameResponse,
    TagUpdate,
    slugify,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["catalogue"])

# Module-level store reference (set during app creation)
_store: Optional[CatalogueStore] = None

# Serializes read-modify-write cycles on the documents
_write_lock = asyncio.Lock()


def set_catalogue_store(store: CatalogueStore) -> None:
    """Set the catalogue store reference."""
    global _store
    _store = store


def get_catalogue_store() -> CatalogueStore:
    """Get catalogue store, raising error if not initialized."""
    if _store is None:
        raise RuntimeError("Catalogue store not initialized for catalogue routes")
    return _store


# =============================================================================
# Helper Functions
# =============================================================================


def _find_book_index(books: List[Book], book_id: int) -> int:
    """Get list index of a book by id or raise 404."""
    for idx, book in enumerate(books):
        if book.id == book_id:
            return idx
    raise HTTPException(status_code=404, detail="Book not found")


def _find_tag_index(config: CatalogueConfig, tag_id: str) -> int:
    """Get list index of a tag by id or raise 404."""
    for idx, tag in enumerate(config.tags):
        if tag.id == tag_id:
            return idx
    raise HTTPException(status_code=404, detail="Tag not found")


# =============================================================================
# Books Endpoints
# =============================================================================


@router.get("/books", response_model=List[Book], response_model_exclude_none=True)
async def list_books(store: CatalogueStore = Depends(get_catalogue_store)):
    """List all books in file order."""
    return store.read_books()


@router.post("/books", response_model=Book, response_model_exclude_none=True, status_code=201)
async def create_book(data: BookCreate, store: CatalogueStore = Depends(get_catalogue_store)):
    """Add a book, assigning the next free id."""
    async with _write_lock:
        books = store.read_books()
        next_id = max((b.id for b in books), default=0) + 1
        fields = data.model_dump(exclude_none=True)
        fields.pop('id', None)
        book = Book(id=next_id, **fields)
        books.append(book)
        store.write_books(books)

    logger.info(f"Added book {book.id}: {book.titolo}")
    return book


@router.put("/books/{book_id}", response_model=Book, response_model_exclude_none=True)
async def update_book(
    book_id: int,
    data: BookUpdate,
    store: CatalogueStore = Depends(get_catalogue_store),
):
    """Merge the supplied fields into a book. The id never changes."""
    async with _write_lock:
        books = store.read_books()
        idx = _find_book_index(books, book_id)
        merged = {**books[idx].model_dump(), **data.changes(), 'id': book_id}
        try:
            books[idx] = Book.model_validate(merged)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=str(e))
        store.write_books(books)

    logger.info(f"Updated book {book_id}")
    return books[idx]


@router.delete("/books/{book_id}", response_model=Book, response_model_exclude_none=True)
async def delete_book(book_id: int, store: CatalogueStore = Depends(get_catalogue_store)):
    """Remove a book and return it."""
    async with _write_lock:
        books = store.read_books()
        idx = _find_book_index(books, book_id)
        removed = books.pop(idx)
        store.write_books(books)

    logger.info(f"Deleted book {book_id}: {removed.titolo}")
    return removed


# =============================================================================
# Taxonomy Endpoints
# =============================================================================


@router.get("/config", response_model=CatalogueConfig, response_model_exclude_none=True)
async def get_config(store: CatalogueStore = Depends(get_catalogue_store)):
    """Get the tag and rating taxonomy."""
    return store.read_config()


@router.post("/config", response_model=CatalogueConfig, response_model_exclude_none=True)
async def replace_config(data: CatalogueConfig, store: CatalogueStore = Depends(get_catalogue_store)):
    """Replace the taxonomy document wholesale."""
    async with _write_lock:
        store.write_config(data)
    logger.info(f"Replaced catalogue config ({len(data.tags)} tags, {len(data.ratings)} ratings)")
    return data


# =============================================================================
# Tags Endpoints
# =============================================================================


@router.post("/tags", response_model=TagMeta, response_model_exclude_none=True, status_code=201)
async def create_tag(data: TagCreate, store: CatalogueStore = Depends(get_catalogue_store)):
    """Add a tag. The id defaults to a slug of the label."""
    if not data.label:
        raise HTTPException(status_code=400, detail="label is required")

    tag_id = data.id or slugify(data.label)
    if not tag_id:
        raise HTTPException(status_code=400, detail="label does not produce a valid tag id")

    async with _write_lock:
        config = store.read_config()
        if any(t.id == tag_id for t in config.tags):
            raise HTTPException(status_code=409, detail="tag id already exists")

        tag = TagMeta(id=tag_id, label=data.label, description=data.description)
        config.tags.append(tag)
        store.write_config(config)

    logger.info(f"Added tag {tag_id}")
    return tag


@router.put("/tags/{tag_id}", response_model=TagRenameResponse, response_model_exclude_none=True)
async def rename_tag(
    tag_id: str,
    data: TagUpdate,
    store: CatalogueStore = Depends(get_catalogue_store),
):
    """Rename a tag label and rewrite it on every book that carries the old label."""
    if not data.label:
        raise HTTPException(status_code=400, detail="label is required")

    async with _write_lock:
        config = store.read_config()
        idx = _find_tag_index(config, tag_id)
        old_tag = config.tags[idx]
        old_label = old_tag.label

        config.tags[idx] = old_tag.model_copy(update={
            'label': data.label,
            'description': data.description if data.description is not None else old_tag.description,
        })

        affected = 0
        if old_label != data.label:
            books = store.read_books()
            for book in books:
                if old_label in book.tags:
                    book.tags = [data.label if t == old_label else t for t in book.tags]
                    affected += 1
            store.write_books(books)

        store.write_config(config)

    logger.info(f"Renamed tag {tag_id}: '{old_label}' -> '{data.label}' ({affected} books)")
    return TagRenameResponse(tag=config.tags[idx], affected_books=affected)


@router.delete("/tags/{tag_id}", response_model=TagDeleteResponse, response_model_exclude_none=True)
async def delete_tag(tag_id: str, store: CatalogueStore = Depends(get_catalogue_store)):
    """Remove a tag and strip its label from every book."""
    async with _write_lock:
        config = store.read_config()
        idx = _find_tag_index(config, tag_id)
        removed = config.tags.pop(idx)

        books = store.read_books()
        affected = 0
        for book in books:
            if removed.label in book.tags:
                book.tags = [t for t in book.tags if t != removed.label]
                affected += 1

        store.write_books(books)
        store.write_config(config)

    logger.info(f"Deleted tag {tag_id} ({affected} books)")
    return TagDeleteResponse(removed=removed, affected_books=affected)
