"""
Record store for the catalogue's two JSON documents.

The documents live inside the site repository clone so the sync subsystem can
commit them:
    - data/books.json   array of Book records
    - data/config.json  {"tags": [...], "ratings": [...]}

Writes are pretty-printed (2-space indent, trailing newline) to keep git diffs
readable, and go through a temp file + os.replace so a crash never leaves a
half-written document in the working tree.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, List, Union

from pydantic import ValidationError

from config.paths import BOOKS_REL_PATH, CONFIG_REL_PATH
from models.catalogue_models import Book, CatalogueConfig

logger = logging.getLogger(__name__)


class CatalogueStoreError(RuntimeError):
    """Raised when a catalogue document cannot be read or parsed."""
    pass


class CatalogueStore:
    """Reads and writes the catalogue documents of one site repository."""

    def __init__(self, repo_path: Union[str, Path]):
        self.repo_path = Path(repo_path)

    @property
    def books_path(self) -> Path:
        return self.repo_path / BOOKS_REL_PATH

    @property
    def config_path(self) -> Path:
        return self.repo_path / CONFIG_REL_PATH

    def tracked_paths(self) -> List[str]:
        """Repository-relative paths the sync subsystem scopes every git operation to."""
        return [BOOKS_REL_PATH, CONFIG_REL_PATH]

    def read_books(self) -> List[Book]:
        raw = self._read_json(self.books_path)
        if not isinstance(raw, list):
            raise CatalogueStoreError(f"{BOOKS_REL_PATH} must contain a JSON array")
        try:
            return [Book.model_validate(item) for item in raw]
        except ValidationError as e:
            raise CatalogueStoreError(f"Invalid book record in {BOOKS_REL_PATH}: {e}") from e

    def write_books(self, books: List[Book]) -> None:
        self._write_json(
            self.books_path,
            [book.model_dump(exclude_none=True) for book in books],
        )
        logger.debug(f"Wrote {len(books)} books to {self.books_path}")

    def read_config(self) -> CatalogueConfig:
        raw = self._read_json(self.config_path)
        try:
            return CatalogueConfig.model_validate(raw)
        except ValidationError as e:
            raise CatalogueStoreError(f"Invalid {CONFIG_REL_PATH}: {e}") from e

    def write_config(self, config: CatalogueConfig) -> None:
        self._write_json(self.config_path, config.model_dump(exclude_none=True))
        logger.debug(f"Wrote catalogue config to {self.config_path}")

    def _read_json(self, path: Path) -> Any:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except FileNotFoundError as e:
            raise CatalogueStoreError(f"Catalogue document not found: {path}") from e
        except json.JSONDecodeError as e:
            raise CatalogueStoreError(f"Malformed JSON in {path}: {e}") from e

    def _write_json(self, path: Path, data: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.write('\n')
            # mkstemp creates 0600; keep the mode the document already had
            mode = path.stat().st_mode & 0o777 if path.exists() else 0o644
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, path)
        except Exception:
            # Clean up orphaned temp file on failure
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
