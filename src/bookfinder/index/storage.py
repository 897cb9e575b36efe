"""Whoosh index lifecycle: fixed schema, create-or-open and batch commits."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

from whoosh import index as whoosh_index
from whoosh.fields import NUMERIC, TEXT, Schema
from whoosh.index import LockError
from whoosh.searching import Searcher as WhooshSearcher

from bookfinder.config import DEFAULT_WRITER_LIMIT_MB
from bookfinder.errors import CatalogIOError, SchemaError
from bookfinder.models import Book

LOGGER = logging.getLogger(__name__)

FIELD_ID = "id"
FIELD_AUTHOR = "author"
FIELD_TITLE = "title"
FIELD_ARCHIVE = "archive_path"

_EXPECTED_FIELDS = {
    FIELD_ID: NUMERIC,
    FIELD_AUTHOR: TEXT,
    FIELD_TITLE: TEXT,
    FIELD_ARCHIVE: TEXT,
}


def build_schema() -> Schema:
    return Schema(
        id=NUMERIC(numtype=int, bits=64, signed=False, stored=True, sortable=True),
        author=TEXT(stored=True, sortable=True),
        title=TEXT(stored=True, sortable=True),
        archive_path=TEXT(stored=True),
    )


@dataclass(slots=True, frozen=True)
class IndexFields:
    """Field names of an opened index, checked once against its schema."""

    id: str
    author: str
    title: str
    archive_path: str

    @classmethod
    def from_schema(cls, schema: Schema) -> "IndexFields":
        for name, expected in _EXPECTED_FIELDS.items():
            if name not in schema:
                raise SchemaError(f"Index schema has no '{name}' field")
            field = schema[name]
            if not isinstance(field, expected):
                raise SchemaError(
                    f"Index field '{name}' is {type(field).__name__}, expected {expected.__name__}"
                )
        id_field = schema[FIELD_ID]
        if getattr(id_field, "numtype", int) is not int or getattr(id_field, "bits", 64) != 64:
            raise SchemaError(f"Index field '{FIELD_ID}' is not a 64-bit integer field")
        return cls(
            id=FIELD_ID,
            author=FIELD_AUTHOR,
            title=FIELD_TITLE,
            archive_path=FIELD_ARCHIVE,
        )


def index_exists(index_path: Path) -> bool:
    """Return True if ``index_path`` is a directory holding an index."""
    path = Path(index_path)
    return path.is_dir() and whoosh_index.exists_in(str(path))


class CatalogIndex:
    """Handle over an on-disk catalog index.

    Searchers opened through :meth:`searcher` always see the latest
    committed generation, so one handle can serve many requests.
    """

    def __init__(self, path: Path, ix: whoosh_index.Index) -> None:
        self.path = Path(path)
        self._ix = ix
        self.fields = IndexFields.from_schema(ix.schema)

    @property
    def schema(self) -> Schema:
        return self._ix.schema

    def close(self) -> None:
        self._ix.close()

    def __enter__(self) -> "CatalogIndex":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def doc_count(self) -> int:
        return self._ix.doc_count()

    @contextmanager
    def searcher(self) -> Iterator[WhooshSearcher]:
        searcher = self._ix.searcher()
        try:
            yield searcher
        finally:
            searcher.close()

    def add_books(self, books: Iterable[Book], *, limit_mb: int = DEFAULT_WRITER_LIMIT_MB) -> int:
        """Add every book as a new document and commit once.

        Nothing becomes visible to readers unless the whole batch commits.
        """
        try:
            writer = self._ix.writer(limitmb=limit_mb)
        except LockError as exc:
            raise CatalogIOError(self.path, "Index is locked by another writer") from exc

        count = 0
        try:
            for book in books:
                writer.add_document(
                    id=book.id,
                    author=book.author_name,
                    title=book.book_title,
                    archive_path=book.archive_path,
                )
                count += 1
        except Exception:
            writer.cancel()
            raise

        try:
            writer.commit()
        except OSError as exc:
            raise CatalogIOError(self.path, f"Failed to commit index ({exc})") from exc
        LOGGER.info("Committed %d documents to '%s'", count, self.path)
        return count


def open_or_create(index_path: Path) -> CatalogIndex:
    """Open the index at ``index_path``, creating it with the fixed schema if absent."""
    path = Path(index_path)
    if path.exists() and not path.is_dir():
        raise CatalogIOError(path, "Index path is not a directory")
    try:
        if index_exists(path):
            LOGGER.debug("Opening existing index in '%s'", path)
            ix = whoosh_index.open_dir(str(path))
        else:
            LOGGER.info("Creating new index in '%s'", path)
            path.mkdir(parents=True, exist_ok=True)
            ix = whoosh_index.create_in(str(path), build_schema())
    except OSError as exc:
        raise CatalogIOError(path, f"Cannot open index ({exc})") from exc
    return CatalogIndex(path, ix)
