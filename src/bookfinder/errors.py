"""Exception hierarchy shared across ingestion, querying and extraction.

Per-line catalog problems are absorbed during ingestion and only counted;
everything else surfaces as one of the classes below so callers can react
to a category (for example, any :class:`NotFoundError`) or to the precise
condition.
"""

from __future__ import annotations

from pathlib import Path

__all__ = [
    "BookFinderError",
    "CatalogIOError",
    "CatalogParseError",
    "SchemaError",
    "QuerySyntaxError",
    "NotFoundError",
    "BookNotFoundError",
    "ArchiveMissingError",
    "EntryNotFoundError",
    "ExtractionError",
]


class BookFinderError(RuntimeError):
    """Base exception for BookFinder failures."""


class CatalogIOError(BookFinderError):
    """Raised when a container, archive or index cannot be accessed."""

    def __init__(self, path: Path | str, message: str) -> None:
        self.path = str(path)
        super().__init__(f"{message}: {self.path}")


class CatalogParseError(BookFinderError):
    """Describes a malformed catalog line; recorded, never fatal."""


class SchemaError(BookFinderError):
    """Raised when an index does not carry the expected fields."""


class QuerySyntaxError(BookFinderError):
    """Raised when a free-text query cannot be parsed."""


class NotFoundError(BookFinderError):
    """Base class for the distinct "not found" conditions."""


class BookNotFoundError(NotFoundError):
    """No indexed document carries the requested id."""

    def __init__(self, book_id: int) -> None:
        self.book_id = book_id
        super().__init__(f"No book with id {book_id} in the index")


class ArchiveMissingError(NotFoundError):
    """The archive recorded for a book is not on disk."""

    def __init__(self, book_id: int, archive_path: str) -> None:
        self.book_id = book_id
        self.archive_path = archive_path
        super().__init__(f"Archive for book {book_id} does not exist: {archive_path}")


class EntryNotFoundError(NotFoundError):
    """The archive exists but lacks the expected entry."""

    def __init__(self, book_id: int, entry_name: str, archive_path: str) -> None:
        self.book_id = book_id
        self.entry_name = entry_name
        self.archive_path = archive_path
        super().__init__(f"Entry '{entry_name}' not found in archive {archive_path}")


class ExtractionError(BookFinderError):
    """Raised when the archive reader fails while listing or extracting."""

    def __init__(self, book_id: int, entry_name: str, cause: str) -> None:
        self.book_id = book_id
        self.entry_name = entry_name
        super().__init__(f"Failed to extract '{entry_name}' for book {book_id}: {cause}")
