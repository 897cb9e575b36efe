"""Resolve a catalog id to one entry of its per-book archive and extract it."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable

from bookfinder.errors import (
    ArchiveMissingError,
    CatalogIOError,
    EntryNotFoundError,
    ExtractionError,
)
from bookfinder.extraction.partial_zip import ARCHIVE_ERRORS, ArchiveHandle, open_archive
from bookfinder.index.search import Searcher

LOGGER = logging.getLogger(__name__)

BOOK_SUFFIX = ".fb2"


def entry_name_for(book_id: int) -> str:
    """Name of the entry holding ``book_id`` inside its archive.

    Catalogs do not record entry names; archives are assumed to store each
    book as ``<id>.fb2``. Pass another callable to :class:`ExtractionResolver`
    for collections packed differently.
    """
    return f"{book_id}{BOOK_SUFFIX}"


def archive_location(archive_path: Path | str) -> str:
    """Canonical ``file://`` URL for an archive on disk."""
    return Path(archive_path).resolve(strict=True).as_uri()


@dataclass(slots=True, frozen=True)
class ExtractionTarget:
    book_id: int
    archive_path: str
    location: str
    entry_name: str


class ExtractionResolver:
    """Looks up where a book lives and streams just that entry out of its archive."""

    def __init__(
        self,
        searcher: Searcher,
        *,
        entry_name: Callable[[int], str] = entry_name_for,
        opener: Callable[[str], ArchiveHandle] = open_archive,
    ) -> None:
        self.searcher = searcher
        self.entry_name = entry_name
        self.opener = opener

    def resolve(self, book_id: int) -> ExtractionTarget:
        info = self.searcher.get_by_id(book_id)
        entry_name = self.entry_name(book_id)
        LOGGER.debug("Book %d: archive %s, entry %s", book_id, info.archive_path, entry_name)

        archive_path = Path(info.archive_path)
        if not archive_path.exists():
            raise ArchiveMissingError(book_id, info.archive_path)
        try:
            location = archive_location(archive_path)
        except OSError as exc:
            raise CatalogIOError(archive_path, f"Cannot resolve archive path ({exc})") from exc

        return ExtractionTarget(
            book_id=book_id,
            archive_path=info.archive_path,
            location=location,
            entry_name=entry_name,
        )

    def extract(self, target: ExtractionTarget, sink: BinaryIO) -> int:
        """Write the target entry into ``sink`` and return the byte count."""
        try:
            archive = self.opener(target.location)
        except ARCHIVE_ERRORS as exc:
            raise ExtractionError(target.book_id, target.entry_name, str(exc)) from exc

        with archive:
            try:
                names = archive.list_names()
            except ARCHIVE_ERRORS as exc:
                raise ExtractionError(target.book_id, target.entry_name, str(exc)) from exc
            if target.entry_name not in names:
                raise EntryNotFoundError(target.book_id, target.entry_name, target.archive_path)

            LOGGER.info("Extracting '%s' from %s", target.entry_name, target.archive_path)
            try:
                return archive.extract(target.entry_name, sink)
            except ARCHIVE_ERRORS as exc:
                raise ExtractionError(target.book_id, target.entry_name, str(exc)) from exc

    def extract_to(self, book_id: int, sink: BinaryIO) -> int:
        return self.extract(self.resolve(book_id), sink)

    def extract_bytes(self, book_id: int) -> bytes:
        buffer = io.BytesIO()
        self.extract_to(book_id, buffer)
        return buffer.getvalue()
