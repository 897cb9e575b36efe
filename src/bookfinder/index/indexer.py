"""Catalog ingestion pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Set, Tuple

from bookfinder.config import ARCHIVE_SUFFIX, CATALOG_SUFFIX, DEFAULT_WRITER_LIMIT_MB
from bookfinder.index.storage import CatalogIndex
from bookfinder.ingestion.inpx_loader import (
    BAD_ID,
    MISSING_ARCHIVE,
    SHORT_LINE,
    LineResult,
    iter_catalog_lines,
    read_catalog,
)
from bookfinder.models import Book

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class IngestStats:
    members: int = 0
    unreadable_members: int = 0
    lines: int = 0
    accepted: int = 0
    indexed: int = 0
    short_lines: int = 0
    bad_ids: int = 0
    missing_archives: int = 0
    missing_archive_names: List[str] = field(default_factory=list)
    _missing_seen: Set[str] = field(default_factory=set, repr=False, compare=False)

    @property
    def skipped(self) -> int:
        return self.short_lines + self.bad_ids + self.missing_archives

    def record(self, result: LineResult) -> None:
        self.lines += 1
        if result.ok:
            self.accepted += 1
        elif result.reason == SHORT_LINE:
            self.short_lines += 1
        elif result.reason == BAD_ID:
            self.bad_ids += 1
        elif result.reason == MISSING_ARCHIVE:
            self.missing_archives += 1
            if result.member not in self._missing_seen:
                self._missing_seen.add(result.member)
                self.missing_archive_names.append(result.member)


class CatalogIndexer:
    """Turns an INPX container into committed index documents."""

    def __init__(
        self,
        index: CatalogIndex,
        *,
        limit_mb: int = DEFAULT_WRITER_LIMIT_MB,
        entry_suffix: str = CATALOG_SUFFIX,
        archive_suffix: str = ARCHIVE_SUFFIX,
    ) -> None:
        self.index = index
        self.limit_mb = limit_mb
        self.entry_suffix = entry_suffix
        self.archive_suffix = archive_suffix

    def collect(self, container: Path, archives_dir: Path) -> Tuple[List[Book], IngestStats]:
        """Parse every catalog line, keeping the books whose archive is present."""
        contents = read_catalog(container, entry_suffix=self.entry_suffix)
        stats = IngestStats(
            members=len(contents.members),
            unreadable_members=len(contents.unreadable),
        )
        books: List[Book] = []
        for result in iter_catalog_lines(
            contents.members,
            archives_dir,
            entry_suffix=self.entry_suffix,
            archive_suffix=self.archive_suffix,
        ):
            stats.record(result)
            if result.book is not None:
                books.append(result.book)

        if stats.short_lines or stats.bad_ids:
            LOGGER.warning(
                "Rejected %d short lines and %d lines with invalid ids",
                stats.short_lines,
                stats.bad_ids,
            )
        if stats.missing_archives:
            LOGGER.info(
                "Skipped %d books whose archives are not in %s",
                stats.missing_archives,
                archives_dir,
            )
        return books, stats

    def ingest(self, container: Path, archives_dir: Path) -> IngestStats:
        books, stats = self.collect(container, archives_dir)
        LOGGER.info("Indexing %d books...", len(books))
        stats.indexed = self.index.add_books(books, limit_mb=self.limit_mb)
        return stats
