"""INPX catalog reading and line parsing.

An ``.inpx`` file is a zip container of ``.inp`` members. Each line of a
member describes one book, with fields separated by ``\\x04``. The books
listed in ``name.inp`` live in the per-book archive ``name.zip``.
"""

from __future__ import annotations

import logging
import re
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List

from bookfinder.config import ARCHIVE_SUFFIX, CATALOG_SUFFIX
from bookfinder.errors import CatalogIOError, CatalogParseError
from bookfinder.models import Book

LOGGER = logging.getLogger(__name__)

FIELD_SEPARATOR = "\x04"
MIN_FIELDS = 11
AUTHOR_FIELD = 0
TITLE_FIELD = 2
ID_FIELD = 5
MAX_ID = 2**64 - 1

SHORT_LINE = "short_line"
BAD_ID = "bad_id"
MISSING_ARCHIVE = "missing_archive"

_ID_PATTERN = re.compile(r"\+?[0-9]+")


@dataclass(slots=True)
class CatalogMember:
    """Decoded text of one catalog member."""

    name: str
    text: str


@dataclass(slots=True)
class CatalogContents:
    members: List[CatalogMember] = field(default_factory=list)
    unreadable: List[str] = field(default_factory=list)


@dataclass(slots=True)
class LineResult:
    """Outcome of parsing one catalog line: a book or the reason it was rejected."""

    member: str
    line_number: int
    book: Book | None = None
    reason: str | None = None
    error: CatalogParseError | None = None

    @property
    def ok(self) -> bool:
        return self.book is not None


def archive_name_for(member_name: str, *, entry_suffix: str = CATALOG_SUFFIX,
                     archive_suffix: str = ARCHIVE_SUFFIX) -> str:
    """Map ``lib.a.inp`` to ``lib.a.zip``."""
    if not member_name.endswith(entry_suffix):
        raise ValueError(f"Catalog member '{member_name}' does not end with '{entry_suffix}'")
    return member_name[: len(member_name) - len(entry_suffix)] + archive_suffix


def parse_book_id(raw: str) -> int:
    """Parse an unsigned 64-bit catalog id."""
    if not _ID_PATTERN.fullmatch(raw):
        raise CatalogParseError(f"Invalid book id {raw!r}")
    value = int(raw)
    if value > MAX_ID:
        raise CatalogParseError(f"Book id {raw!r} does not fit in 64 bits")
    return value


def read_catalog(container: Path, *, entry_suffix: str = CATALOG_SUFFIX) -> CatalogContents:
    """Read the text of every catalog member of an INPX container into memory.

    Members that cannot be read are logged and listed in ``unreadable``; a
    container that cannot be opened at all raises :class:`CatalogIOError`.
    """
    container = Path(container)
    try:
        archive = zipfile.ZipFile(container)
    except (OSError, zipfile.BadZipFile) as exc:
        raise CatalogIOError(container, f"Cannot open catalog container ({exc})") from exc

    contents = CatalogContents()
    with archive:
        for info in archive.infolist():
            if not info.filename.endswith(entry_suffix):
                continue
            try:
                raw = archive.read(info)
            except (OSError, zipfile.BadZipFile, zlib.error, NotImplementedError, RuntimeError) as exc:
                LOGGER.warning("Failed to read '%s' in %s: %s", info.filename, container, exc)
                contents.unreadable.append(info.filename)
                continue
            contents.members.append(
                CatalogMember(name=info.filename, text=raw.decode("utf-8", errors="replace"))
            )
    return contents


def _split_lines(text: str) -> List[str]:
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line.rstrip("\r") for line in lines]


def iter_member_lines(
    member: CatalogMember,
    archives_dir: Path,
    *,
    entry_suffix: str = CATALOG_SUFFIX,
    archive_suffix: str = ARCHIVE_SUFFIX,
) -> Iterator[LineResult]:
    """Yield one :class:`LineResult` per line of a catalog member."""
    archive_name = archive_name_for(
        member.name, entry_suffix=entry_suffix, archive_suffix=archive_suffix
    )
    archive_path = str(Path(archives_dir) / archive_name)
    archive_present = Path(archive_path).exists()

    for number, line in enumerate(_split_lines(member.text), start=1):
        fields = line.split(FIELD_SEPARATOR)
        if len(fields) < MIN_FIELDS:
            LOGGER.debug("Not enough fields in %s:%d: %r", member.name, number, line)
            yield LineResult(
                member.name,
                number,
                reason=SHORT_LINE,
                error=CatalogParseError(f"Expected {MIN_FIELDS} fields, got {len(fields)}"),
            )
            continue

        try:
            book_id = parse_book_id(fields[ID_FIELD])
        except CatalogParseError as exc:
            LOGGER.debug("Skipping %s:%d: %s", member.name, number, exc)
            yield LineResult(member.name, number, reason=BAD_ID, error=exc)
            continue

        # Partial mirrors routinely lack archives; not worth a warning.
        if not archive_present:
            yield LineResult(member.name, number, reason=MISSING_ARCHIVE)
            continue

        yield LineResult(
            member.name,
            number,
            book=Book(
                id=book_id,
                author_name=fields[AUTHOR_FIELD],
                book_title=fields[TITLE_FIELD],
                archive_path=archive_path,
            ),
        )


def iter_catalog_lines(
    members: Iterable[CatalogMember],
    archives_dir: Path,
    *,
    entry_suffix: str = CATALOG_SUFFIX,
    archive_suffix: str = ARCHIVE_SUFFIX,
) -> Iterator[LineResult]:
    for member in members:
        yield from iter_member_lines(
            member, archives_dir, entry_suffix=entry_suffix, archive_suffix=archive_suffix
        )
