"""Shared fixtures: INPX containers, per-book archives and built indexes."""

from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Dict, Iterable, Mapping

import pytest

from bookfinder.index.storage import CatalogIndex, open_or_create
from bookfinder.ingestion.inpx_loader import FIELD_SEPARATOR


def catalog_line(author: str, title: str, book_id: str | int, *, extra_fields: int = 5) -> str:
    """Build a catalog line with author, title and id in their columns."""
    fields = [author, "", title, "", "", str(book_id)] + [""] * extra_fields
    return FIELD_SEPARATOR.join(fields)


def write_container(path: Path, members: Mapping[str, Iterable[str] | bytes]) -> Path:
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, lines in members.items():
            if isinstance(lines, bytes):
                archive.writestr(name, lines)
            else:
                archive.writestr(name, "\n".join(lines) + "\n")
    return path


def write_archive(path: Path, entries: Dict[str, bytes]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return path


@pytest.fixture
def archives_dir(tmp_path: Path) -> Path:
    path = tmp_path / "archives"
    path.mkdir()
    return path


@pytest.fixture
def index_path(tmp_path: Path) -> Path:
    return tmp_path / "index"


@pytest.fixture
def catalog_index(index_path: Path) -> Iterable[CatalogIndex]:
    index = open_or_create(index_path)
    yield index
    index.close()
