"""Core BookFinder data models."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class Book:
    """One catalog entry ready to be written to the index."""

    id: int
    author_name: str
    book_title: str
    archive_path: str


@dataclass(slots=True, frozen=True)
class BookInfo:
    """Stored fields recovered from the index for a single id."""

    id: int
    title: str
    author: str
    archive_path: str


@dataclass(slots=True)
class SearchResult:
    id: int
    author: str
    title: str
    score: float
