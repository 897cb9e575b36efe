"""Tests for the index lifecycle manager."""

from __future__ import annotations

from pathlib import Path

import pytest
from whoosh import index as whoosh_index
from whoosh.fields import ID, NUMERIC, TEXT, Schema

from bookfinder.errors import CatalogIOError, SchemaError
from bookfinder.index.storage import (
    FIELD_ARCHIVE,
    FIELD_AUTHOR,
    FIELD_ID,
    FIELD_TITLE,
    CatalogIndex,
    IndexFields,
    build_schema,
    index_exists,
    open_or_create,
)
from bookfinder.models import Book


def _book(book_id: int, title: str = "Title", author: str = "Author") -> Book:
    return Book(id=book_id, author_name=author, book_title=title, archive_path=f"/srv/{book_id}.zip")


class TestSchema:
    """Test the fixed four-field schema."""

    def test_field_names(self) -> None:
        schema = build_schema()
        assert set(schema.names()) == {FIELD_ID, FIELD_AUTHOR, FIELD_TITLE, FIELD_ARCHIVE}

    def test_fields_are_stored(self) -> None:
        schema = build_schema()
        assert all(schema[name].stored for name in schema.names())

    def test_index_fields_from_schema(self) -> None:
        fields = IndexFields.from_schema(build_schema())
        assert fields.id == "id"
        assert fields.archive_path == "archive_path"

    def test_missing_field_raises(self) -> None:
        schema = Schema(id=NUMERIC(bits=64, stored=True), author=TEXT(stored=True), title=TEXT(stored=True))
        with pytest.raises(SchemaError, match="archive_path"):
            IndexFields.from_schema(schema)

    def test_wrong_field_type_raises(self) -> None:
        schema = Schema(
            id=ID(stored=True),
            author=TEXT(stored=True),
            title=TEXT(stored=True),
            archive_path=TEXT(stored=True),
        )
        with pytest.raises(SchemaError, match="'id'"):
            IndexFields.from_schema(schema)


class TestOpenOrCreate:
    """Test create-vs-open behaviour."""

    def test_creates_missing_directory(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "index"
        assert not index_exists(path)

        with open_or_create(path) as index:
            assert isinstance(index, CatalogIndex)
            assert index.doc_count() == 0

        assert path.is_dir()
        assert index_exists(path)

    def test_initialises_empty_existing_directory(self, tmp_path: Path) -> None:
        path = tmp_path / "index"
        path.mkdir()
        assert not index_exists(path)

        with open_or_create(path):
            pass

        assert index_exists(path)

    def test_reopens_existing_index(self, index_path: Path) -> None:
        with open_or_create(index_path) as index:
            index.add_books([_book(1)])

        with open_or_create(index_path) as index:
            assert index.doc_count() == 1

    def test_schema_mismatch_is_fatal(self, tmp_path: Path) -> None:
        path = tmp_path / "foreign"
        path.mkdir()
        whoosh_index.create_in(str(path), Schema(path=ID(stored=True), content=TEXT))

        with pytest.raises(SchemaError):
            open_or_create(path)

    def test_file_in_place_of_directory(self, tmp_path: Path) -> None:
        path = tmp_path / "index"
        path.write_text("not a directory")
        with pytest.raises(CatalogIOError):
            open_or_create(path)

    def test_index_exists_on_file(self, tmp_path: Path) -> None:
        path = tmp_path / "file"
        path.write_text("x")
        assert not index_exists(path)


class TestAddBooks:
    """Test batch writes and commits."""

    def test_commit_makes_documents_visible(self, catalog_index: CatalogIndex) -> None:
        count = catalog_index.add_books([_book(1), _book(2)])

        assert count == 2
        assert catalog_index.doc_count() == 2
        with catalog_index.searcher() as searcher:
            stored = sorted(doc["id"] for doc in searcher.all_stored_fields())
        assert stored == [1, 2]

    def test_duplicate_ids_are_kept(self, catalog_index: CatalogIndex) -> None:
        catalog_index.add_books([_book(42, "Old")])
        catalog_index.add_books([_book(42, "New")])

        assert catalog_index.doc_count() == 2

    def test_failure_cancels_batch(self, catalog_index: CatalogIndex) -> None:
        def books():
            yield _book(1)
            raise RuntimeError("catalog went away")

        with pytest.raises(RuntimeError):
            catalog_index.add_books(books())

        assert catalog_index.doc_count() == 0
        # The writer lock was released by the cancel.
        assert catalog_index.add_books([_book(2)]) == 1

    def test_empty_batch_commits(self, catalog_index: CatalogIndex) -> None:
        assert catalog_index.add_books([]) == 0
        assert catalog_index.doc_count() == 0

    def test_large_unsigned_id(self, catalog_index: CatalogIndex) -> None:
        catalog_index.add_books([_book(2**64 - 1)])
        with catalog_index.searcher() as searcher:
            stored = list(searcher.all_stored_fields())
        assert stored[0]["id"] == 2**64 - 1
