"""Free-text and id lookups over the catalog index."""

from __future__ import annotations

from typing import List

from whoosh.qparser import MultifieldParser, OrGroup
from whoosh.qparser.common import QueryParserError
from whoosh.query import Query, Term

from bookfinder.config import DEFAULT_MAX_RESULTS
from bookfinder.errors import BookNotFoundError, QuerySyntaxError, SchemaError
from bookfinder.index.storage import CatalogIndex
from bookfinder.ingestion.inpx_loader import MAX_ID
from bookfinder.models import BookInfo, SearchResult


def _find_error(query: Query) -> str | None:
    """Return the first parser error attached anywhere in a query tree."""
    error = getattr(query, "error", None)
    if error:
        return str(error)
    for child in query.children():
        error = _find_error(child)
        if error:
            return error
    return None


class Searcher:
    """High-level API to query the catalog index.

    Ties between equally scored hits follow the engine's document order,
    so which of several documents sharing an id wins is not guaranteed.
    """

    def __init__(self, index: CatalogIndex, *, max_results: int = DEFAULT_MAX_RESULTS) -> None:
        self.index = index
        self.max_results = max_results

    def parse(self, query: str) -> Query:
        text = query.strip()
        if not text:
            raise QuerySyntaxError("Empty query")

        fields = self.index.fields
        parser = MultifieldParser(
            [fields.author, fields.title], schema=self.index.schema, group=OrGroup
        )
        try:
            parsed = parser.parse(text, normalize=False)
        except QueryParserError as exc:
            raise QuerySyntaxError(f"Invalid query {text!r}: {exc}") from exc

        error = _find_error(parsed)
        if error:
            raise QuerySyntaxError(f"Invalid query {text!r}: {error}")
        return parsed.normalize()

    def search(self, query: str, *, limit: int | None = None) -> List[SearchResult]:
        parsed = self.parse(query)
        if limit is None:
            limit = self.max_results
        limit = max(1, min(limit, self.max_results))

        fields = self.index.fields
        results: List[SearchResult] = []
        with self.index.searcher() as searcher:
            for hit in searcher.search(parsed, limit=limit):
                results.append(
                    SearchResult(
                        id=int(hit[fields.id]),
                        author=hit.get(fields.author, ""),
                        title=hit.get(fields.title, ""),
                        score=float(hit.score),
                    )
                )
        return results

    def get_by_id(self, book_id: int) -> BookInfo:
        if not 0 <= book_id <= MAX_ID:
            raise BookNotFoundError(book_id)

        fields = self.index.fields
        with self.index.searcher() as searcher:
            hits = searcher.search(Term(fields.id, book_id), limit=1)
            if hits.is_empty():
                raise BookNotFoundError(book_id)
            stored = hits[0].fields()

        missing = [
            name for name in (fields.title, fields.author, fields.archive_path) if name not in stored
        ]
        if missing:
            raise SchemaError(f"Document {book_id} lacks stored fields: {', '.join(missing)}")
        return BookInfo(
            id=book_id,
            title=stored[fields.title],
            author=stored[fields.author],
            archive_path=stored[fields.archive_path],
        )
