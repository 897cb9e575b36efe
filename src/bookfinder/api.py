"""Public operations over a catalog index.

Every call opens the index (and, for extraction, the archive) fresh and
releases it before returning.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Tuple

from bookfinder.config import AppConfig
from bookfinder.errors import CatalogIOError
from bookfinder.extraction.resolver import ExtractionResolver
from bookfinder.index.indexer import CatalogIndexer, IngestStats
from bookfinder.index.search import Searcher
from bookfinder.index.storage import index_exists, open_or_create
from bookfinder.models import SearchResult

LOGGER = logging.getLogger(__name__)

__all__ = [
    "index_exists",
    "build_index",
    "search",
    "get_info",
    "get_bytes",
    "extract_to_file",
    "download",
]


def build_index(
    container: Path,
    index_path: Path,
    archives_dir: Path | None = None,
    *,
    config: AppConfig | None = None,
) -> IngestStats:
    """Index every book of an INPX container whose archive is in ``archives_dir``.

    ``archives_dir`` falls back to ``config.archives_dir`` when omitted.
    """
    config = config or AppConfig(index_path=index_path)
    archives_dir = archives_dir if archives_dir is not None else config.archives_dir
    if archives_dir is None:
        raise ValueError("No archives directory given")
    with open_or_create(index_path) as index:
        indexer = CatalogIndexer(
            index,
            limit_mb=config.writer_limit_mb,
            entry_suffix=config.entry_suffix,
            archive_suffix=config.archive_suffix,
        )
        stats = indexer.ingest(Path(container), Path(archives_dir))
    LOGGER.info("Indexing finished and saved to '%s'", index_path)
    return stats


def search(
    index_path: Path,
    query: str,
    *,
    limit: int | None = None,
    config: AppConfig | None = None,
) -> List[SearchResult]:
    config = config or AppConfig(index_path=index_path)
    with open_or_create(index_path) as index:
        return Searcher(index, max_results=config.max_results).search(query, limit=limit)


def get_info(index_path: Path, book_id: int) -> Tuple[str, str]:
    """Return ``(title, author)`` for a book id."""
    with open_or_create(index_path) as index:
        info = Searcher(index).get_by_id(book_id)
    return info.title, info.author


def get_bytes(index_path: Path, book_id: int) -> bytes:
    with open_or_create(index_path) as index:
        return ExtractionResolver(Searcher(index)).extract_bytes(book_id)


def extract_to_file(index_path: Path, book_id: int, output_dir: Path | None = None) -> Path:
    """Extract a book into ``output_dir`` (default: the working directory).

    The entry is written to a temporary file beside the target and moved
    into place only once extraction succeeds, so a failed run leaves any
    existing ``<id>.fb2`` untouched.
    """
    with open_or_create(index_path) as index:
        resolver = ExtractionResolver(Searcher(index))
        target = resolver.resolve(book_id)

        output_dir = Path(output_dir) if output_dir is not None else Path.cwd()
        output_path = output_dir / Path(target.entry_name).name
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            sink = tempfile.NamedTemporaryFile(
                dir=output_dir, prefix=f".{output_path.name}.", suffix=".part", delete=False
            )
        except OSError as exc:
            raise CatalogIOError(output_path, f"Cannot create output file ({exc})") from exc

        partial = Path(sink.name)
        try:
            with sink:
                written = resolver.extract(target, sink)
            os.replace(partial, output_path)
        except OSError as exc:
            partial.unlink(missing_ok=True)
            raise CatalogIOError(output_path, f"Cannot write output file ({exc})") from exc
        except Exception:
            partial.unlink(missing_ok=True)
            raise

    LOGGER.info("Wrote %d bytes to %s", written, output_path)
    return output_path


def download(index_path: Path, book_id: int, output_dir: Path | None = None) -> bool:
    extract_to_file(index_path, book_id, output_dir)
    return True
