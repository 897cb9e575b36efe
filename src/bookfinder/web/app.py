"""FastAPI application exposing BookFinder over HTTP."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, List

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel

from bookfinder import api
from bookfinder.config import AppConfig
from bookfinder.errors import (
    BookFinderError,
    CatalogIOError,
    NotFoundError,
    QuerySyntaxError,
)
from bookfinder.extraction.resolver import entry_name_for
from bookfinder.models import SearchResult

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="BookFinder API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.index_path = None


class SearchPayload(BaseModel):
    query: str
    index: Path | None = None
    top_k: int = 10


class IndexPayload(BaseModel):
    container: str
    archives: str
    index: str | None = None
    limit_mb: int | None = None


def _resolve_index_path(index: Path | None) -> Path:
    if index is None:
        index = app.state.index_path
    config = AppConfig(index_path=Path(index) if index is not None else None)
    return config.resolve_index_path(Path.cwd())


def _http_error(exc: BookFinderError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, QuerySyntaxError):
        return HTTPException(status_code=400, detail=str(exc))
    LOGGER.error("Request failed: %s", exc)
    return HTTPException(status_code=500, detail=str(exc))


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.get("/status")
async def index_status(index: Path | None = None) -> dict[str, Any]:
    resolved_index = _resolve_index_path(index)
    return {"index": str(resolved_index), "exists": api.index_exists(resolved_index)}


@app.post("/search")
async def search_books(payload: SearchPayload) -> dict[str, List[SearchResult]]:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")

    resolved_index = _resolve_index_path(payload.index)
    if not api.index_exists(resolved_index):
        raise HTTPException(
            status_code=404,
            detail=f"Index not found at {resolved_index}. Build it first with 'bookfinder index'.",
        )

    try:
        results = api.search(resolved_index, query, limit=payload.top_k)
    except BookFinderError as exc:
        raise _http_error(exc) from exc
    return {"results": results}


@app.get("/books/{book_id}")
async def book_info(book_id: int, index: Path | None = None) -> dict[str, Any]:
    resolved_index = _resolve_index_path(index)
    try:
        title, author = api.get_info(resolved_index, book_id)
    except BookFinderError as exc:
        raise _http_error(exc) from exc
    return {"id": book_id, "title": title, "author": author}


@app.get("/books/{book_id}/file")
async def book_file(book_id: int, index: Path | None = None) -> Response:
    resolved_index = _resolve_index_path(index)
    try:
        data = await asyncio.to_thread(api.get_bytes, resolved_index, book_id)
    except BookFinderError as exc:
        raise _http_error(exc) from exc
    return Response(
        content=data,
        media_type="application/x-fictionbook+xml",
        headers={"Content-Disposition": f'attachment; filename="{entry_name_for(book_id)}"'},
    )


@app.post("/index")
async def index_catalog(payload: IndexPayload) -> dict[str, Any]:
    container = Path(payload.container.strip()).expanduser().resolve()
    archives = Path(payload.archives.strip()).expanduser().resolve()
    if not container.is_file():
        raise HTTPException(status_code=404, detail=f"Catalog not found: {container}")
    if not archives.is_dir():
        raise HTTPException(status_code=400, detail=f"Archives path must be a directory: {archives}")

    resolved_index = _resolve_index_path(Path(payload.index) if payload.index else None)
    defaults = AppConfig()
    config = AppConfig(
        index_path=resolved_index,
        archives_dir=archives,
        writer_limit_mb=payload.limit_mb or defaults.writer_limit_mb,
    )

    try:
        stats = await asyncio.to_thread(
            api.build_index, container, resolved_index, config=config
        )
    except CatalogIOError as exc:
        LOGGER.exception("Indexing failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except BookFinderError as exc:
        raise _http_error(exc) from exc

    return {
        "status": "ok",
        "index": str(resolved_index),
        "stats": {
            "members": stats.members,
            "indexed": stats.indexed,
            "short_lines": stats.short_lines,
            "bad_ids": stats.bad_ids,
            "missing_archives": stats.missing_archives,
            "unreadable_members": stats.unreadable_members,
        },
    }
