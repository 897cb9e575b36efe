"""Command line interface for BookFinder."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from bookfinder import api
from bookfinder.config import AppConfig
from bookfinder.errors import BookFinderError, NotFoundError, QuerySyntaxError
from bookfinder.web.app import app as web_app


console = Console()
app = typer.Typer(help="BookFinder - search INPX catalogs and extract single books")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _resolve_index(index_path: Path | None) -> Path:
    config = AppConfig(index_path=index_path)
    return config.resolve_index_path(Path.cwd())


def _fail(exc: BookFinderError) -> None:
    color = "yellow" if isinstance(exc, NotFoundError) else "red"
    console.print(f"[{color}]{exc}[/{color}]")
    raise typer.Exit(code=1)


@app.command()
def index(
    container: Path = typer.Argument(..., help="INPX catalog container", resolve_path=True),
    archives: Path = typer.Option(
        ..., "--archives", "-a", help="Directory holding the per-book zip archives", resolve_path=True
    ),
    index_path: Path = typer.Option(None, "--index", help="Index directory"),
    limit_mb: int = typer.Option(AppConfig().writer_limit_mb, help="Writer memory budget in MB"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Build or extend the index from an INPX container."""
    _setup_logging(verbose)
    resolved_index = _resolve_index(index_path)
    config = AppConfig(index_path=resolved_index, archives_dir=archives, writer_limit_mb=limit_mb)

    if not container.exists():
        raise typer.BadParameter(f"Catalog not found: {container}")
    if not archives.is_dir():
        raise typer.BadParameter(f"Archives directory not found: {archives}")

    console.print(f"Indexing into [bold]{resolved_index}[/bold]...")
    try:
        stats = api.build_index(container, resolved_index, config=config)
    except BookFinderError as exc:
        _fail(exc)
        return

    console.print(
        f"Indexed: {stats.indexed}, short lines: {stats.short_lines}, "
        f"bad ids: {stats.bad_ids}, missing archives: {stats.missing_archives}, "
        f"unreadable members: {stats.unreadable_members}"
    )


@app.command()
def search(
    query: str = typer.Argument(..., help="Query over author and title"),
    index_path: Path = typer.Option(None, "--index", help="Index directory"),
    top_k: int = typer.Option(AppConfig().max_results, help="Number of results to display"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Run a free-text search."""
    _setup_logging(verbose)
    resolved_index = _resolve_index(index_path)
    if not api.index_exists(resolved_index):
        raise typer.BadParameter(f"Index not found: {resolved_index}")

    try:
        results = api.search(resolved_index, query, limit=top_k)
    except QuerySyntaxError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except BookFinderError as exc:
        _fail(exc)
        return

    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("ID")
    table.add_column("Author")
    table.add_column("Title")
    for result in results:
        table.add_row(f"{result.score:.4f}", str(result.id), result.author, result.title)
    console.print(table)


@app.command()
def info(
    book_id: int = typer.Argument(..., help="Catalog id"),
    index_path: Path = typer.Option(None, "--index", help="Index directory"),
) -> None:
    """Show title and author for a catalog id."""
    resolved_index = _resolve_index(index_path)
    try:
        title, author = api.get_info(resolved_index, book_id)
    except BookFinderError as exc:
        _fail(exc)
        return
    console.print(f"[bold]{title}[/bold] - {author}")


@app.command()
def download(
    book_id: int = typer.Argument(..., help="Catalog id"),
    output: Path = typer.Option(Path("."), "--output", "-o", help="Output directory"),
    index_path: Path = typer.Option(None, "--index", help="Index directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Extract a single book from its archive."""
    _setup_logging(verbose)
    resolved_index = _resolve_index(index_path)
    try:
        written = api.extract_to_file(resolved_index, book_id, output)
    except BookFinderError as exc:
        _fail(exc)
        return
    console.print(f"Saved [bold]{written}[/bold]")


@app.command()
def status(
    index_path: Path = typer.Option(None, "--index", help="Index directory"),
) -> None:
    """Report whether an index exists."""
    resolved_index = _resolve_index(index_path)
    if api.index_exists(resolved_index):
        console.print(f"Index found at {resolved_index}")
    else:
        console.print(f"[yellow]No index at {resolved_index}[/yellow]")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
    index_path: Optional[Path] = typer.Option(None, "--index", help="Index directory"),
) -> None:
    """Start the HTTP API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - optional extra
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    resolved_index = _resolve_index(index_path)
    if not api.index_exists(resolved_index):
        console.print("[yellow]Warning: index not found, lookups will return nothing.[/yellow]")

    web_app.state.index_path = resolved_index
    console.print(f"Starting API on http://{host}:{port} (index: {resolved_index})")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
