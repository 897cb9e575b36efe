"""Tests for CLI commands."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from bookfinder.cli import _resolve_index, _setup_logging, app
from bookfinder.index.indexer import IngestStats
from bookfinder.models import SearchResult

from conftest import catalog_line, write_archive, write_container


runner = CliRunner()


@pytest.fixture
def library(tmp_path: Path, archives_dir: Path) -> Path:
    write_archive(archives_dir / "lib.a.zip", {"5.fb2": b"<FictionBook/>"})
    return write_container(
        tmp_path / "lib.inpx",
        {"lib.a.inp": [catalog_line("Doe J.", "Book One", 5), "short"]},
    )


class TestSetupLogging:
    """Tests for _setup_logging helper."""

    def test_setup_logging_verbose(self) -> None:
        with patch("bookfinder.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=True)
            assert mock_config.call_args[1]["level"] == logging.DEBUG

    def test_setup_logging_normal(self) -> None:
        with patch("bookfinder.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=False)
            assert mock_config.call_args[1]["level"] == logging.INFO


def test_resolve_index_absolute(tmp_path: Path) -> None:
    assert _resolve_index(tmp_path / "idx") == tmp_path / "idx"


class TestIndexCommand:
    """Tests for the index command."""

    def test_index_builds(
        self, library: Path, archives_dir: Path, index_path: Path
    ) -> None:
        result = runner.invoke(
            app, ["index", str(library), "--archives", str(archives_dir), "--index", str(index_path)]
        )

        assert result.exit_code == 0, result.stdout
        assert "Indexed: 1" in result.stdout
        assert "short lines: 1" in result.stdout

    def test_index_missing_catalog(self, tmp_path: Path, archives_dir: Path, index_path: Path) -> None:
        result = runner.invoke(
            app,
            ["index", str(tmp_path / "none.inpx"), "--archives", str(archives_dir), "--index", str(index_path)],
        )
        assert result.exit_code != 0

    @patch("bookfinder.cli.api.build_index")
    def test_index_passes_writer_budget(
        self, mock_build: MagicMock, library: Path, archives_dir: Path, index_path: Path
    ) -> None:
        mock_build.return_value = IngestStats(indexed=3)

        result = runner.invoke(
            app,
            [
                "index", str(library),
                "--archives", str(archives_dir),
                "--index", str(index_path),
                "--limit-mb", "256",
            ],
        )

        assert result.exit_code == 0
        config = mock_build.call_args[1]["config"]
        assert config.writer_limit_mb == 256
        assert config.archives_dir == archives_dir.resolve()


class TestQueryCommands:
    """Tests for search, info, download and status."""

    @pytest.fixture
    def built_index(self, library: Path, archives_dir: Path, index_path: Path) -> Path:
        runner.invoke(
            app, ["index", str(library), "--archives", str(archives_dir), "--index", str(index_path)]
        )
        return index_path

    def test_search_shows_table(self, built_index: Path) -> None:
        result = runner.invoke(app, ["search", "Book", "--index", str(built_index)])

        assert result.exit_code == 0
        assert "Book One" in result.stdout

    def test_search_no_matches(self, built_index: Path) -> None:
        result = runner.invoke(app, ["search", "Nabokov", "--index", str(built_index)])

        assert result.exit_code == 0
        assert "No matches found" in result.stdout

    def test_search_missing_index(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["search", "Book", "--index", str(tmp_path / "none")])
        assert result.exit_code != 0

    @patch("bookfinder.cli.api.search")
    def test_search_uses_top_k(self, mock_search: MagicMock, built_index: Path) -> None:
        mock_search.return_value = [SearchResult(id=5, author="Doe J.", title="Book One", score=1.0)]

        result = runner.invoke(app, ["search", "Book", "--index", str(built_index), "--top-k", "3"])

        assert result.exit_code == 0
        assert mock_search.call_args[1]["limit"] == 3

    def test_info(self, built_index: Path) -> None:
        result = runner.invoke(app, ["info", "5", "--index", str(built_index)])

        assert result.exit_code == 0
        assert "Book One" in result.stdout
        assert "Doe J." in result.stdout

    def test_info_unknown_id(self, built_index: Path) -> None:
        result = runner.invoke(app, ["info", "99", "--index", str(built_index)])

        assert result.exit_code == 1
        assert "99" in result.stdout

    def test_download(self, built_index: Path, tmp_path: Path) -> None:
        output = tmp_path / "books"
        result = runner.invoke(
            app, ["download", "5", "--index", str(built_index), "--output", str(output)]
        )

        assert result.exit_code == 0
        assert (output / "5.fb2").read_bytes() == b"<FictionBook/>"

    def test_status(self, built_index: Path, tmp_path: Path) -> None:
        found = runner.invoke(app, ["status", "--index", str(built_index)])
        missing = runner.invoke(app, ["status", "--index", str(tmp_path / "none")])

        assert "Index found" in found.stdout
        assert "No index" in missing.stdout
