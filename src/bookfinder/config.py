"""Application configuration defaults."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path

CATALOG_SUFFIX = ".inp"
ARCHIVE_SUFFIX = ".zip"
DEFAULT_WRITER_LIMIT_MB = 50
DEFAULT_MAX_RESULTS = 10


def _get_default_index_path() -> Path:
    """Get the default index directory based on platform and execution context."""
    user_index = Path.home() / "Documents" / "BookFinder" / "index"

    if getattr(sys, "frozen", False):
        return user_index

    # When running from source, prefer local data/ if it exists
    local_data = Path("data")
    if local_data.exists():
        return local_data / "bookfinder_index"

    return user_index


@dataclass(slots=True)
class AppConfig:
    index_path: Path | None = None
    archives_dir: Path | None = None
    writer_limit_mb: int = DEFAULT_WRITER_LIMIT_MB
    max_results: int = DEFAULT_MAX_RESULTS
    entry_suffix: str = CATALOG_SUFFIX
    archive_suffix: str = ARCHIVE_SUFFIX

    def __post_init__(self) -> None:
        if self.index_path is None:
            self.index_path = _get_default_index_path()

    def resolve_index_path(self, base_dir: Path | None = None) -> Path:
        if self.index_path is None:
            self.index_path = _get_default_index_path()
        if Path(self.index_path).is_absolute() or base_dir is None:
            return Path(self.index_path)
        return base_dir / self.index_path
