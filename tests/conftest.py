"""
Shared pytest fixtures.

- `settings`: AppSettings isolated from any .env file, no sleeping retries.
- `entry` / `make_tree`: a catalog entry and an in-memory tree builder.
"""

from pathlib import Path

import pytest

from core.config import AppSettings
from core.domain.models import CatalogEntry, TemplateFile, TemplateTree
from fakes import LOCATION

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings() -> AppSettings:
    """Settings that ignore local .env files and do not sleep between retries."""
    return AppSettings(
        _env_file=None,
        catalog=LOCATION,
        http_max_retries=2,
        http_retry_backoff_seconds=0.0,
    )


@pytest.fixture
def entry() -> CatalogEntry:
    return CatalogEntry(
        id="python",
        display_name="Python",
        description="Python project with uv",
        source_path="python",
    )


@pytest.fixture
def make_tree(entry: CatalogEntry):
    """Build a TemplateTree from {path: content}."""

    def _make(files: dict[str, bytes | str], executable: set[str] | None = None) -> TemplateTree:
        executable = executable or set()
        items = [
            TemplateFile(
                path=path,
                content=content.encode("utf-8") if isinstance(content, str) else content,
                executable=path in executable,
            )
            for path, content in files.items()
        ]
        return TemplateTree.from_files(entry, items)

    return _make


@pytest.fixture
def empty_dest(tmp_path: Path) -> Path:
    dest = tmp_path / "dest"
    dest.mkdir()
    return dest
