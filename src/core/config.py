"""Core configuration.

Why here:
- Centralizes environment variables (pydantic-settings) without polluting the CLI.
- Lets adapters (HTTP, catalog, fetcher) read config consistently.
- The catalog location is a plain value on `AppSettings`, passed explicitly into
  constructors, so several configurations can coexist in one process (tests).
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.models import ConflictPolicy, FetchLimits

DEFAULT_CATALOG = "github:nulladmin1/nix-flake-templates"


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "seedling"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "seedling"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "seedling"
    return Path.home() / ".config" / "seedling"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], *, env_path: Path | None = None) -> Path:
    """Write/update variables in the user's global .env."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# seedling user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Central application settings.

    Why pydantic-settings:
    - Typed and validated at the edge (env vars) without leaking into the Core.
    - One configuration contract shared by the CLI and the adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="SEEDLING_",
        extra="ignore",
        case_sensitive=False,
        # Order: project first (dev), then the user's global config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    catalog: str = Field(
        default=DEFAULT_CATALOG,
        min_length=1,
        description="Catalog location: github:<owner>/<repo>[@<ref>].",
    )
    catalog_index_file: str = Field(
        default="templates.json",
        min_length=1,
        description="Index document at the catalog root listing the templates.",
    )
    catalog_description_prefix: str = Field(
        default="Nix Flake Template for ",
        description="Prefix stripped from every description.",
    )
    hide_duplicate_descriptions: bool = Field(
        default=True,
        description="Drop entries whose description repeats an earlier entry.",
    )

    github_api_url: str = Field(
        default="https://api.github.com",
        min_length=8,
        description="Base URL of the GitHub REST API (tree listings).",
    )
    github_raw_url: str = Field(
        default="https://raw.githubusercontent.com",
        min_length=8,
        description="Base URL serving raw file contents.",
    )
    github_token: str | None = Field(
        default=None,
        description="Optional token, raises the API rate limit.",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout per request (seconds).",
    )
    http_max_retries: int = Field(
        default=2,
        ge=0,
        le=5,
        description="Retries for transient failures (transport errors, 5xx, 429).",
    )
    http_retry_backoff_seconds: float = Field(
        default=0.5,
        ge=0,
        description="Base delay between retries; doubles on every attempt.",
    )
    user_agent: str = Field(
        default="seedling/0.1 (+https://github.com)",
        min_length=1,
        description="User-Agent for catalog requests.",
    )

    max_template_bytes: int = Field(
        default=10 * 1024 * 1024,
        gt=0,
        description="Maximum aggregate size of one template.",
    )
    max_template_files: int = Field(
        default=1000,
        gt=0,
        description="Maximum number of files in one template.",
    )

    conflict_policy: ConflictPolicy = Field(
        default=ConflictPolicy.SKIP,
        description="What to do with files that already exist (skip/overwrite/ask).",
    )
    placeholder_token: str = Field(
        default="project_name",
        description="Token replaced with the project name in contents and paths ('' disables).",
    )
    log_level: str = Field(
        default="WARNING",
        description="Logging level for the CLI.",
    )

    def fetch_limits(self) -> FetchLimits:
        return FetchLimits(
            max_total_bytes=self.max_template_bytes,
            max_files=self.max_template_files,
        )
