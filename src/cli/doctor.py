"""Doctor command for environment diagnostics."""

from __future__ import annotations

import shutil

import typer
from rich.console import Console
from rich.table import Table

from adapters.catalog_source import GitHubCatalogSource
from core.config import AppSettings
from core.domain.errors import SeedlingError

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


def _check_catalog(settings: AppSettings) -> tuple[bool, str]:
    try:
        entries = GitHubCatalogSource(settings.catalog, settings=settings).list()
    except SeedlingError as exc:
        return False, exc.message
    return True, f"{len(entries)} template(s)"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="seedling doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    table.add_row("Catalog", "OK", settings.catalog)
    table.add_row("Conflict policy", "OK", settings.conflict_policy.value)
    table.add_row(
        "Limits",
        "OK",
        f"{settings.max_template_files} files / {settings.max_template_bytes} bytes",
    )
    if settings.github_token:
        table.add_row("GitHub token", "OK", "Authenticated API requests")
    else:
        table.add_row("GitHub token", "OPTIONAL", "Unauthenticated -> lower API rate limit")

    ok_catalog, detail_catalog = _check_catalog(settings)
    table.add_row("Catalog index", "OK" if ok_catalog else "FAIL", detail_catalog)

    git = shutil.which("git")
    table.add_row("git", "OK" if git else "OPTIONAL", git or "Not found -> --git unavailable")

    _console.print(table)

    if not ok_catalog:
        raise typer.Exit(code=1)
