"""CLI UI components (Rich).

Why separate components:
- Keeps command logic apart from visual details.
- Lets `list`, the interactive prompt and the summaries reuse the same tables.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.errors import FilesystemError, SeedlingError
from core.domain.models import CatalogEntry, MaterializationReport


def print_banner(console: Console) -> None:
    """Print the welcome banner (interactive runs only)."""

    title = Text("seedling", style="bold green")
    subtitle = Text("Project templates • Pick one • Start coding", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="green", padding=(1, 4)))


def build_catalog_table(entries: list[CatalogEntry]) -> Table:
    """Numbered catalog listing, in catalog order."""

    table = Table(title="Templates", show_lines=False)
    table.add_column("#", style="blue", justify="right", no_wrap=True)
    table.add_column("Id", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Description", style="dim")
    for index, entry in enumerate(entries, start=1):
        table.add_row(str(index), entry.id, entry.display_name, entry.description)
    return table


def build_options_panel(rows: dict[str, str]) -> Panel:
    body = Text()
    for key, value in rows.items():
        body.append(f"- {key}: ")
        body.append(f"{value}\n", style="green")
    return Panel(body, title=":point_left: You selected", border_style="cyan")


def build_report_table(report: MaterializationReport) -> Table:
    """One row per file touched (or not) by the materializer."""

    table = Table(title=f"Files in {report.destination}")
    table.add_column("Path", style="white")
    table.add_column("Result", no_wrap=True)
    table.add_column("Reason", style="dim")
    for path in report.created:
        table.add_row(path, "[green]created[/green]", "")
    for path in report.overwritten:
        table.add_row(path, "[magenta]overwritten[/magenta]", "")
    for path in report.skipped:
        table.add_row(path, "[yellow]skipped[/yellow]", report.skip_reasons.get(path, ""))
    for path in report.failed:
        table.add_row(path, "[red]failed[/red]", "")
    for path in report.not_attempted:
        table.add_row(path, "[red]not written[/red]", "aborted")
    return table


def summarize_report(report: MaterializationReport) -> str:
    counts = report.counts()
    return (
        f"{counts['created']} created, {counts['overwritten']} overwritten, "
        f"{counts['skipped']} skipped"
    )


def print_error(console: Console, error: SeedlingError) -> None:
    """Render an error with its context and, for write failures, the partial report."""

    body = Text(error.message + "\n", style="bold red")
    for key, value in error.context().items():
        body.append(f"{key}: ", style="dim")
        body.append(f"{value}\n")
    if error.hint:
        body.append(f"\n{error.hint}", style="yellow")
    console.print(Panel(body, title=type(error).__name__, border_style="red"))

    if isinstance(error, FilesystemError):
        console.print(build_report_table(error.report))
        console.print(f"Partial result: {summarize_report(error.report)}")
