"""seedling CLI (Typer).

The commands only collect options, wire the adapters and print; the run itself
lives in `core.services.run_pipeline`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from adapters.catalog_source import GitHubCatalogSource, parse_location
from adapters.git_cli import init_repository
from adapters.template_fetcher import GitHubTemplateFetcher
from cli.doctor import app as doctor_app
from cli.prompter import Prompter
from cli.ui_components import (
    build_catalog_table,
    build_options_panel,
    build_report_table,
    print_banner,
    print_error,
    summarize_report,
)
from core.config import AppSettings, write_user_env_vars
from core.domain.errors import NoSelectionError, SeedlingError
from core.domain.models import CatalogEntry, ConflictPolicy, TemplateTree
from core.services.materializer import Materializer
from core.services.placeholders import validate_project_name
from core.services.run_pipeline import (
    PipelineHooks,
    PipelineResult,
    RunOptions,
    find_entry,
    run_pipeline,
)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130

app = typer.Typer(
    help="Pick a project template from a remote catalog and write it to disk.",
    add_completion=False,
)
config_app = typer.Typer(no_args_is_help=True, help="Persist settings in the user config .env.")
app.add_typer(doctor_app, name="doctor")
app.add_typer(config_app, name="config")

_console = Console()
_err_console = Console(stderr=True)


def configure_logging(level: str) -> None:
    """Route stdlib logging through Rich on stderr."""

    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=_err_console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


def _load_settings(catalog: str | None) -> AppSettings:
    settings = AppSettings()
    if catalog:
        settings = settings.model_copy(update={"catalog": catalog})
    return settings


def _options_collector(
    prompter: Prompter,
    *,
    dest: Path | None,
    name: str | None,
    init_git: bool | None,
    clear_readme: bool | None,
    assume_yes: bool,
    placeholder_token: str,
):
    def configure(entry: CatalogEntry) -> RunOptions:
        cwd = Path.cwd()
        if dest is not None:
            destination = dest if dest.is_absolute() else cwd / dest
            project_name = name or destination.name or entry.id
        else:
            is_new = False if assume_yes else prompter.ask_new_or_init()
            default_name = name or (entry.id if is_new else cwd.name)
            project_name = default_name if (assume_yes or name) else prompter.ask_project_name(default_name)
            default_dest = cwd / project_name if is_new else cwd
            destination = default_dest if assume_yes else prompter.confirm_destination(default_dest)

        if init_git is None:
            git = False if assume_yes else prompter.ask_yes_no(
                ":floppy_disk: Initialize a Git repository (git init)?", default=False
            )
        else:
            git = init_git
        if clear_readme is None:
            readme = False if assume_yes else prompter.ask_yes_no(
                ":page_facing_up: Clear the README.md file?", default=False
            )
        else:
            readme = clear_readme

        options = RunOptions(
            destination=destination,
            project_name=validate_project_name(project_name),
            placeholder_token=placeholder_token,
            init_git=git,
            clear_readme=readme,
        )
        prompter.console.print(
            build_options_panel(
                {
                    "Template": entry.display_name,
                    "Destination": str(options.destination),
                    "Project name": options.project_name,
                    "Initialize Git": str(options.init_git),
                    "Clear README.md": str(options.clear_readme),
                }
            )
        )
        return options

    return configure


def _print_result(console: Console, result: PipelineResult) -> None:
    report = result.report
    console.print(build_report_table(report))
    console.print(f":crown: Created project in [green]{report.destination}[/green]: {summarize_report(report)}")
    if report.skipped:
        console.print("[yellow]Existing files were left untouched:[/yellow] " + ", ".join(report.skipped))
    if result.git_initialized:
        console.print(":wrench: Initialized Git repository [green]successfully[/green]")
    if result.readme_cleared:
        console.print(":broom: Cleared README.md [green]successfully[/green]")
    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
    console.print(":tada: Done!")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    log_level: Annotated[Optional[str], typer.Option("--log-level", help="Logging level (DEBUG, INFO, ...).")] = None,
) -> None:
    """Without a command, runs `new` interactively."""

    configure_logging(log_level or AppSettings().log_level)
    if ctx.invoked_subcommand is None:
        ctx.invoke(new)


@app.command()
def new(
    catalog: Annotated[Optional[str], typer.Option("--catalog", help="Catalog location github:<owner>/<repo>[@<ref>].")] = None,
    dest: Annotated[Optional[Path], typer.Option("--dest", help="Destination directory (skips the new/init prompts).")] = None,
    template: Annotated[Optional[str], typer.Option("--template", "-t", help="Template id (skips the selection prompt).")] = None,
    name: Annotated[Optional[str], typer.Option("--name", help="Project name used for placeholders.")] = None,
    on_conflict: Annotated[Optional[ConflictPolicy], typer.Option("--on-conflict", help="skip, overwrite or ask.")] = None,
    git: Annotated[Optional[bool], typer.Option("--git/--no-git", help="Run git init afterwards.")] = None,
    clear_readme: Annotated[Optional[bool], typer.Option("--clear-readme/--keep-readme", help="Replace README.md with a stub.")] = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Accept defaults for every prompt.")] = False,
) -> None:
    """Select a template and write it into a directory."""

    console = _console
    prompter = Prompter(console)
    # Set once the plan is final; from then on files may be on disk.
    writing_to: list[Path] = []
    try:
        settings = _load_settings(catalog)
        policy = on_conflict or settings.conflict_policy
        materializer = Materializer(
            policy,
            confirm_overwrite=prompter.confirm_overwrite if policy is ConflictPolicy.ASK else None,
        )
        catalog_source = GitHubCatalogSource(settings.catalog, settings=settings)
        fetcher = GitHubTemplateFetcher(settings.catalog, settings=settings)

        if template:
            def select(entries: list[CatalogEntry]) -> CatalogEntry:
                return find_entry(entries, template)
        else:
            print_banner(console)
            select = prompter.select

        def fetched(tree: TemplateTree) -> None:
            console.print(
                f":inbox_tray: Fetched [green]{tree.entry.id}[/green] "
                f"({tree.file_count} files, {tree.total_bytes} bytes)"
            )

        hooks = PipelineHooks(
            catalog_loaded=lambda entries: console.print(f":inbox_tray: Fetched {len(entries)} template(s) from {settings.catalog}"),
            fetch_start=lambda entry: console.print(f":rocket: Fetching [green]{entry.id}[/green]..."),
            fetched=fetched,
            planned=lambda plan: writing_to.append(plan.destination),
        )

        result = run_pipeline(
            catalog=catalog_source,
            fetcher=fetcher,
            materializer=materializer,
            select=select,
            configure=_options_collector(
                prompter,
                dest=dest,
                name=name,
                init_git=git,
                clear_readme=clear_readme,
                assume_yes=yes,
                placeholder_token=settings.placeholder_token,
            ),
            hooks=hooks,
            git_init=init_repository,
        )
    except NoSelectionError as exc:
        console.print(f"[dim]{exc.message}. Nothing was written.[/dim]")
        raise typer.Exit(code=EXIT_OK)
    except SeedlingError as exc:
        print_error(_err_console, exc)
        raise typer.Exit(code=EXIT_ERROR)
    except ValueError as exc:
        _err_console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=EXIT_ERROR)
    except KeyboardInterrupt:
        if writing_to:
            _err_console.print(
                f"[yellow]Interrupted. Files may already have been written to {writing_to[0]}.[/yellow]"
            )
        else:
            _err_console.print("[yellow]Interrupted. Nothing was written.[/yellow]")
        raise typer.Exit(code=EXIT_INTERRUPTED)

    _print_result(console, result)


@app.command(name="list")
def list_templates(
    catalog: Annotated[Optional[str], typer.Option("--catalog", help="Catalog location github:<owner>/<repo>[@<ref>].")] = None,
) -> None:
    """Print the catalog without prompting."""

    try:
        settings = _load_settings(catalog)
        entries = GitHubCatalogSource(settings.catalog, settings=settings).list()
    except SeedlingError as exc:
        print_error(_err_console, exc)
        raise typer.Exit(code=EXIT_ERROR)
    _console.print(build_catalog_table(entries))


@config_app.command(name="set-catalog")
def set_catalog(location: Annotated[str, typer.Argument(help="github:<owner>/<repo>[@<ref>]")]) -> None:
    """Store the default catalog location in the user config .env."""

    try:
        parsed = parse_location(location)
    except SeedlingError as exc:
        raise typer.BadParameter(exc.message) from exc
    env_path = write_user_env_vars({"SEEDLING_CATALOG": str(parsed)})
    _console.print(f"[green]Saved catalog to:[/green] {env_path}")


def run() -> None:
    app()
