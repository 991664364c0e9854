"""Run orchestration: catalog -> selection -> fetch -> materialize.

This module sequences the pipeline once. The CLI supplies the interactive
pieces (`select`, `configure`) and prints the result; the helpers here stay free
of terminal I/O so the whole run is testable with in-memory sources.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from adapters.git_cli import init_repository
from core.domain.errors import CatalogFormatError
from core.domain.models import (
    CatalogEntry,
    MaterializationPlan,
    MaterializationReport,
    TemplateTree,
)
from core.interfaces.catalog import CatalogProvider, TemplateProvider
from core.services.materializer import Materializer
from core.services.placeholders import substitute_placeholders

logger = logging.getLogger(__name__)

README_NAME = "README.md"


@dataclass
class RunOptions:
    """Choices collected after a template is selected."""

    destination: Path
    project_name: str = ""
    placeholder_token: str = "project_name"
    init_git: bool = False
    clear_readme: bool = False


@dataclass
class PipelineHooks:
    """Optional callbacks for UI layers (progress, previews)."""

    catalog_loaded: Callable[[list[CatalogEntry]], None] | None = None
    fetch_start: Callable[[CatalogEntry], None] | None = None
    fetched: Callable[[TemplateTree], None] | None = None
    planned: Callable[[MaterializationPlan], None] | None = None


@dataclass
class PipelineResult:
    """Output of one pipeline invocation."""

    entry: CatalogEntry
    options: RunOptions
    report: MaterializationReport
    git_initialized: bool = False
    readme_cleared: bool = False
    warnings: list[str] = field(default_factory=list)


def readme_stub(project_name: str) -> str:
    return f"# {project_name}\n\nLorem ipsum dolor sit amet\n"


def clear_readme(report: MaterializationReport, project_name: str) -> bool:
    """Replace README.md with a stub, only when this run created it."""

    if README_NAME not in report.created:
        return False
    title = project_name or report.destination.name
    (report.destination / README_NAME).write_text(readme_stub(title), encoding="utf-8")
    return True


def find_entry(entries: list[CatalogEntry], template_id: str) -> CatalogEntry:
    """Look up an entry by id (case-insensitive), for non-interactive runs."""

    wanted = template_id.strip().lower()
    for entry in entries:
        if entry.id.lower() == wanted:
            return entry
    raise CatalogFormatError(f"Template '{template_id}' is not in the catalog", entry_id=template_id)


def run_pipeline(
    *,
    catalog: CatalogProvider,
    fetcher: TemplateProvider,
    materializer: Materializer,
    select: Callable[[list[CatalogEntry]], CatalogEntry],
    configure: Callable[[CatalogEntry], RunOptions],
    hooks: PipelineHooks | None = None,
    git_init: Callable[[Path], tuple[bool, str]] = init_repository,
) -> PipelineResult:
    """Run the pipeline once; every `SeedlingError` propagates to the caller.

    The destination is not touched before `materializer.apply`, so a failure or
    an interrupt in listing, prompting or fetching leaves it as it was.
    """

    hooks = hooks or PipelineHooks()

    entries = catalog.list()
    if hooks.catalog_loaded:
        hooks.catalog_loaded(entries)
    if not entries:
        raise CatalogFormatError("The catalog lists no templates")

    entry = select(entries)
    options = configure(entry)

    if hooks.fetch_start:
        hooks.fetch_start(entry)
    tree = fetcher.fetch(entry)
    if hooks.fetched:
        hooks.fetched(tree)

    tree = substitute_placeholders(tree, options.placeholder_token, options.project_name)

    plan = materializer.plan(tree, options.destination)
    if hooks.planned:
        hooks.planned(plan)
    report = materializer.apply(tree, options.destination, plan=plan)

    result = PipelineResult(entry=entry, options=options, report=report)

    if options.clear_readme:
        try:
            result.readme_cleared = clear_readme(report, options.project_name)
        except OSError as exc:
            result.warnings.append(f"Could not clear README.md: {exc}")
        else:
            if not result.readme_cleared:
                result.warnings.append("README.md was not created by this run; left untouched")

    if options.init_git:
        ok, detail = git_init(report.destination)
        result.git_initialized = ok
        if not ok:
            result.warnings.append(f"git init failed: {detail}")

    return result
