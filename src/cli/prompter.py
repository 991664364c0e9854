"""Interactive prompts (line-oriented, synchronous).

Why a class over `typer.prompt`:
- Selection must re-prompt on bad input and treat empty input / EOF / Ctrl-C
  as an explicit abort (`NoSelectionError`), which `typer.prompt` does not do.
- Input and output are injectable (`stdin`, `Console`), so tests feed lines
  through `io.StringIO` instead of a terminal.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from rich.console import Console
from rich.markup import escape

from cli.ui_components import build_catalog_table
from core.domain.errors import NoSelectionError
from core.domain.models import CatalogEntry
from core.services.placeholders import validate_project_name

_YES = {"y", "yes", "true"}
_NO = {"n", "no", "false"}


@dataclass
class SelectionState:
    """Lives only while `select` runs."""

    entries: list[CatalogEntry]
    last_input: str | None = None
    choice: CatalogEntry | None = None

    def resolve(self, raw: str) -> CatalogEntry | None:
        text = raw.strip()
        self.last_input = text
        if text.isdigit():
            try:
                index = int(text)
            except ValueError:
                # Unicode digits or an over-long number.
                return None
            if 1 <= index <= len(self.entries):
                self.choice = self.entries[index - 1]
            return self.choice
        wanted = text.lower()
        for entry in self.entries:
            if entry.id.lower() == wanted:
                self.choice = entry
                break
        return self.choice


class Prompter:
    """Presents the catalog and collects the user's choices."""

    def __init__(self, console: Console | None = None, stdin: TextIO | None = None) -> None:
        self.console = console or Console()
        self._stdin = stdin

    def _read(self, prompt: str) -> str | None:
        """Read one line; None on EOF or Ctrl-C."""

        self.console.print(prompt, end="")
        stream = self._stdin or sys.stdin
        try:
            line = stream.readline()
        except KeyboardInterrupt:
            self.console.print()
            return None
        if line == "":
            return None
        return line.rstrip("\r\n")

    def select(self, entries: list[CatalogEntry]) -> CatalogEntry:
        """Return one entry; re-prompts on invalid input, aborts on empty input."""

        if not entries:
            raise NoSelectionError("There is nothing to select")

        state = SelectionState(entries=list(entries))
        self.console.print(":package: What [green]template[/green] do you want to use?")
        self.console.print(build_catalog_table(state.entries))

        while state.choice is None:
            raw = self._read(":point_up: Pick a number or enter the template id (empty to abort): ")
            if raw is None or not raw.strip():
                raise NoSelectionError("No template selected")
            if state.resolve(raw) is None:
                shown = state.last_input or ""
                if len(shown) > 30:
                    shown = shown[:27] + "..."
                self.console.print(
                    f"[yellow]'{escape(shown)}' is not a number between 1 and "
                    f"{len(state.entries)} nor a template id. Try again.[/yellow]"
                )

        self.console.print(f"You selected: [green]{state.choice.display_name}[/green]")
        return state.choice

    def confirm_destination(self, default: Path) -> Path:
        """Return the destination; relative input resolves against cwd."""

        raw = self._read(f":file_folder: Destination directory [dim]({default})[/dim]: ")
        if raw is None:
            raise NoSelectionError("Destination not confirmed")
        text = raw.strip()
        if not text:
            return default
        path = Path(text).expanduser()
        if not path.is_absolute():
            path = Path.cwd() / path
        return path

    def ask_new_or_init(self) -> bool:
        """True for a new project directory, False to initialize in place."""

        while True:
            raw = self._read(
                ":thinking_face: Create a [green]new[/green] project or "
                "[green]init[/green]ialize one in this folder? [dim](new/init)[/dim]: "
            )
            if raw is None:
                raise NoSelectionError("Aborted")
            answer = raw.strip().lower()
            if answer in ("new", "n"):
                return True
            if answer in ("init", "i"):
                return False
            self.console.print("[yellow]Enter 'new' to create a new project; 'init' to initialize one in this folder.[/yellow]")

    def ask_project_name(self, default: str) -> str:
        while True:
            raw = self._read(f":memo: Project name [dim]({default})[/dim]: ")
            if raw is None:
                raise NoSelectionError("Aborted")
            try:
                return validate_project_name(raw.strip() or default)
            except ValueError as exc:
                self.console.print(f"[yellow]{exc}. Try again.[/yellow]")

    def ask_yes_no(self, question: str, *, default: bool) -> bool:
        hint = "Y/n" if default else "y/N"
        while True:
            raw = self._read(f"{question} [dim]({hint})[/dim]: ")
            if raw is None:
                raise NoSelectionError("Aborted")
            answer = raw.strip().lower()
            if not answer:
                return default
            if answer in _YES:
                return True
            if answer in _NO:
                return False
            self.console.print("[yellow]Enter 'y' or 'n'.[/yellow]")

    def confirm_overwrite(self, relative_path: str) -> bool:
        """Per-file callback for the `ask` conflict policy; EOF means no."""

        raw = self._read(f"[yellow]{relative_path}[/yellow] already exists. Overwrite? [dim](y/N)[/dim]: ")
        return raw is not None and raw.strip().lower() in _YES
