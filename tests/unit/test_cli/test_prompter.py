"""
test_prompter.py - interactive selection

- catalog order is shown as-is
- invalid input re-prompts; empty input / EOF abort with NoSelectionError
"""

import io
from pathlib import Path

import pytest
from rich.console import Console

from cli.prompter import Prompter
from core.domain.errors import NoSelectionError
from core.domain.models import CatalogEntry

ENTRIES = [
    CatalogEntry(id="rust", display_name="Rust", description="Rust with crane", source_path="rust"),
    CatalogEntry(id="python", display_name="Python", description="Python with uv", source_path="python"),
]


def _prompter(lines: str) -> tuple[Prompter, io.StringIO]:
    out = io.StringIO()
    console = Console(file=out, width=120, color_system=None)
    return Prompter(console=console, stdin=io.StringIO(lines)), out


class TestSelect:
    def test_select_by_index(self):
        prompter, _ = _prompter("2\n")

        assert prompter.select(ENTRIES).id == "python"

    def test_select_by_id(self):
        prompter, _ = _prompter("RUST\n")

        assert prompter.select(ENTRIES).id == "rust"

    def test_listing_follows_catalog_order(self):
        prompter, out = _prompter("1\n")

        prompter.select(ENTRIES)

        text = out.getvalue()
        assert text.index("Rust with crane") < text.index("Python with uv")

    @pytest.mark.parametrize("bad", ["0", "3", "99", "-1", "abc", "\u00b2", "9" * 5000])
    def test_invalid_input_reprompts(self, bad):
        prompter, out = _prompter(f"{bad}\n1\n")

        assert prompter.select(ENTRIES).id == "rust"
        assert "Try again" in out.getvalue()

    def test_empty_input_aborts(self):
        prompter, _ = _prompter("\n")

        with pytest.raises(NoSelectionError):
            prompter.select(ENTRIES)

    def test_eof_aborts(self):
        prompter, _ = _prompter("")

        with pytest.raises(NoSelectionError):
            prompter.select(ENTRIES)

    def test_nothing_to_select(self):
        prompter, _ = _prompter("1\n")

        with pytest.raises(NoSelectionError):
            prompter.select([])


class TestConfirmDestination:
    def test_default_on_empty_input(self, tmp_path: Path):
        prompter, _ = _prompter("\n")

        assert prompter.confirm_destination(tmp_path) == tmp_path

    def test_relative_path_resolves_against_cwd(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        prompter, _ = _prompter("my-app\n")

        assert prompter.confirm_destination(Path("/unused")) == tmp_path / "my-app"

    def test_absolute_path(self, tmp_path: Path):
        prompter, _ = _prompter(f"{tmp_path / 'x'}\n")

        assert prompter.confirm_destination(Path("/unused")) == tmp_path / "x"

    def test_eof_aborts(self, tmp_path: Path):
        prompter, _ = _prompter("")

        with pytest.raises(NoSelectionError):
            prompter.confirm_destination(tmp_path)


class TestOtherQuestions:
    def test_new_or_init(self):
        prompter, _ = _prompter("maybe\ninit\n")

        assert prompter.ask_new_or_init() is False

    def test_project_name_default_and_validation(self):
        prompter, out = _prompter("a/b\n\n")

        assert prompter.ask_project_name("demo") == "demo"
        assert "path separators" in out.getvalue()

    def test_project_name_with_colon_reprompts(self):
        prompter, out = _prompter("c:demo\nplain\n")

        assert prompter.ask_project_name("demo") == "plain"
        assert "Try again" in out.getvalue()

    @pytest.mark.parametrize(("answer", "expected"), [("y\n", True), ("no\n", False), ("\n", True)])
    def test_yes_no(self, answer, expected):
        prompter, _ = _prompter(answer)

        assert prompter.ask_yes_no("Continue?", default=True) is expected

    def test_confirm_overwrite_defaults_to_no(self):
        prompter, _ = _prompter("")

        assert prompter.confirm_overwrite("a.txt") is False
