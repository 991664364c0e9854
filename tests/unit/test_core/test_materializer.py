"""
test_materializer.py - plan and apply

- empty destination: every action is Create
- existing file: Skip by default, content untouched
- overwrite / ask policies
- a failing write aborts the rest and carries a partial report
"""

import os
import stat
from pathlib import Path

import pytest

from core.domain.errors import FilesystemError
from core.domain.models import ActionKind, ConflictPolicy
from core.services.materializer import Materializer


class TestPlan:
    def test_empty_destination_creates_everything(self, make_tree, empty_dest: Path):
        tree = make_tree({"a.txt": "hi", "src/b.py": "print()"})

        plan = Materializer().plan(tree, empty_dest)

        assert [a.action for a in plan.actions] == [ActionKind.CREATE, ActionKind.CREATE]
        assert [a.relative_path for a in plan.actions] == ["a.txt", "src/b.py"]

    def test_missing_destination_creates_everything(self, make_tree, tmp_path: Path):
        plan = Materializer().plan(make_tree({"a.txt": "hi"}), tmp_path / "new-project")

        assert plan.actions[0].action is ActionKind.CREATE

    def test_plan_does_not_touch_disk(self, make_tree, tmp_path: Path):
        dest = tmp_path / "new-project"

        Materializer().plan(make_tree({"a/b.txt": "hi"}), dest)

        assert not dest.exists()

    def test_existing_file_is_skipped(self, make_tree, empty_dest: Path):
        (empty_dest / "a.txt").write_text("mine")

        plan = Materializer().plan(make_tree({"a.txt": "hi"}), empty_dest)

        assert plan.actions[0].action is ActionKind.SKIP
        assert plan.actions[0].reason == "exists"

    def test_parent_that_is_a_file_is_skipped(self, make_tree, empty_dest: Path):
        (empty_dest / "src").write_text("not a dir")

        plan = Materializer().plan(make_tree({"src/main.py": "x"}), empty_dest)

        assert plan.actions[0].action is ActionKind.SKIP
        assert "not a directory" in plan.actions[0].reason

    def test_directory_at_target_is_skipped(self, make_tree, empty_dest: Path):
        (empty_dest / "docs").mkdir()

        plan = Materializer().plan(make_tree({"docs": "x"}), empty_dest)

        assert plan.actions[0].action is ActionKind.SKIP

    @pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
    def test_symlinked_directory_cannot_redirect_writes(self, make_tree, tmp_path: Path, empty_dest: Path):
        outside = tmp_path / "outside"
        outside.mkdir()
        (empty_dest / "link").symlink_to(outside, target_is_directory=True)

        plan = Materializer().plan(make_tree({"link/evil.txt": "x"}), empty_dest)

        assert plan.actions[0].action is ActionKind.SKIP
        assert plan.actions[0].reason == "outside destination"

    def test_destination_that_is_a_file_fails(self, make_tree, tmp_path: Path):
        target = tmp_path / "file"
        target.write_text("x")

        with pytest.raises(FilesystemError):
            Materializer().plan(make_tree({"a.txt": "hi"}), target)

    def test_ask_policy_requires_callback(self):
        with pytest.raises(ValueError):
            Materializer(ConflictPolicy.ASK)


class TestApply:
    def test_single_file_into_empty_destination(self, make_tree, empty_dest: Path):
        report = Materializer().apply(make_tree({"a.txt": "hi"}), empty_dest)

        assert (empty_dest / "a.txt").read_text() == "hi"
        assert [p.name for p in empty_dest.iterdir()] == ["a.txt"]
        assert report.created_count == 1
        assert report.skipped_count == 0

    def test_existing_file_is_left_unchanged(self, make_tree, empty_dest: Path):
        (empty_dest / "a.txt").write_text("mine")

        report = Materializer().apply(make_tree({"a.txt": "hi"}), empty_dest)

        assert (empty_dest / "a.txt").read_text() == "mine"
        assert report.created_count == 0
        assert report.skipped_count == 1
        assert report.skipped == ["a.txt"]
        assert report.skip_reasons["a.txt"] == "exists"

    def test_creates_nested_directories(self, make_tree, tmp_path: Path):
        dest = tmp_path / "project"

        Materializer().apply(make_tree({"src/pkg/__init__.py": ""}), dest)

        assert (dest / "src" / "pkg" / "__init__.py").is_file()

    def test_binary_content_is_written_verbatim(self, make_tree, empty_dest: Path):
        payload = bytes(range(256))

        Materializer().apply(make_tree({"logo.png": payload}), empty_dest)

        assert (empty_dest / "logo.png").read_bytes() == payload

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_executable_flag(self, make_tree, empty_dest: Path):
        tree = make_tree({"run.sh": "#!/bin/sh\n", "a.txt": "x"}, executable={"run.sh"})

        Materializer().apply(tree, empty_dest)

        assert (empty_dest / "run.sh").stat().st_mode & stat.S_IXUSR
        assert not (empty_dest / "a.txt").stat().st_mode & stat.S_IXUSR

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_overwrite_drops_stale_executable_bits(self, make_tree, empty_dest: Path):
        target = empty_dest / "a.txt"
        target.write_text("mine")
        target.chmod(0o755)

        Materializer(ConflictPolicy.OVERWRITE).apply(make_tree({"a.txt": "hi"}), empty_dest)

        assert target.read_text() == "hi"
        assert not target.stat().st_mode & (stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    def test_overwrite_policy(self, make_tree, empty_dest: Path):
        (empty_dest / "a.txt").write_text("mine")

        report = Materializer(ConflictPolicy.OVERWRITE).apply(make_tree({"a.txt": "hi"}), empty_dest)

        assert (empty_dest / "a.txt").read_text() == "hi"
        assert report.overwritten == ["a.txt"]

    def test_ask_policy_uses_callback_per_file(self, make_tree, empty_dest: Path):
        (empty_dest / "a.txt").write_text("mine")
        (empty_dest / "b.txt").write_text("mine")
        asked: list[str] = []

        def confirm(path: str) -> bool:
            asked.append(path)
            return path == "b.txt"

        report = Materializer(ConflictPolicy.ASK, confirm_overwrite=confirm).apply(
            make_tree({"a.txt": "hi", "b.txt": "hi", "c.txt": "hi"}), empty_dest
        )

        assert asked == ["a.txt", "b.txt"]
        assert (empty_dest / "a.txt").read_text() == "mine"
        assert (empty_dest / "b.txt").read_text() == "hi"
        assert report.counts() == {"created": 1, "overwritten": 1, "skipped": 1, "failed": 0}

    def test_file_appearing_after_planning_is_not_overwritten(self, make_tree, empty_dest: Path):
        materializer = Materializer()
        tree = make_tree({"a.txt": "hi"})
        plan = materializer.plan(tree, empty_dest)
        (empty_dest / "a.txt").write_text("raced")

        report = materializer.apply(tree, empty_dest, plan=plan)

        assert (empty_dest / "a.txt").read_text() == "raced"
        assert report.skipped == ["a.txt"]

    def test_write_failure_aborts_and_reports(self, make_tree, empty_dest: Path, monkeypatch):
        tree = make_tree({"a.txt": "1", "b.txt": "2", "c.txt": "3"})
        (empty_dest / "c.txt").write_text("mine")
        real_write = Materializer._write

        def flaky_write(planned, content, executable):
            if planned.relative_path == "b.txt":
                raise OSError(28, "No space left on device")
            return real_write(planned, content, executable)

        monkeypatch.setattr(Materializer, "_write", staticmethod(flaky_write))

        with pytest.raises(FilesystemError) as exc_info:
            Materializer().apply(tree, empty_dest)

        report = exc_info.value.report
        assert report.created == ["a.txt"]
        assert report.failed == ["b.txt"]
        assert report.skipped == ["c.txt"]
        assert not report.complete
        assert exc_info.value.path == "b.txt"
        # Already written files stay: no rollback.
        assert (empty_dest / "a.txt").read_text() == "1"

    def test_remaining_files_are_not_attempted(self, make_tree, empty_dest: Path, monkeypatch):
        tree = make_tree({"a.txt": "1", "b.txt": "2"})

        def failing_write(planned, content, executable):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(Materializer, "_write", staticmethod(failing_write))

        with pytest.raises(FilesystemError) as exc_info:
            Materializer().apply(tree, empty_dest)

        assert exc_info.value.report.failed == ["a.txt"]
        assert exc_info.value.report.not_attempted == ["b.txt"]
        assert not (empty_dest / "b.txt").exists()

    def test_interrupt_produces_partial_report(self, make_tree, empty_dest: Path, monkeypatch):
        tree = make_tree({"a.txt": "1", "b.txt": "2"})
        real_write = Materializer._write

        def interrupted(planned, content, executable):
            if planned.relative_path == "b.txt":
                raise KeyboardInterrupt
            return real_write(planned, content, executable)

        monkeypatch.setattr(Materializer, "_write", staticmethod(interrupted))

        with pytest.raises(FilesystemError) as exc_info:
            Materializer().apply(tree, empty_dest)

        assert exc_info.value.report.created == ["a.txt"]
        assert exc_info.value.report.failed == ["b.txt"]
