"""Materializer: writes a `TemplateTree` under a destination directory.

Rules:
- A `MaterializationPlan` is computed before the first write.
- Existing files are never overwritten unless the conflict policy says so.
- Writes happen in tree order; the first failure aborts the rest and the
  partial report travels inside `FilesystemError`. Nothing is rolled back or
  deleted: the destination belongs to the user.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import Callable

from core.domain.errors import FilesystemError
from core.domain.models import (
    ActionKind,
    ConflictPolicy,
    MaterializationPlan,
    MaterializationReport,
    PlannedAction,
    TemplateTree,
)

logger = logging.getLogger(__name__)

_EXEC_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


def _is_inside(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


class Materializer:
    """Plans and applies the writes of one template."""

    def __init__(
        self,
        policy: ConflictPolicy = ConflictPolicy.SKIP,
        *,
        confirm_overwrite: Callable[[str], bool] | None = None,
    ) -> None:
        if policy is ConflictPolicy.ASK and confirm_overwrite is None:
            raise ValueError("ConflictPolicy.ASK requires a confirm_overwrite callback")
        self.policy = policy
        self._confirm_overwrite = confirm_overwrite

    def plan(self, tree: TemplateTree, destination: Path) -> MaterializationPlan:
        root = Path(destination).expanduser().resolve()
        if root.exists() and not root.is_dir():
            raise FilesystemError(
                f"Destination {root} exists and is not a directory",
                report=MaterializationReport(destination=root),
                path=str(root),
            )

        actions = [self._plan_one(root, relative) for relative in tree.paths]
        return MaterializationPlan(destination=root, actions=actions)

    def _plan_one(self, root: Path, relative: str) -> PlannedAction:
        target = root.joinpath(*relative.split("/"))

        def action(kind: ActionKind, reason: str = "") -> PlannedAction:
            return PlannedAction(
                relative_path=relative,
                target_path=target,
                action=kind,
                reason=reason,
            )

        # Symlinked directories inside the destination must not redirect writes.
        if not _is_inside(target.resolve(), root):
            return action(ActionKind.SKIP, "outside destination")

        for parent in target.relative_to(root).parents:
            if str(parent) == ".":
                continue
            candidate = root / parent
            if candidate.exists() and not candidate.is_dir():
                return action(ActionKind.SKIP, f"'{parent.as_posix()}' is not a directory")

        if target.is_dir():
            return action(ActionKind.SKIP, "a directory exists at this path")
        if not (target.exists() or target.is_symlink()):
            return action(ActionKind.CREATE)

        if self.policy is ConflictPolicy.OVERWRITE:
            return action(ActionKind.OVERWRITE, "exists")
        if self.policy is ConflictPolicy.ASK:
            assert self._confirm_overwrite is not None
            if self._confirm_overwrite(relative):
                return action(ActionKind.OVERWRITE, "exists (confirmed)")
            return action(ActionKind.SKIP, "exists (declined)")
        return action(ActionKind.SKIP, "exists")

    def apply(
        self,
        tree: TemplateTree,
        destination: Path,
        *,
        plan: MaterializationPlan | None = None,
    ) -> MaterializationReport:
        plan = plan or self.plan(tree, destination)
        report = MaterializationReport(destination=plan.destination)

        for index, planned in enumerate(plan.actions):
            if planned.action is ActionKind.SKIP:
                report.skipped.append(planned.relative_path)
                report.skip_reasons[planned.relative_path] = planned.reason
                logger.debug("skip %s (%s)", planned.relative_path, planned.reason)
                continue

            item = tree.files[planned.relative_path]
            try:
                written = self._write(planned, item.content, item.executable)
            except KeyboardInterrupt as exc:
                report.failed.append(planned.relative_path)
                self._abort(report, plan.actions[index + 1 :])
                raise FilesystemError(
                    "Interrupted during materialization",
                    report=report,
                    path=planned.relative_path,
                ) from exc
            except OSError as exc:
                report.failed.append(planned.relative_path)
                self._abort(report, plan.actions[index + 1 :])
                raise FilesystemError(
                    f"Could not write {planned.target_path}: {exc.strerror or exc}",
                    report=report,
                    path=planned.relative_path,
                ) from exc

            if not written:
                report.skipped.append(planned.relative_path)
                report.skip_reasons[planned.relative_path] = "appeared after planning"
            elif planned.action is ActionKind.OVERWRITE:
                report.overwritten.append(planned.relative_path)
            else:
                report.created.append(planned.relative_path)
            logger.debug("%s %s", planned.action.value, planned.relative_path)

        logger.info("Materialized into %s: %s", plan.destination, report.counts())
        return report

    @staticmethod
    def _abort(report: MaterializationReport, remaining: list[PlannedAction]) -> None:
        for planned in remaining:
            if planned.action is ActionKind.SKIP:
                report.skipped.append(planned.relative_path)
                report.skip_reasons[planned.relative_path] = planned.reason
            else:
                report.not_attempted.append(planned.relative_path)

    @staticmethod
    def _write(planned: PlannedAction, content: bytes, executable: bool) -> bool:
        """Write one file; False when a Create target appeared since planning."""

        target = planned.target_path
        target.parent.mkdir(parents=True, exist_ok=True)
        mode = "wb" if planned.action is ActionKind.OVERWRITE else "xb"
        try:
            with open(target, mode) as fh:
                fh.write(content)
        except FileExistsError:
            return False
        current = target.stat().st_mode
        if executable:
            os.chmod(target, current | _EXEC_BITS)
        elif current & _EXEC_BITS:
            # An overwritten file takes the template's mode.
            os.chmod(target, current & ~_EXEC_BITS)
        return True
