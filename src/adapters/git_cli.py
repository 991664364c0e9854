"""`git init` for freshly materialized projects.

The pipeline treats this as a best-effort follow-up: the outcome is returned as
`(ok, detail)` and shown in the summary; it never fails a run whose files were
written.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


def init_repository(destination: Path, *, timeout_seconds: float = 30.0) -> tuple[bool, str]:
    """Run `git init <destination>`; skipped when `.git` already exists."""

    if (destination / ".git").exists():
        return True, "already a Git repository"

    git = shutil.which("git")
    if git is None:
        return False, "git executable not found on PATH"

    try:
        completed = subprocess.run(
            [git, "init", str(destination)],
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.warning("git init failed in %s: %s", destination, exc)
        return False, str(exc)

    if completed.returncode != 0:
        detail = (completed.stderr or completed.stdout).strip() or f"exit code {completed.returncode}"
        logger.warning("git init failed in %s: %s", destination, detail)
        return False, detail
    return True, "initialized"
