"""Validation of relative template paths.

Every path that arrives from the remote catalog is untrusted. These helpers are
the single place that decides whether a path may be written under a
destination directory.
"""

from __future__ import annotations

from pathlib import PurePosixPath

_WINDOWS_DRIVE_CHARS = ":"


def normalize_relative_path(raw: str) -> str:
    """Return `raw` as a clean `a/b/c` path or raise `ValueError`.

    Rejected: empty paths, absolute paths, drive letters, backslashes, NUL
    bytes and any `..` segment. `.` and empty segments (`a//b`, `./a`) are
    collapsed, so two spellings of one path normalize to the same key.
    """

    if not isinstance(raw, str) or not raw.strip():
        raise ValueError("empty path")
    if "\x00" in raw:
        raise ValueError("path contains a NUL byte")
    if "\\" in raw:
        raise ValueError("path contains a backslash")
    if raw.startswith("/"):
        raise ValueError("absolute path")

    parts: list[str] = []
    for segment in raw.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            raise ValueError("path escapes its root ('..' segment)")
        if _WINDOWS_DRIVE_CHARS in segment and len(parts) == 0:
            raise ValueError("path carries a drive or scheme prefix")
        parts.append(segment)

    if not parts:
        raise ValueError("empty path")
    return "/".join(parts)


def strip_prefix(path: str, prefix: str) -> str | None:
    """Return `path` relative to `prefix`, or None when it lies outside it.

    Both arguments must already be normalized.
    """

    p = PurePosixPath(path)
    try:
        rel = p.relative_to(PurePosixPath(prefix))
    except ValueError:
        return None
    text = rel.as_posix()
    if text in ("", "."):
        return None
    return text


def parent_dirs(path: str) -> list[str]:
    """All ancestor directories of a normalized path, shallowest first."""

    parts = path.split("/")[:-1]
    return ["/".join(parts[: i + 1]) for i in range(len(parts))]
