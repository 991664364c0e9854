"""Project-name placeholder substitution.

Templates spell the project name as a token (default `project_name`) in file
contents and in file or directory names. The token is replaced before the
materialization plan is built, so conflict detection sees the final paths.
"""

from __future__ import annotations

from core.domain.errors import UnsafePathError
from core.domain.models import TemplateFile, TemplateTree
from core.domain.paths import normalize_relative_path

_FORBIDDEN_NAME_CHARS = ("/", "\\", "\x00", ":")


def validate_project_name(name: str) -> str:
    """Return the stripped name or raise `ValueError` when it cannot be a directory name."""

    clean = (name or "").strip()
    if not clean:
        raise ValueError("project name cannot be empty")
    if clean in (".", ".."):
        raise ValueError("project name cannot be '.' or '..'")
    if any(ch in clean for ch in _FORBIDDEN_NAME_CHARS):
        raise ValueError("project name cannot contain path separators or ':'")
    return clean


def _substitute_content(content: bytes, token: str, value: str) -> bytes:
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError:
        # Binary file.
        return content
    if token not in text:
        return content
    return text.replace(token, value).encode("utf-8")


def substitute_placeholders(tree: TemplateTree, token: str, value: str) -> TemplateTree:
    """Return a copy of `tree` with `token` replaced by `value`.

    An empty token or value returns the tree unchanged. Rewritten paths go
    through the same validation as remote paths; a collision raises
    `UnsafePathError`.
    """

    if not token or not value:
        return tree
    value = validate_project_name(value)

    files: list[TemplateFile] = []
    seen: set[str] = set()
    for path, item in tree.files.items():
        try:
            new_path = normalize_relative_path(path.replace(token, value))
        except ValueError as exc:
            raise UnsafePathError(
                f"Renaming '{path}' gives an unusable path: {exc}",
                entry_id=tree.entry.id,
                source_path=tree.entry.source_path,
                path=path,
            ) from exc
        if new_path in seen:
            raise UnsafePathError(
                f"Renaming '{path}' collides with another file of the template",
                entry_id=tree.entry.id,
                source_path=tree.entry.source_path,
                path=new_path,
            )
        seen.add(new_path)
        files.append(
            TemplateFile(
                path=new_path,
                content=_substitute_content(item.content, token, value),
                executable=item.executable,
            )
        )

    try:
        return TemplateTree.from_files(tree.entry, files)
    except ValueError as exc:
        raise UnsafePathError(
            f"Renamed template has conflicting paths: {exc}",
            entry_id=tree.entry.id,
            source_path=tree.entry.source_path,
            path=tree.entry.source_path,
        ) from exc
