"""Domain models (Pydantic v2).

Why Pydantic in the domain:
- Strict validation at the edge: a catalog entry or a remote path that breaks
  an invariant fails when the model is built, not when a file is written.
- Self-documenting fields (`Field(description=...)`) without coupling the Core
  to HTTP or terminal libraries.

Note:
- These models describe *what* flows through the pipeline, not *how* it is
  retrieved or written.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.config import ConfigDict

from core.domain.paths import normalize_relative_path, parent_dirs


class CatalogEntry(BaseModel):
    """One template advertised by the catalog."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Stable identifier, unique within a listing.",
    )
    display_name: str = Field(
        ...,
        min_length=1,
        description="Human readable name shown in the prompt.",
    )
    description: str = Field(
        default="",
        description="Short description shown next to the name.",
    )
    source_path: str = Field(
        ...,
        min_length=1,
        description="Directory of the template inside the catalog repository.",
    )


_OWNER_REPO = re.compile(r"^[A-Za-z0-9_.-]+$")


class CatalogLocation(BaseModel):
    """A repository coordinate plus revision: `github:<owner>/<repo>[@<ref>]`."""

    model_config = ConfigDict(frozen=True)

    owner: str
    repo: str
    ref: str = "HEAD"

    @classmethod
    def parse(cls, value: str) -> "CatalogLocation":
        """Parse a location string; raises `ValueError` when malformed."""

        text = (value or "").strip()
        if text.startswith("github:"):
            text = text[len("github:") :]
        ref = "HEAD"
        if "@" in text:
            text, ref = text.rsplit("@", 1)
            if not ref:
                raise ValueError("empty revision after '@'")
        pieces = text.strip("/").split("/")
        if len(pieces) != 2 or not all(_OWNER_REPO.match(p) for p in pieces):
            raise ValueError(f"expected 'github:<owner>/<repo>[@<ref>]', got {value!r}")
        if any(p in (".", "..") for p in pieces):
            raise ValueError(f"invalid owner or repository name in {value!r}")
        return cls(owner=pieces[0], repo=pieces[1], ref=ref)

    def __str__(self) -> str:
        return f"github:{self.owner}/{self.repo}@{self.ref}"


class FetchLimits(BaseModel):
    """Bounds applied to a single template retrieval."""

    model_config = ConfigDict(frozen=True)

    max_total_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    max_files: int = Field(default=1000, gt=0)


class TemplateFile(BaseModel):
    """A single file of a template: relative path, raw bytes, mode flag."""

    model_config = ConfigDict(frozen=True)

    path: str
    content: bytes
    executable: bool = False

    @field_validator("path")
    @classmethod
    def _normalized(cls, value: str) -> str:
        clean = normalize_relative_path(value)
        if clean != value:
            raise ValueError(f"path is not normalized: {value!r}")
        return value

    @property
    def size(self) -> int:
        return len(self.content)


class TemplateTree(BaseModel):
    """Ordered mapping `relative path -> TemplateFile` for one template.

    Invariants (checked on construction):
    - every key equals its file's normalized path;
    - no path is used both as a file and as a directory of another file.
    """

    model_config = ConfigDict(frozen=True)

    entry: CatalogEntry
    files: dict[str, TemplateFile] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _consistent(self) -> "TemplateTree":
        for key, item in self.files.items():
            if key != item.path:
                raise ValueError(f"key {key!r} does not match file path {item.path!r}")
        for key in self.files:
            for directory in parent_dirs(key):
                if directory in self.files:
                    raise ValueError(f"{directory!r} is both a file and a directory")
        return self

    @classmethod
    def from_files(cls, entry: CatalogEntry, files: Iterable[TemplateFile]) -> "TemplateTree":
        """Build a tree keeping the iteration order; duplicates raise `ValueError`."""

        mapping: dict[str, TemplateFile] = {}
        for item in files:
            if item.path in mapping:
                raise ValueError(f"duplicate path {item.path!r}")
            mapping[item.path] = item
        return cls(entry=entry, files=mapping)

    @property
    def paths(self) -> list[str]:
        return list(self.files)

    @property
    def file_count(self) -> int:
        return len(self.files)

    @property
    def total_bytes(self) -> int:
        return sum(f.size for f in self.files.values())


class ConflictPolicy(str, Enum):
    """What to do when a target file already exists."""

    SKIP = "skip"
    OVERWRITE = "overwrite"
    ASK = "ask"


class ActionKind(str, Enum):
    CREATE = "create"
    OVERWRITE = "overwrite"
    SKIP = "skip"


class PlannedAction(BaseModel):
    """One line of a `MaterializationPlan`."""

    relative_path: str
    target_path: Path
    action: ActionKind
    reason: str = ""


class MaterializationPlan(BaseModel):
    """Everything the materializer will do, computed before touching disk."""

    destination: Path
    actions: list[PlannedAction] = Field(default_factory=list)


class MaterializationReport(BaseModel):
    """Outcome of `Materializer.apply` (complete or partial)."""

    destination: Path
    created: list[str] = Field(default_factory=list)
    overwritten: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    skip_reasons: dict[str, str] = Field(default_factory=dict)
    failed: list[str] = Field(default_factory=list)
    not_attempted: list[str] = Field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.created)

    @property
    def overwritten_count(self) -> int:
        return len(self.overwritten)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def complete(self) -> bool:
        return not self.failed and not self.not_attempted

    def counts(self) -> dict[str, int]:
        return {
            "created": self.created_count,
            "overwritten": self.overwritten_count,
            "skipped": self.skipped_count,
            "failed": len(self.failed),
        }
