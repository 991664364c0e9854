"""Domain errors.

Why here:
- Every component (adapters, services, CLI) raises and catches the same
  hierarchy, so the CLI can map any failure to a message and an exit code.
- Errors carry the context the user needs to act (location, entry id, path).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.domain.models import MaterializationReport


class SeedlingError(Exception):
    """Base class for every error that terminates a run."""

    hint: str | None = None

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if hint is not None:
            self.hint = hint

    def context(self) -> dict[str, str]:
        """Key/value pairs rendered below the message."""

        return {}


class NetworkError(SeedlingError):
    """Remote unreachable, timed out, or answered with an unusable status."""

    hint = "Check your connection or the configured catalog location."

    def __init__(self, message: str, *, location: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.location = location
        self.status_code = status_code

    def context(self) -> dict[str, str]:
        out = {"location": self.location}
        if self.status_code is not None:
            out["status"] = str(self.status_code)
        return out


class CatalogFormatError(SeedlingError):
    """The catalog listing (or the catalog location string) is malformed."""

    def __init__(self, message: str, *, entry_id: str | None = None) -> None:
        super().__init__(message)
        self.entry_id = entry_id

    def context(self) -> dict[str, str]:
        return {"entry": self.entry_id} if self.entry_id else {}


class TemplateNotFoundError(SeedlingError):
    """The selected template is not present in the remote source."""

    hint = "The catalog may have changed since it was listed; run again."

    def __init__(self, message: str, *, entry_id: str, source_path: str) -> None:
        super().__init__(message)
        self.entry_id = entry_id
        self.source_path = source_path

    def context(self) -> dict[str, str]:
        return {"entry": self.entry_id, "source_path": self.source_path}


class UnsafePathError(TemplateNotFoundError):
    """A remote path tries to leave the template subtree."""

    hint = "The catalog entry is malformed or hostile; nothing was written."

    def __init__(self, message: str, *, entry_id: str, source_path: str, path: str) -> None:
        super().__init__(message, entry_id=entry_id, source_path=source_path)
        self.path = path

    def context(self) -> dict[str, str]:
        out = super().context()
        out["path"] = self.path
        return out


class SizeLimitExceededError(SeedlingError):
    """The template is larger than the configured bounds."""

    hint = "Raise SEEDLING_MAX_TEMPLATE_BYTES / SEEDLING_MAX_TEMPLATE_FILES if the template is trusted."

    def __init__(self, message: str, *, entry_id: str, limit: int, observed: int, unit: str) -> None:
        super().__init__(message)
        self.entry_id = entry_id
        self.limit = limit
        self.observed = observed
        self.unit = unit

    def context(self) -> dict[str, str]:
        return {
            "entry": self.entry_id,
            "limit": f"{self.limit} {self.unit}",
            "observed": f"{self.observed} {self.unit}",
        }


class NoSelectionError(SeedlingError):
    """The user aborted the interactive prompt."""


class FilesystemError(SeedlingError):
    """A write failed during materialization; carries the partial report."""

    def __init__(self, message: str, *, report: MaterializationReport, path: str | None = None) -> None:
        super().__init__(message)
        self.report = report
        self.path = path

    def context(self) -> dict[str, str]:
        out = {"destination": str(self.report.destination)}
        if self.path:
            out["path"] = self.path
        return out
