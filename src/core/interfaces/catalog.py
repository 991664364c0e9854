"""Contracts for the remote side of the pipeline.

Why Protocol:
- Structural contract (duck typing) without rigid inheritance.
- The run pipeline accepts any object with `list()` / `fetch()`; the GitHub
  adapters are one implementation, test doubles are another.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import CatalogEntry, TemplateTree


@runtime_checkable
class CatalogProvider(Protocol):
    """Lists the templates available in one catalog."""

    def list(self) -> list[CatalogEntry]:
        """Return entries in catalog order.

        Raises `NetworkError` or `CatalogFormatError`.
        """

        ...


@runtime_checkable
class TemplateProvider(Protocol):
    """Retrieves the file tree of one catalog entry."""

    def fetch(self, entry: CatalogEntry) -> TemplateTree:
        """Return the in-memory tree of `entry`.

        Raises `NetworkError`, `TemplateNotFoundError` or `SizeLimitExceededError`.
        """

        ...
