"""Catalog source: GitHub-hosted template index.

The catalog is a repository at a fixed revision with an index document at its
root (default `templates.json`). Two shapes are accepted, order preserved:

- list form:    {"templates": [{"id": "...", "name": "...", "description": "...", "path": "..."}]}
- mapping form: {"templates": {"<id>": {"description": "...", "path": "..."}}}

The mapping form matches the shape of `nix flake show --json` output, with an
explicit `path` added per template.

A repository without an index (a plain flake-templates repository, for
instance) is listed from its tree instead: every top-level directory is one
template, without a description.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Any, Iterator
from urllib.parse import quote

import httpx

from adapters.http_client import build_client, get_with_retries, require_ok
from core.config import AppSettings
from core.domain.errors import CatalogFormatError
from core.domain.models import CatalogEntry, CatalogLocation

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_ID = "default"
DEFAULT_TEMPLATE_LABEL = "Empty/Blank"


def parse_location(value: str | CatalogLocation) -> CatalogLocation:
    """Parse a catalog location string, mapping failures to `CatalogFormatError`."""

    if isinstance(value, CatalogLocation):
        return value
    try:
        return CatalogLocation.parse(value)
    except ValueError as exc:
        raise CatalogFormatError(f"Invalid catalog location: {exc}") from exc


def _entry_fields(raw: Any, *, position: int, key: str | None) -> CatalogEntry:
    label = key or f"#{position + 1}"
    if not isinstance(raw, dict):
        raise CatalogFormatError(f"Catalog entry {label} is not an object", entry_id=label)

    entry_id = key if key is not None else raw.get("id")
    if not isinstance(entry_id, str) or not entry_id.strip():
        raise CatalogFormatError(f"Catalog entry {label} has an empty id", entry_id=label)
    entry_id = entry_id.strip()

    source_path = raw.get("path", raw.get("source_path"))
    if not isinstance(source_path, str) or not source_path.strip():
        raise CatalogFormatError(
            f"Catalog entry '{entry_id}' is missing its path",
            entry_id=entry_id,
        )

    name = raw.get("name") or raw.get("display_name") or entry_id
    description = raw.get("description") or ""
    if not isinstance(name, str) or not isinstance(description, str):
        raise CatalogFormatError(
            f"Catalog entry '{entry_id}' has a non-text name or description",
            entry_id=entry_id,
        )

    return CatalogEntry(
        id=entry_id,
        display_name=name.strip() or entry_id,
        description=description.strip(),
        source_path=source_path.strip(),
    )


def parse_catalog_index(
    data: Any,
    *,
    description_prefix: str = "",
    hide_duplicate_descriptions: bool = False,
) -> list[CatalogEntry]:
    """Turn a decoded index document into `CatalogEntry` values.

    Raises `CatalogFormatError` naming the offending entry for empty ids,
    duplicate ids, missing paths and non-object entries.
    """

    templates = data.get("templates") if isinstance(data, dict) else data
    if isinstance(templates, dict):
        raws = [(key, value) for key, value in templates.items()]
    elif isinstance(templates, list):
        raws = [(None, value) for value in templates]
    else:
        raise CatalogFormatError("Catalog index has no 'templates' list or mapping")

    entries: list[CatalogEntry] = []
    seen_ids: set[str] = set()
    seen_descriptions: set[str] = set()
    for position, (key, raw) in enumerate(raws):
        entry = _entry_fields(raw, position=position, key=key)
        if entry.id in seen_ids:
            raise CatalogFormatError(f"Duplicate catalog id '{entry.id}'", entry_id=entry.id)
        seen_ids.add(entry.id)

        if entry.id == DEFAULT_TEMPLATE_ID:
            entry = entry.model_copy(update={"description": DEFAULT_TEMPLATE_LABEL})
        elif description_prefix and entry.description.startswith(description_prefix):
            entry = entry.model_copy(
                update={"description": entry.description[len(description_prefix) :].strip()}
            )

        if hide_duplicate_descriptions and entry.description:
            if entry.description in seen_descriptions:
                logger.info("Hiding '%s': duplicate description %r", entry.id, entry.description)
                continue
            seen_descriptions.add(entry.description)

        entries.append(entry)
    return entries


class GitHubCatalogSource:
    """Lists the templates of one catalog repository.

    No caching: every `list()` call fetches the index again.
    """

    def __init__(
        self,
        location: str | CatalogLocation,
        *,
        settings: AppSettings | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self.location = parse_location(location)
        self._client = client

    @property
    def raw_base_url(self) -> str:
        loc = self.location
        return f"{self._settings.github_raw_url.rstrip('/')}/{loc.owner}/{loc.repo}/{loc.ref}"

    @property
    def index_url(self) -> str:
        return f"{self.raw_base_url}/{self._settings.catalog_index_file.lstrip('/')}"

    @property
    def tree_url(self) -> str:
        loc = self.location
        api = self._settings.github_api_url.rstrip("/")
        return f"{api}/repos/{loc.owner}/{loc.repo}/git/trees/{quote(loc.ref, safe='')}"

    @contextmanager
    def _client_scope(self) -> Iterator[httpx.Client]:
        if self._client is not None:
            yield self._client
            return
        with build_client(self._settings) as client:
            yield client

    def _get(self, client: httpx.Client, url: str) -> httpx.Response:
        return get_with_retries(
            client,
            url,
            max_retries=self._settings.http_max_retries,
            backoff_seconds=self._settings.http_retry_backoff_seconds,
        )

    def list(self) -> list[CatalogEntry]:
        url = self.index_url
        logger.info("Fetching catalog index %s", url)
        with self._client_scope() as client:
            response = self._get(client, url)
            if response.status_code == 404:
                logger.info("No index at %s; listing top-level directories instead", url)
                data = self._index_from_tree(client)
            else:
                require_ok(response, url)
                try:
                    data = json.loads(response.content.decode("utf-8"))
                except (UnicodeDecodeError, json.JSONDecodeError) as exc:
                    raise CatalogFormatError(f"Catalog index at {url} is not valid JSON: {exc}") from exc

        entries = parse_catalog_index(
            data,
            description_prefix=self._settings.catalog_description_prefix,
            hide_duplicate_descriptions=self._settings.hide_duplicate_descriptions,
        )
        logger.info("Catalog %s lists %d template(s)", self.location, len(entries))
        return entries

    def _index_from_tree(self, client: httpx.Client) -> dict[str, Any]:
        """Build a mapping-form index from the top-level directories of the revision."""

        missing = f"Catalog {self.location} has no index file '{self._settings.catalog_index_file}'"
        url = self.tree_url
        response = self._get(client, url)
        if response.status_code in (404, 422):
            raise CatalogFormatError(f"{missing} and its revision could not be listed")
        require_ok(response, url)
        try:
            payload = response.json()
        except ValueError as exc:
            raise CatalogFormatError(f"{missing} and its tree listing is not valid JSON") from exc

        items = payload.get("tree") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise CatalogFormatError(f"{missing} and its tree listing has no 'tree' array")

        names = [
            item["path"]
            for item in items
            if isinstance(item, dict)
            and item.get("type") == "tree"
            and isinstance(item.get("path"), str)
            and "/" not in item["path"]
            and not item["path"].startswith((".", "_"))
        ]
        if not names:
            raise CatalogFormatError(f"{missing} and no template directories")
        return {"templates": {name: {"path": name} for name in names}}
