"""Template fetcher: sparse retrieval of one template subtree.

How it works:
1. One call to the git-trees API (`recursive=1`) lists the repository at the
   catalog revision; only blobs under `entry.source_path/` are kept.
2. Sizes advertised by the listing are checked against `FetchLimits` before any
   content is downloaded.
3. Each file is downloaded from the raw content host, in path order, and the
   actual bytes are checked against the limits again.

Every path coming from the remote is untrusted: it is normalized and rejected
(`UnsafePathError`) when absolute, when it contains `..`, or when two remote
paths collapse onto the same local path. Nothing is returned on failure, so a
rejected template can never be partially materialized.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator
from urllib.parse import quote

import httpx

from adapters.catalog_source import parse_location
from adapters.http_client import build_client, get_with_retries, require_ok
from core.config import AppSettings
from core.domain.errors import (
    NetworkError,
    SizeLimitExceededError,
    TemplateNotFoundError,
    UnsafePathError,
)
from core.domain.models import (
    CatalogEntry,
    CatalogLocation,
    FetchLimits,
    TemplateFile,
    TemplateTree,
)
from core.domain.paths import normalize_relative_path, strip_prefix

logger = logging.getLogger(__name__)

MODE_EXECUTABLE = "100755"
MODE_SYMLINK = "120000"


@dataclass(frozen=True)
class RemoteBlob:
    """A file of the template as advertised by the tree listing."""

    remote_path: str
    relative_path: str
    size: int
    executable: bool


class GitHubTemplateFetcher:
    """Fetches the file tree of a `CatalogEntry` into memory."""

    def __init__(
        self,
        location: str | CatalogLocation,
        *,
        settings: AppSettings | None = None,
        limits: FetchLimits | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self.location = parse_location(location)
        self.limits = limits or self._settings.fetch_limits()
        self._client = client

    @property
    def tree_url(self) -> str:
        loc = self.location
        api = self._settings.github_api_url.rstrip("/")
        return f"{api}/repos/{loc.owner}/{loc.repo}/git/trees/{quote(loc.ref, safe='')}"

    def raw_url(self, remote_path: str) -> str:
        loc = self.location
        raw = self._settings.github_raw_url.rstrip("/")
        return f"{raw}/{loc.owner}/{loc.repo}/{loc.ref}/{quote(remote_path)}"

    @contextmanager
    def _client_scope(self) -> Iterator[httpx.Client]:
        if self._client is not None:
            yield self._client
            return
        with build_client(self._settings) as client:
            yield client

    def _get(self, client: httpx.Client, url: str, **kwargs: Any) -> httpx.Response:
        return get_with_retries(
            client,
            url,
            max_retries=self._settings.http_max_retries,
            backoff_seconds=self._settings.http_retry_backoff_seconds,
            **kwargs,
        )

    def fetch(self, entry: CatalogEntry) -> TemplateTree:
        root = self._template_root(entry)
        with self._client_scope() as client:
            listing = self._list_tree(client, entry)
            blobs = self.select_blobs(entry, root, listing)
            self._check_advertised_limits(entry, blobs)
            files = self._download(client, entry, blobs)

        try:
            tree = TemplateTree.from_files(entry, files)
        except ValueError as exc:
            raise UnsafePathError(
                f"Template '{entry.id}' has conflicting paths: {exc}",
                entry_id=entry.id,
                source_path=entry.source_path,
                path=entry.source_path,
            ) from exc
        logger.info(
            "Fetched template '%s': %d file(s), %d byte(s)",
            entry.id,
            tree.file_count,
            tree.total_bytes,
        )
        return tree

    @staticmethod
    def _template_root(entry: CatalogEntry) -> str:
        try:
            return normalize_relative_path(entry.source_path)
        except ValueError as exc:
            raise UnsafePathError(
                f"Template '{entry.id}' has an unsafe source path: {exc}",
                entry_id=entry.id,
                source_path=entry.source_path,
                path=entry.source_path,
            ) from exc

    def _list_tree(self, client: httpx.Client, entry: CatalogEntry) -> list[dict[str, Any]]:
        url = self.tree_url
        response = self._get(client, url, params={"recursive": "1"})
        if response.status_code in (404, 422):
            raise TemplateNotFoundError(
                f"Revision '{self.location.ref}' of {self.location} was not found",
                entry_id=entry.id,
                source_path=entry.source_path,
            )
        require_ok(response, url)
        try:
            payload = response.json()
        except ValueError as exc:
            raise NetworkError(f"Tree listing at {url} is not valid JSON", location=url) from exc

        items = payload.get("tree") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise NetworkError(f"Tree listing at {url} has no 'tree' array", location=url)
        if payload.get("truncated"):
            logger.warning("Tree listing for %s is truncated; large catalogs may miss files", self.location)
        return [item for item in items if isinstance(item, dict)]

    def select_blobs(
        self,
        entry: CatalogEntry,
        root: str,
        listing: list[dict[str, Any]],
    ) -> list[RemoteBlob]:
        """Keep the blobs under `root`, with validated relative paths, sorted by path."""

        by_relative: dict[str, RemoteBlob] = {}
        for item in listing:
            if item.get("type") != "blob":
                continue
            raw_path = item.get("path")
            try:
                remote_path = normalize_relative_path(raw_path)
            except ValueError as exc:
                # Only paths inside the template matter, but an unsafe path
                # anywhere under the root prefix is a hostile listing.
                if isinstance(raw_path, str) and raw_path.startswith(root + "/"):
                    raise UnsafePathError(
                        f"Template '{entry.id}' contains an unsafe path: {exc}",
                        entry_id=entry.id,
                        source_path=entry.source_path,
                        path=raw_path,
                    ) from exc
                continue

            relative = strip_prefix(remote_path, root)
            if relative is None:
                continue
            if item.get("mode") == MODE_SYMLINK:
                logger.info("Skipping symlink %s in template '%s'", remote_path, entry.id)
                continue

            if relative in by_relative:
                raise UnsafePathError(
                    f"Template '{entry.id}' has two files mapping to '{relative}'",
                    entry_id=entry.id,
                    source_path=entry.source_path,
                    path=relative,
                )
            size = item.get("size")
            by_relative[relative] = RemoteBlob(
                remote_path=remote_path,
                relative_path=relative,
                size=size if isinstance(size, int) and size >= 0 else 0,
                executable=item.get("mode") == MODE_EXECUTABLE,
            )

        if not by_relative:
            raise TemplateNotFoundError(
                f"Template '{entry.id}' was not found at '{entry.source_path}' in {self.location}",
                entry_id=entry.id,
                source_path=entry.source_path,
            )
        return [by_relative[key] for key in sorted(by_relative)]

    def _check_advertised_limits(self, entry: CatalogEntry, blobs: list[RemoteBlob]) -> None:
        if len(blobs) > self.limits.max_files:
            raise SizeLimitExceededError(
                f"Template '{entry.id}' has {len(blobs)} files (limit {self.limits.max_files})",
                entry_id=entry.id,
                limit=self.limits.max_files,
                observed=len(blobs),
                unit="files",
            )
        advertised = sum(blob.size for blob in blobs)
        self._check_bytes(entry, advertised)

    def _check_bytes(self, entry: CatalogEntry, observed: int) -> None:
        if observed > self.limits.max_total_bytes:
            raise SizeLimitExceededError(
                f"Template '{entry.id}' is larger than {self.limits.max_total_bytes} bytes",
                entry_id=entry.id,
                limit=self.limits.max_total_bytes,
                observed=observed,
                unit="bytes",
            )

    def _download(
        self,
        client: httpx.Client,
        entry: CatalogEntry,
        blobs: list[RemoteBlob],
    ) -> list[TemplateFile]:
        files: list[TemplateFile] = []
        total = 0
        for blob in blobs:
            url = self.raw_url(blob.remote_path)
            response = self._get(client, url, stream=True)
            chunks: list[bytes] = []
            try:
                if response.status_code == 404:
                    raise TemplateNotFoundError(
                        f"File '{blob.remote_path}' of template '{entry.id}' disappeared during fetch",
                        entry_id=entry.id,
                        source_path=entry.source_path,
                    )
                require_ok(response, url)
                for chunk in response.iter_bytes():
                    total += len(chunk)
                    # Stop reading as soon as the running total is over the limit.
                    self._check_bytes(entry, total)
                    chunks.append(chunk)
            except httpx.TransportError as exc:
                raise NetworkError(f"Download of {url} was interrupted: {exc}", location=url) from exc
            finally:
                response.close()

            content = b"".join(chunks)
            files.append(
                TemplateFile(
                    path=blob.relative_path,
                    content=content,
                    executable=blob.executable,
                )
            )
            logger.debug("Downloaded %s (%d bytes)", blob.remote_path, len(content))
        return files
