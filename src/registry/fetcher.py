"""Package source fetcher: turns a pinned reference into archive bytes."""

from __future__ import annotations

import asyncio
import logging
import os
import posixpath
from typing import Optional

import aiohttp

from constants import Constants
from common.errors import LocalArchiveNotFound, PackageFetchFailed
from manifest import PackageManifest
from versioning.models import Dependency, ReferenceKind
from versioning.parser import classify_reference
from .archive import read_package_json

logger = logging.getLogger(__name__)


def tarball_url(registry_url: str, name: str, version: str) -> str:
    """Canonical registry tarball URL for ``name@version``.

    Scoped packages publish their file under the unscoped basename.
    """
    base = posixpath.basename(name)
    return f"{registry_url.rstrip('/')}/{name}/-/{base}-{version}.tgz"


class PackageFetcher:
    """Fetch package archives from disk, the registry, or arbitrary URLs.

    Ranges are never resolved here; callers pin them first.
    """

    def __init__(self, client, registry_url: Optional[str] = None, base_dir: Optional[str] = None):
        self.client = client
        self.registry_url = (registry_url or Constants.REGISTRY_URL).rstrip("/")
        self.base_dir = base_dir or os.getcwd()

    async def fetch(self, dependency: Dependency) -> bytes:
        """Return the raw archive bytes for a pinned or direct reference."""
        reference = dependency.reference
        kind = classify_reference(reference)

        if kind is ReferenceKind.LOCAL:
            return self._read_local(reference)

        if kind is ReferenceKind.EXACT:
            url = tarball_url(self.registry_url, dependency.name, reference.strip())
            return await self.fetch(Dependency(dependency.name, url))

        try:
            response = await self.client.get(reference, context=f"package {dependency.name}")
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise PackageFetchFailed(reference, reason=str(exc) or type(exc).__name__) from exc
        if not response.ok:
            raise PackageFetchFailed(reference, status=response.status)
        return response.body

    def _read_local(self, reference: str) -> bytes:
        path = os.path.join(self.base_dir, reference)
        try:
            with open(path, "rb") as fh:
                return fh.read()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
            raise LocalArchiveNotFound(reference) from exc

    async def fetch_manifest(self, dependency: Dependency) -> PackageManifest:
        """Read the ``package.json`` packed inside a dependency's archive."""
        data = await self.fetch(dependency)
        return PackageManifest.from_bytes(read_package_json(data), source=f"{dependency}/package.json")
