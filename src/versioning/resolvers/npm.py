"""NPM version resolver: pins ranges to the highest published match."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

import aiohttp
import semantic_version

from constants import Constants
from common.errors import RegistryUnavailable, UnresolvableVersion
from common.logging_utils import extra_context, is_debug_enabled
from ..models import Dependency, ReferenceKind
from ..parser import classify_reference, parse_range

logger = logging.getLogger(__name__)


def metadata_url(registry_url: str, name: str) -> str:
    """Registry packument URL; scoped names keep their scope, escaped."""
    return f"{registry_url.rstrip('/')}/{name.replace('/', '%2f')}"


class NpmVersionResolver:
    """Resolver for NPM packages using npm semver range semantics."""

    def __init__(self, client, registry_url: Optional[str] = None):
        self.client = client
        self.registry_url = (registry_url or Constants.REGISTRY_URL).rstrip("/")
        self._candidates: Dict[str, "asyncio.Future[List[str]]"] = {}

    async def fetch_candidates(self, name: str) -> List[str]:
        """Fetch every published version of ``name`` from the registry packument.

        Lookups are shared per name: concurrent branches asking for the same
        package wait on one request. A failed lookup is not remembered.

        Raises:
            RegistryUnavailable: On transport errors, non-2xx responses, or a
                document without a ``versions`` mapping.
        """
        task = self._candidates.get(name)
        if task is None:
            task = asyncio.ensure_future(self._load_candidates(name))
            self._candidates[name] = task
            task.add_done_callback(lambda done, key=name: self._forget_failed(key, done))
        return await asyncio.shield(task)

    def _forget_failed(self, name: str, task: "asyncio.Future[List[str]]") -> None:
        if task.cancelled() or task.exception() is not None:
            self._candidates.pop(name, None)

    async def _load_candidates(self, name: str) -> List[str]:
        url = metadata_url(self.registry_url, name)
        try:
            status_code, data = await self.client.get_json(url, context="registry metadata")
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise RegistryUnavailable(name, url, str(exc) or type(exc).__name__) from exc

        if status_code != 200:
            raise RegistryUnavailable(name, url, f"HTTP {status_code}")
        if not isinstance(data, dict) or not isinstance(data.get("versions"), dict):
            raise RegistryUnavailable(name, url, "malformed metadata document")

        return list(data["versions"].keys())

    @staticmethod
    def pick(reference: str, candidates: List[str]) -> Optional[str]:
        """Return the highest candidate satisfying ``reference``, or None."""
        spec = parse_range(reference)
        if spec is None:
            return None

        parsed = []
        for candidate in candidates:
            try:
                parsed.append(semantic_version.Version(candidate))
            except ValueError:
                continue  # Skip invalid versions

        best = spec.select(parsed)
        return str(best) if best is not None else None

    async def pin(self, dependency: Dependency) -> Dependency:
        """Resolve a range reference to one concrete published version.

        Exact versions, local paths and URLs are returned unchanged.
        """
        reference = dependency.reference
        if classify_reference(reference) is not ReferenceKind.RANGE:
            return dependency

        candidates = await self.fetch_candidates(dependency.name)
        pinned = self.pick(reference, candidates)
        if pinned is None:
            raise UnresolvableVersion(dependency.name, reference)

        if is_debug_enabled(logger):
            logger.debug(
                "Pinned reference",
                extra=extra_context(
                    event="decision",
                    component="pinner",
                    action="pin",
                    package=dependency.name,
                    requested=reference,
                    resolved=pinned,
                    candidate_count=len(candidates),
                ),
            )
        return Dependency(dependency.name, pinned)
