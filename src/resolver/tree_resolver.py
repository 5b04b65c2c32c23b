"""Recursive, ancestor-aware dependency tree resolution.

Each branch carries its own read-only availability map (package name to the
reference pinned by an ancestor). A dependency already provided by an ancestor
is shadowed and gets no nested node. Siblings never see each other's picks, so
two branches may pin different versions of a shared package; the optimizer
and the nested store layout keep such copies apart.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from common.logging_utils import extra_context, is_debug_enabled
from common.progress import ProgressTracker
from common.tasks import gather_or_cancel
from manifest import PackageManifest
from versioning.models import Dependency
from versioning.parser import is_valid_range, satisfies
from .models import PackageNode

logger = logging.getLogger(__name__)

_EMPTY: Mapping[str, str] = MappingProxyType({})


def is_volatile(dependency: Dependency, available: Mapping[str, str]) -> bool:
    """True when ``dependency`` must be resolved rather than shadowed.

    It is shadowed when an ancestor pinned the same reference, or when the
    requested reference is a range the ancestor's pin satisfies.
    """
    available_reference = available.get(dependency.name)
    if available_reference is None:
        return True
    if available_reference == dependency.reference:
        return False
    if is_valid_range(dependency.reference) and satisfies(available_reference, dependency.reference):
        return False
    return True


class TreeResolver:
    """Builds the full transitive PackageNode tree for a root manifest."""

    def __init__(self, pinner, fetcher, progress: Optional[ProgressTracker] = None):
        self.pinner = pinner
        self.fetcher = fetcher
        self.progress = progress or ProgressTracker("resolve", quiet=True)

    async def resolve_manifest(self, manifest: PackageManifest) -> PackageNode:
        """Resolve the dependencies declared by a root manifest."""
        return await self.resolve(manifest.name, None, manifest.dependency_list())

    async def resolve(
        self,
        name: Optional[str],
        reference: Optional[str],
        dependencies: Iterable[Dependency],
        available: Mapping[str, str] = _EMPTY,
    ) -> PackageNode:
        """Resolve ``dependencies`` of one node against its ancestors' pins.

        Volatile dependencies resolve concurrently; the first failure cancels
        the rest and propagates.
        """
        volatile = [d for d in dependencies if is_volatile(d, available)]

        if is_debug_enabled(logger):
            logger.debug(
                "Resolving node",
                extra=extra_context(
                    event="function_entry",
                    component="resolver",
                    action="resolve",
                    package=name,
                    reference=reference,
                    volatile_count=len(volatile),
                ),
            )

        children = await gather_or_cancel(
            self._resolve_dependency(dependency, available) for dependency in volatile
        )
        return PackageNode(name, reference, list(children))

    async def _resolve_dependency(
        self, dependency: Dependency, available: Mapping[str, str]
    ) -> PackageNode:
        self.progress.add()

        pinned = await self.pinner.pin(dependency)
        manifest = await self.fetcher.fetch_manifest(pinned)

        sub_available = MappingProxyType({**available, pinned.name: pinned.reference})
        self.progress.tick(str(pinned))

        return await self.resolve(
            pinned.name,
            pinned.reference,
            manifest.dependency_list(),
            sub_available,
        )
