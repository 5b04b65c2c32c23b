"""Tree optimizer: hoists shared sub-dependencies and prunes duplicates.

Works bottom-up on a private copy of the tree. For every level:

* a nested copy whose reference equals the level's entry of the same name is
  redundant and is dropped;
* a package required with the same reference by two or more entries of the
  level, and absent from the level itself, is hoisted into the level (the
  most requested reference wins, ties go to the first one seen);
* anything else stays nested under the dependent that requires it, which is
  where conflicting versions end up.
"""

from __future__ import annotations

import copy
import logging
from collections import Counter
from typing import Dict, Tuple

from .models import PackageNode

logger = logging.getLogger(__name__)


def optimize_tree(root: PackageNode) -> PackageNode:
    """Return an optimized copy of ``root``; the input is left untouched.

    Passes repeat until nothing moves, so optimizing an optimized tree is a
    no-op and no level lists the same name twice.
    """
    tree = copy.deepcopy(root)
    passes = 1
    while _optimize_node(tree):
        passes += 1
    logger.debug("Package tree stable after %d optimizer pass(es)", passes)
    return tree


def _optimize_node(node: PackageNode) -> bool:
    changed = False
    for dependency in node.dependencies:
        if _optimize_node(dependency):
            changed = True
    if _optimize_level(node):
        changed = True
    return changed


def _optimize_level(node: PackageNode) -> bool:
    changed = False
    while True:
        if _prune_redundant(node):
            changed = True
        if not _hoist_shared(node):
            return changed
        changed = True


def _prune_redundant(node: PackageNode) -> bool:
    """Drop grandchildren already provided, same reference, by the level."""
    changed = False
    for hard_dependency in node.dependencies:
        kept = []
        for sub_dependency in hard_dependency.dependencies:
            available = node.find(sub_dependency.name)
            if available is not None and available.reference == sub_dependency.reference:
                changed = True
            else:
                kept.append(sub_dependency)
        hard_dependency.dependencies = kept
    return changed


def _hoist_shared(node: PackageNode) -> bool:
    """Move one copy of each shared, not yet present package into the level.

    The remaining copies become redundant and are pruned on the next sweep.
    """
    present = {dependency.name for dependency in node.dependencies}
    requested: Dict[str, Counter] = {}
    first_seen: Dict[Tuple[str, str], Tuple[PackageNode, PackageNode]] = {}

    for hard_dependency in node.dependencies:
        for sub_dependency in hard_dependency.dependencies:
            if sub_dependency.name in present:
                continue
            requested.setdefault(sub_dependency.name, Counter())[sub_dependency.reference] += 1
            first_seen.setdefault(
                (sub_dependency.name, sub_dependency.reference),
                (hard_dependency, sub_dependency),
            )

    hoisted = False
    for name, references in requested.items():
        reference, count = references.most_common(1)[0]
        if count < 2:
            continue
        owner, shared = first_seen[(name, reference)]
        owner.dependencies = [d for d in owner.dependencies if d is not shared]
        node.dependencies.append(shared)
        hoisted = True
    return hoisted
