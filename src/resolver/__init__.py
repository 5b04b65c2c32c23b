"""Dependency tree resolution and optimization."""

from .models import PackageNode
from .optimizer import optimize_tree
from .tree_resolver import TreeResolver, is_volatile

__all__ = [
    "PackageNode",
    "TreeResolver",
    "is_volatile",
    "optimize_tree",
]
