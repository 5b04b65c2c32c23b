"""Package tree model shared by the resolver, optimizer and installer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from versioning.models import Dependency


@dataclass
class PackageNode:
    """One resolved package and its resolved subtree.

    The root node carries ``reference=None``; it is never installed, only its
    dependencies are.
    """

    name: Optional[str]
    reference: Optional[str]
    dependencies: List["PackageNode"] = field(default_factory=list)

    @property
    def is_root(self) -> bool:
        return not self.reference

    def as_dependency(self) -> Dependency:
        assert self.name is not None and self.reference is not None
        return Dependency(self.name, self.reference)

    def find(self, name: str) -> Optional["PackageNode"]:
        """Direct dependency named ``name``, if any."""
        for dependency in self.dependencies:
            if dependency.name == name:
                return dependency
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "reference": self.reference,
            "dependencies": [d.to_dict() for d in self.dependencies],
        }

    def __str__(self) -> str:
        return f"{self.name}@{self.reference}" if self.reference else str(self.name)
