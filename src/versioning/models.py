"""Data models for dependency references."""

from dataclasses import dataclass
from enum import Enum


class ReferenceKind(Enum):
    """How a dependency reference locates its package."""
    EXACT = "exact"
    RANGE = "range"
    LOCAL = "local"
    URL = "url"


@dataclass(frozen=True)
class Dependency:
    """A named dependency reference: version, range, local path or URL."""
    name: str
    reference: str

    def __str__(self) -> str:
        return f"{self.name}@{self.reference}"
