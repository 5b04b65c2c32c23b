"""Version resolvers for registry references."""

from .npm import NpmVersionResolver

__all__ = [
    "NpmVersionResolver",
]
