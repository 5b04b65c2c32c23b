"""On-disk installation of resolved package trees."""

from .linker import PackageLinker

__all__ = ["PackageLinker"]
