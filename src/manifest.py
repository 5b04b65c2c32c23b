"""Typed view of package manifests (``package.json`` / ``spm-package.json``)."""

from __future__ import annotations

import json
import os
import posixpath
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from common.errors import ManifestError
from versioning.models import Dependency


def _string_map(data: Dict[str, Any], key: str, source: str) -> Dict[str, str]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ManifestError(f'{source}: "{key}" must be an object')
    for k, v in value.items():
        if not isinstance(v, str):
            raise ManifestError(f'{source}: "{key}.{k}" must be a string')
    return dict(value)


@dataclass
class PackageManifest:
    """The fields of a manifest the installer cares about."""

    name: Optional[str] = None
    version: Optional[str] = None
    dependencies: Dict[str, str] = field(default_factory=dict)
    bin: Dict[str, str] = field(default_factory=dict)
    scripts: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any, source: str = "manifest") -> "PackageManifest":
        """Validate a decoded JSON document.

        ``bin`` given as a single string maps the package's own (unscoped)
        name to that path.
        """
        if not isinstance(data, dict):
            raise ManifestError(f"{source}: top level must be an object")

        name = data.get("name")
        if name is not None and not isinstance(name, str):
            raise ManifestError(f'{source}: "name" must be a string')
        version = data.get("version")
        if version is not None and not isinstance(version, str):
            raise ManifestError(f'{source}: "version" must be a string')

        raw_bin = data.get("bin")
        if isinstance(raw_bin, str):
            if not name:
                raise ManifestError(f'{source}: a string "bin" requires a "name"')
            bin_map = {posixpath.basename(name): raw_bin}
        else:
            bin_map = _string_map(data, "bin", source)

        return cls(
            name=name,
            version=version,
            dependencies=_string_map(data, "dependencies", source),
            bin=bin_map,
            scripts=_string_map(data, "scripts", source),
        )

    @classmethod
    def from_bytes(cls, raw: bytes, source: str = "manifest") -> "PackageManifest":
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ManifestError(f"{source}: invalid JSON ({exc})") from exc
        return cls.from_dict(data, source)

    @classmethod
    def load(cls, path: str) -> "PackageManifest":
        """Read and validate a manifest file from disk."""
        try:
            with open(path, "rb") as fh:
                raw = fh.read()
        except FileNotFoundError as exc:
            raise ManifestError(f"Manifest not found: {path}") from exc
        except OSError as exc:
            raise ManifestError(f"Couldn't read manifest {path}: {exc}") from exc
        return cls.from_bytes(raw, source=os.path.basename(path))

    def dependency_list(self) -> List[Dependency]:
        """Declared dependencies, in declaration order."""
        return [Dependency(name, reference) for name, reference in self.dependencies.items()]
