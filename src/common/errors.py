"""Error types raised by the resolution and installation pipeline."""

from __future__ import annotations

from typing import Optional


class SpmError(Exception):
    """Base class for every unrecoverable spm failure."""


class ManifestError(SpmError):
    """A manifest file is missing, is not JSON, or has the wrong shape."""


class RegistryUnavailable(SpmError):
    """Registry metadata could not be fetched or parsed."""

    def __init__(self, name: str, url: str, reason: str):
        super().__init__(f'Registry metadata for "{name}" unavailable ({url}): {reason}')
        self.name = name
        self.url = url
        self.reason = reason


class UnresolvableVersion(SpmError):
    """No published version satisfies a requested range."""

    def __init__(self, name: str, reference: str):
        super().__init__(
            f'Couldn\'t find a version matching "{reference}" for package "{name}"'
        )
        self.name = name
        self.reference = reference


class PackageFetchFailed(SpmError):
    """A tarball or URL retrieval did not succeed."""

    def __init__(self, reference: str, status: Optional[int] = None, reason: str = ""):
        detail = f"HTTP {status}" if status is not None else reason
        super().__init__(f'Couldn\'t fetch package "{reference}": {detail}')
        self.reference = reference
        self.status = status


class LocalArchiveNotFound(SpmError):
    """A local path reference does not point at a readable file."""

    def __init__(self, path: str):
        super().__init__(f'Local archive "{path}" not found')
        self.path = path


class ArchiveError(SpmError):
    """Archive bytes are not a readable tar (or gzipped tar) stream."""


class FileNotFoundInArchive(SpmError):
    """An expected entry is absent from an archive."""

    def __init__(self, file_name: str):
        super().__init__(f'Couldn\'t find "{file_name}" inside the archive')
        self.file_name = file_name


class ScriptExecutionFailed(SpmError):
    """A lifecycle script exited with a non-zero status."""

    def __init__(self, package: str, script: str, exit_code: int, output: str = ""):
        message = f'Script "{script}" of package "{package}" failed with exit code {exit_code}'
        if output:
            message = f"{message}\n{output}"
        super().__init__(message)
        self.package = package
        self.script = script
        self.exit_code = exit_code
        self.output = output
