"""Shared fixtures: in-memory registry and tarball builder."""

import io
import json
import tarfile
from typing import Dict, List, Optional, Tuple, Union

import pytest

from common.http_client import HttpResponse

REGISTRY_URL = "https://registry.test"

FileSpec = Union[bytes, str, Tuple[bytes, int]]


def make_tarball(files: Dict[str, FileSpec], wrapper: Optional[str] = "package", gzip: bool = True) -> bytes:
    """Pack ``files`` (path -> content or (content, mode)) into tar bytes.

    With a ``wrapper`` every entry is nested under that directory, the way
    registry tarballs are published.
    """
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz" if gzip else "w") as tar:
        if wrapper:
            info = tarfile.TarInfo(wrapper)
            info.type = tarfile.DIRTYPE
            info.mode = 0o755
            tar.addfile(info)
        for path, spec in files.items():
            mode = 0o644
            if isinstance(spec, tuple):
                content, mode = spec
            else:
                content = spec
            if isinstance(content, str):
                content = content.encode("utf-8")
            info = tarfile.TarInfo(f"{wrapper}/{path}" if wrapper else path)
            info.size = len(content)
            info.mode = mode
            tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


class FakeClient:
    """Stands in for HttpClient; serves canned responses and records requests."""

    def __init__(self):
        self.responses: Dict[str, Tuple[int, bytes]] = {}
        self.requests: List[str] = []

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    async def get(self, url: str, *, context: str) -> HttpResponse:
        self.requests.append(url)
        status, body = self.responses.get(url, (404, b"not found"))
        return HttpResponse(status, body)

    async def get_json(self, url: str, *, context: str):
        response = await self.get(url, context=context)
        if not response.ok:
            return response.status, None
        try:
            return response.status, json.loads(response.body)
        except json.JSONDecodeError:
            return response.status, None


class FakeRegistry(FakeClient):
    """A FakeClient pre-wired with npm-style packuments and tarballs."""

    def __init__(self, registry_url: str = REGISTRY_URL):
        super().__init__()
        self.registry_url = registry_url
        self.packuments: Dict[str, Dict] = {}

    def tarball_url(self, name: str, version: str) -> str:
        base = name.rsplit("/", 1)[-1]
        return f"{self.registry_url}/{name}/-/{base}-{version}.tgz"

    def add_package(
        self,
        name: str,
        version: str,
        dependencies: Optional[Dict[str, str]] = None,
        bin: Optional[Union[Dict[str, str], str]] = None,
        scripts: Optional[Dict[str, str]] = None,
        files: Optional[Dict[str, FileSpec]] = None,
    ) -> bytes:
        manifest = {"name": name, "version": version}
        if dependencies:
            manifest["dependencies"] = dependencies
        if bin:
            manifest["bin"] = bin
        if scripts:
            manifest["scripts"] = scripts

        contents: Dict[str, FileSpec] = {"package.json": json.dumps(manifest)}
        contents.update(files or {})
        tarball = make_tarball(contents)

        self.responses[self.tarball_url(name, version)] = (200, tarball)
        packument = self.packuments.setdefault(name, {"name": name, "versions": {}})
        packument["versions"][version] = manifest
        self.responses[f"{self.registry_url}/{name.replace('/', '%2f')}"] = (
            200,
            json.dumps(packument).encode("utf-8"),
        )
        return tarball


@pytest.fixture
def registry():
    """Empty in-memory registry at REGISTRY_URL."""
    return FakeRegistry()


@pytest.fixture
def tarball():
    """The tarball builder, for tests that pack archives by hand."""
    return make_tarball
