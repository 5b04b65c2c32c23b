"""Tarball reading and extraction with virtual path stripping.

Archives arrive as in-memory bytes, gzipped or plain; tarfile's ``r:*`` mode
detects the compression. Published registry tarballs wrap everything in one
top-level directory, so package helpers strip one leading path segment.
"""

from __future__ import annotations

import io
import logging
import os
import tarfile
import zlib
from contextlib import contextmanager
from typing import Iterator, Optional

from constants import Constants
from common.errors import ArchiveError, FileNotFoundInArchive

logger = logging.getLogger(__name__)


def strip_segments(entry_name: str, skip_segments: int) -> Optional[str]:
    """Drop ``skip_segments`` leading path components from an entry name.

    Returns None when the name has fewer components than requested.
    """
    name = entry_name.lstrip("/")
    for _ in range(skip_segments):
        index = name.find("/")
        if index == -1:
            return None
        name = name[index + 1:]
    return name


@contextmanager
def _open_archive(data: bytes) -> Iterator[tarfile.TarFile]:
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as tar:
            yield tar
    except (tarfile.TarError, EOFError, zlib.error) as exc:
        if isinstance(exc, tarfile.FilterError):
            raise ArchiveError(f"Refusing unsafe archive entry: {exc}") from exc
        raise ArchiveError(f"Unreadable archive: {exc}") from exc


def read_file(file_name: str, data: bytes, skip_segments: int = 0) -> bytes:
    """Return the content of the first entry named ``file_name``.

    Raises:
        FileNotFoundInArchive: No entry matches after stripping.
        ArchiveError: The bytes are not a tar stream.
    """
    with _open_archive(data) as tar:
        for member in tar:
            if not member.isfile():
                continue
            if strip_segments(member.name, skip_segments) != file_name:
                continue
            extracted = tar.extractfile(member)
            assert extracted is not None
            return extracted.read()
    raise FileNotFoundInArchive(file_name)


def extract_all(data: bytes, target_dir: str, skip_segments: int = 0) -> None:
    """Extract every entry under ``target_dir`` after stripping its name.

    Entries whose stripped name is empty (the wrapper directory itself) or
    that lack enough segments are dropped. File modes are kept; members that
    would land outside ``target_dir`` raise ArchiveError.
    """
    os.makedirs(target_dir, exist_ok=True)
    with _open_archive(data) as tar:
        for member in tar:
            stripped = strip_segments(member.name, skip_segments)
            if not stripped:
                continue
            member.name = stripped
            if member.islnk():
                link_target = strip_segments(member.linkname, skip_segments)
                if not link_target:
                    continue
                member.linkname = link_target
            tar.extract(member, target_dir, filter="data")


def read_package_json(data: bytes) -> bytes:
    """Read ``package.json`` from a published package tarball."""
    return read_file(
        Constants.PACKAGE_JSON_FILE, data,
        skip_segments=Constants.PACKAGE_ARCHIVE_SKIP_SEGMENTS,
    )


def extract_package_to(data: bytes, target_dir: str) -> None:
    """Unpack a published package tarball into ``target_dir``."""
    extract_all(data, target_dir, skip_segments=Constants.PACKAGE_ARCHIVE_SKIP_SEGMENTS)
