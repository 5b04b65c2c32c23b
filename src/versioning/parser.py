"""Reference classification and npm-style semver predicates."""

from typing import Optional

import semantic_version

from constants import Constants
from .models import ReferenceKind


def is_local_path(reference: str) -> bool:
    """True when the reference names a file on disk."""
    return reference.startswith(Constants.LOCAL_PATH_PREFIXES)


def parse_version(reference: str) -> Optional[semantic_version.Version]:
    """Parse an exact semantic version, or return None."""
    try:
        return semantic_version.Version(reference.strip())
    except ValueError:
        return None


def is_exact_version(reference: str) -> bool:
    return parse_version(reference) is not None


def parse_range(reference: str) -> Optional[semantic_version.NpmSpec]:
    """Parse an npm range expression, or return None.

    An empty range means "any version", as npm treats it.
    """
    expression = reference.strip() or "*"
    try:
        return semantic_version.NpmSpec(expression)
    except ValueError:
        return None


def is_valid_range(reference: str) -> bool:
    return parse_range(reference) is not None


def satisfies(version: Optional[str], reference: str) -> bool:
    """True when ``version`` is an exact version inside range ``reference``."""
    if version is None:
        return False
    parsed = parse_version(version)
    spec = parse_range(reference)
    if parsed is None or spec is None:
        return False
    return spec.match(parsed)


def classify_reference(reference: str) -> ReferenceKind:
    """Classify a reference, checking local paths first and URLs last."""
    if is_local_path(reference):
        return ReferenceKind.LOCAL
    if is_exact_version(reference):
        return ReferenceKind.EXACT
    if is_valid_range(reference):
        return ReferenceKind.RANGE
    return ReferenceKind.URL
