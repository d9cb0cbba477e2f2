"""Version parsing and bumping utilities.

Handles conversion between version strings and semver objects, with
special handling for incomplete version strings (e.g., "1.0" → "1.0.0")
and for dependency specifiers that carry a range operator (e.g., "^1.2.0").
"""

from __future__ import annotations

import semver

from .errors import VersionError
from .models import BumpKind


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Handles incomplete versions by padding with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "1.2.3" → "1.2.3"

    Only the first 3 components are used (major.minor.patch). Anything after
    the patch component (pre-release, build metadata, a fourth number) is
    dropped.

    Raises:
        VersionError: If a component is not a non-negative decimal integer.
    """
    core = version_str.strip().split("+", 1)[0].split("-", 1)[0]
    parts = core.split(".")
    # Pad with zeros to ensure we have at least 3 parts
    while len(parts) < 3:
        parts.append("0")
    parts = parts[:3]
    if not all(part.isascii() and part.isdigit() for part in parts):
        raise VersionError(f"Invalid version '{version_str}'")
    return semver.Version.parse(".".join(str(int(part)) for part in parts))


def next_version(current: str | None, kind: BumpKind) -> str:
    """Bump one component of a version and return the result as a string.

    A missing version is treated as "0.0.0".

    Examples:
        next_version("1.2.3", BumpKind.PATCH) → "1.2.4"
        next_version("1.2.3", BumpKind.MINOR) → "1.3.0"
        next_version("1.2.3-beta.1", BumpKind.MAJOR) → "2.0.0"
        next_version(None, BumpKind.MINOR) → "0.1.0"
    """
    version = parse_version(current if current is not None else "0.0.0")
    if kind is BumpKind.MAJOR:
        return str(version.bump_major())
    if kind is BumpKind.MINOR:
        return str(version.bump_minor())
    return str(version.bump_patch())


def split_version_spec(spec: str) -> tuple[str | None, str]:
    """Split a dependency specifier into its range prefix and numeric body.

    The prefix is everything before the first digit. Specifiers without a
    digit are returned whole as the body.

    Examples:
        "^1.0.0" → ("^", "1.0.0")
        ">=1.0.0+build1" → (">=", "1.0.0+build1")
        "1.0.0" → (None, "1.0.0")
        "workspace:*" → (None, "workspace:*")
    """
    for pos, char in enumerate(spec):
        if char.isdigit():
            if pos == 0:
                return None, spec
            return spec[:pos], spec[pos:]
    return None, spec


def rewrite_version_spec(spec: str, new_version: str) -> str | None:
    """Replace the numeric body of a specifier, keeping its prefix.

    Returns None when the specifier has no numeric body to replace.
    """
    prefix, body = split_version_spec(spec)
    if not any(char.isdigit() for char in body):
        return None
    return f"{prefix or ''}{new_version}"
