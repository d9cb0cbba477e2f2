"""Dependency handling utilities.

Provides functions for parsing PEP 508 dependency strings and rewriting
pyproject.toml dependency lists so internal workspace dependencies follow
a bumped version while keeping their range operator.
"""

from __future__ import annotations

import logging

from packaging.requirements import InvalidRequirement, Requirement
from packaging.utils import canonicalize_name

logger = logging.getLogger(__name__)


def dep_canonical_name(dep_str: str) -> str | None:
    """Extract the canonical package name from a PEP 508 dependency string.

    Handles version specifiers, extras, and normalizes the name per PEP 503
    (lowercase, hyphens instead of underscores). Returns None for strings
    that are not valid requirements.

    Examples:
        "requests>=2.0" → "requests"
        "My_Package[extra]~=1.0" → "my-package"
    """
    try:
        return canonicalize_name(Requirement(dep_str).name)
    except InvalidRequirement:
        logger.debug("skipping unparseable requirement %r", dep_str)
        return None


def rewrite_dep(dep_str: str, version: str) -> str | None:
    """Point a PEP 508 dependency at a new version, keeping its operator.

    Extras and environment markers are preserved. When several specifiers
    are present, the operator of the first in sorted order is kept.
    Requirements without a specifier are left alone (returns None).

    Examples:
        rewrite_dep("pkg-b>=1.0.0", "1.1.0") → "pkg-b>=1.1.0"
        rewrite_dep("pkg[x]~=1.0; python_version>'3.9'", "2.0.0")
            → 'pkg[x]~=2.0.0; python_version > "3.9"'
        rewrite_dep("pkg-b", "1.1.0") → None
    """
    req = Requirement(dep_str)
    specifiers = sorted(req.specifier, key=str)
    if not specifiers:
        return None
    operator = specifiers[0].operator
    # Sort extras alphabetically for consistent output
    extras = f"[{','.join(sorted(req.extras))}]" if req.extras else ""
    marker = f"; {req.marker}" if req.marker else ""
    return f"{req.name}{extras}{operator}{version}{marker}"


def rewrite_dep_list(deps: list, versions: dict[str, str]) -> bool:
    """Rewrite internal dependencies in a list, modifying in place.

    Args:
        deps: List of dependency strings (modified in place).
        versions: Map of canonical package name → new version.

    Returns:
        True if any entry changed.
    """
    changed = False
    for i, dep_str in enumerate(deps):
        if not isinstance(dep_str, str):
            continue
        name = dep_canonical_name(str(dep_str))
        if name is None or name not in versions:
            continue
        new_dep = rewrite_dep(str(dep_str), versions[name])
        if new_dep is not None and new_dep != str(dep_str):
            deps[i] = new_dep
            changed = True
    return changed
