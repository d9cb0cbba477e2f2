"""TOML reading and writing utilities.

Uses tomlkit to preserve formatting and comments when modifying Cargo.toml
and pyproject.toml files. This is important for maintaining readable,
diff-friendly manifests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError

from .errors import ManifestParseError, ManifestWriteError


def load_toml(path: Path, rel_path: str) -> tomlkit.TOMLDocument:
    """Load and parse a TOML manifest.

    Returns a TOMLDocument that preserves formatting when modified and saved.

    Raises:
        ManifestParseError: If the file cannot be read or is not valid TOML.
    """
    try:
        return tomlkit.parse(path.read_text(encoding="utf-8"))
    except (OSError, TOMLKitError) as exc:
        raise ManifestParseError(f"Failed to parse {rel_path}: {exc}") from exc


def save_toml(path: Path, rel_path: str, doc: tomlkit.TOMLDocument) -> None:
    """Save a TOMLDocument back to disk, preserving original formatting.

    tomlkit round-trips the document text, including whether the file ends
    with a newline.
    """
    try:
        path.write_text(tomlkit.dumps(doc), encoding="utf-8")
    except OSError as exc:
        raise ManifestWriteError(f"Failed to write {rel_path}: {exc}") from exc


def get_table(doc: Any, *keys: str) -> Any:
    """Walk nested tables, returning None when any level is missing.

    Example:
        get_table(doc, "tool", "uv", "workspace") → the [tool.uv.workspace]
        table, or None.
    """
    node = doc
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node


def get_string(doc: Any, *keys: str) -> str | None:
    """Like get_table, but only returns string leaf values."""
    value = get_table(doc, *keys)
    if isinstance(value, str):
        return str(value)
    return None


def get_all_dependency_strings(doc: tomlkit.TOMLDocument) -> list[str]:
    """Collect all dependency strings from a pyproject.toml.

    Gathers dependencies from three locations:
    - [project].dependencies (main runtime deps)
    - [project].optional-dependencies.* (extras like [dev], [test])
    - [dependency-groups].* (PEP 735 dependency groups)

    Returns raw PEP 508 strings like "requests>=2.0" or "pkg[extra]~=1.0".
    Include-group tables inside dependency groups are skipped.
    """
    project = doc.get("project", {})
    deps: list[str] = [str(dep) for dep in project.get("dependencies", [])]
    for group_deps in project.get("optional-dependencies", {}).values():
        deps.extend(str(dep) for dep in group_deps)
    for group_deps in doc.get("dependency-groups", {}).values():
        deps.extend(str(dep) for dep in group_deps if isinstance(dep, str))
    return deps
