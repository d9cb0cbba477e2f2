"""Node.js projects (package.json).

A package.json is a workspace root when it has a ``workspaces`` field or
sits next to a pnpm-workspace.yaml. Version edits are done on the raw text
so key order, indentation and the trailing newline survive untouched.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import cast

from ..errors import ManifestParseError
from ..models import Language
from ..project import Manifest, Project, ProjectKind
from ..versions import rewrite_version_spec
from .base import ProjectFinder, detect_indent, read_manifest, write_manifest

logger = logging.getLogger(__name__)

DEPENDENCY_SECTIONS = (
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "optionalDependencies",
)

# Lockfile → publish command, checked in this order in each directory.
LOCKFILE_COMMANDS = (
    ("bun.lockb", "bun publish"),
    ("bun.lock", "bun publish"),
    ("pnpm-lock.yaml", "pnpm publish"),
    ("yarn.lock", "yarn npm publish"),
    ("package-lock.json", "npm publish"),
)

_STRING = r'"(?:[^"\\]|\\.)*"'
_TOKEN_RE = re.compile(rf"{_STRING}|[{{}}\[\]]")
_MEMBER_VALUE_RE = re.compile(rf"\s*:\s*({_STRING})")


def detect_package_manager_command(directory: Path, root: Path) -> str:
    """Walk from directory up to root looking for a lockfile."""
    current = directory
    while True:
        for lockfile, command in LOCKFILE_COMMANDS:
            if (current / lockfile).is_file():
                return command
        if current == root or current.parent == current:
            return "npm publish"
        current = current.parent


class NodeManifest(Manifest):
    language = Language.NODE

    def __init__(
        self,
        path: Path,
        rel_path: str,
        root: Path,
        name: str | None = None,
        version: str | None = None,
        declared: dict[str, str] | None = None,
    ) -> None:
        super().__init__(path, rel_path, name, version)
        self.root = root
        # Every dependency name → specifier, before filtering to the repo.
        self.declared = dict(declared or {})

    def load(self) -> tuple[str, dict]:
        text = read_manifest(self.path, self.rel_path)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ManifestParseError(f"Failed to parse {self.rel_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ManifestParseError(f"Failed to parse {self.rel_path}: not an object")
        return text, data

    def write_version(self, new_version: str) -> None:
        text, data = self.load()
        span = _top_level_value_span(text, "version")
        if span is not None:
            start, end = span
            new_text = text[:start] + json.dumps(new_version) + text[end:]
        else:
            # No top-level "version" string to patch: re-serialize with the
            # version placed right after the name.
            updated: dict = {}
            for key, value in data.items():
                if key != "version":
                    updated[key] = value
                if key == "name":
                    updated["version"] = new_version
            if "version" not in updated:
                updated["version"] = new_version
            new_text = json.dumps(updated, indent=detect_indent(text), ensure_ascii=False)
            if text.endswith("\n"):
                new_text += "\n"
        write_manifest(self.path, self.rel_path, new_text)

    def update_workspace_dependencies(self, packages: list[Project]) -> None:
        versions = {
            p.name: p.version
            for p in packages
            if p.language is Language.NODE and p.name and p.version
        }
        targets = {name: versions[name] for name in self.declared if name in versions}
        if not targets:
            return
        text = read_manifest(self.path, self.rel_path)
        new_text = text
        for section in DEPENDENCY_SECTIONS:
            block = re.compile(rf'("{section}"\s*:\s*\{{)([^{{}}]*)(\}})')
            new_text = block.sub(
                lambda m: m.group(1) + _rewrite_block(m.group(2), targets) + m.group(3),
                new_text,
            )
        if new_text != text:
            logger.debug("%s: workspace dependencies -> %s", self.rel_path, targets)
            write_manifest(self.path, self.rel_path, new_text)

    def default_publish_command(self) -> str:
        return detect_package_manager_command(self.directory, self.root)


def _top_level_value_span(text: str, key: str) -> tuple[int, int] | None:
    """Locate the string value of a key in the outermost object.

    Works on the raw text so any layout, compact or indented, is kept.
    Returns None when the key is absent or its value is not a string.
    """
    depth = 0
    for token in _TOKEN_RE.finditer(text):
        lexeme = token.group(0)
        if lexeme in ("{", "["):
            depth += 1
        elif lexeme in ("}", "]"):
            depth -= 1
        elif depth == 1 and json.loads(lexeme) == key:
            value = _MEMBER_VALUE_RE.match(text, token.end())
            if value is not None:
                return value.span(1)
    return None


def _rewrite_block(block: str, targets: dict[str, str]) -> str:
    def replace(match: re.Match) -> str:
        name = json.loads(match.group(2))
        if name not in targets:
            return match.group(0)
        spec = json.loads(match.group(4))
        new_spec = rewrite_version_spec(spec, targets[name])
        if new_spec is None:
            return match.group(0)
        return match.group(1) + match.group(2) + match.group(3) + json.dumps(new_spec)

    entry = re.compile(rf"(\s*)({_STRING})(\s*:\s*)({_STRING})")
    return entry.sub(replace, block)


class NodeFinder(ProjectFinder):
    language = Language.NODE
    project_files = ("package.json",)

    def parse(self, path: Path, rel_path: str) -> Project:
        manifest = NodeManifest(path, rel_path, self.root)
        _, data = manifest.load()
        name = data.get("name")
        version = data.get("version")
        manifest.name = name if isinstance(name, str) else None
        manifest.version = version if isinstance(version, str) else None
        for section in DEPENDENCY_SECTIONS:
            deps = data.get(section)
            if isinstance(deps, dict):
                for dep_name, spec in deps.items():
                    if isinstance(spec, str):
                        manifest.declared[dep_name] = spec
        is_workspace = "workspaces" in data or (path.parent / "pnpm-workspace.yaml").is_file()
        kind = ProjectKind.WORKSPACE if is_workspace else ProjectKind.PACKAGE
        return Project(kind, manifest)

    def finalize(self) -> None:
        known = self.known_names()
        for project in self._projects.values():
            manifest = cast(NodeManifest, project.manifest)
            manifest.dependencies = {
                name
                for name, spec in manifest.declared.items()
                if spec.startswith("workspace:") or name in known
            }
