"""Rust projects (Cargo.toml).

A Cargo.toml with a ``[workspace]`` table is a workspace root; its version
comes from ``[workspace.package]`` (falling back to its own ``[package]``).
Member crates declaring ``version.workspace = true`` inherit that version,
which is resolved in finalize() once every manifest has been parsed.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import cast

import tomlkit

from ..errors import ManifestWriteError
from ..models import Language
from ..project import Manifest, Project, ProjectKind
from ..toml import get_string, get_table, load_toml, save_toml
from ..versions import rewrite_version_spec
from .base import ProjectFinder

logger = logging.getLogger(__name__)

DEPENDENCY_SECTIONS = ("dependencies", "dev-dependencies", "build-dependencies")


def _flag(value: object) -> bool:
    return getattr(value, "value", value) is True


def _is_internal(spec: object) -> bool:
    """Dependency tables with ``workspace = true`` or a ``path`` are intra-repo."""
    if not isinstance(spec, dict):
        return False
    return _flag(spec.get("workspace")) or "path" in spec


class RustManifest(Manifest):
    language = Language.RUST

    def __init__(self, path: Path, rel_path: str, **kwargs) -> None:
        super().__init__(path, rel_path, **kwargs)
        # Set by finalize() for crates inheriting the workspace version.
        self.workspace_root: Project | None = None

    def write_version(self, new_version: str) -> None:
        if self.inherits_workspace_version:
            raise ManifestWriteError(
                f"{self.rel_path} inherits its version from the workspace; "
                "bump the workspace root instead"
            )
        doc = load_toml(self.path, self.rel_path)
        if get_table(doc, "workspace", "package", "version") is not None:
            doc["workspace"]["package"]["version"] = new_version
        elif get_table(doc, "package") is not None:
            doc["package"]["version"] = new_version
        elif get_table(doc, "workspace") is not None:
            workspace = doc["workspace"]
            if "package" not in workspace:
                workspace["package"] = tomlkit.table()
            workspace["package"]["version"] = new_version
        else:
            raise ManifestWriteError(f"{self.rel_path} has no [package] table")
        save_toml(self.path, self.rel_path, doc)

    def update_workspace_dependencies(self, packages: list[Project]) -> None:
        versions = {
            p.name: p.version
            for p in packages
            if p.language is Language.RUST and p.name and p.version
        }
        doc = load_toml(self.path, self.rel_path)
        deps = get_table(doc, "workspace", "dependencies")
        if not isinstance(deps, dict):
            return
        changed = False
        for name in list(deps.keys()):
            if name not in versions:
                continue
            spec = deps[name]
            if isinstance(spec, str):
                new_spec = rewrite_version_spec(str(spec), versions[name])
                if new_spec is not None and new_spec != spec:
                    deps[name] = new_spec
                    changed = True
            elif isinstance(spec, dict) and isinstance(spec.get("version"), str):
                new_spec = rewrite_version_spec(str(spec["version"]), versions[name])
                if new_spec is not None and new_spec != spec["version"]:
                    spec["version"] = new_spec
                    changed = True
        if changed:
            logger.debug("%s: rewrote [workspace.dependencies]", self.rel_path)
            save_toml(self.path, self.rel_path, doc)

    def default_publish_command(self) -> str:
        return "cargo publish"


class RustFinder(ProjectFinder):
    language = Language.RUST
    project_files = ("Cargo.toml",)

    def parse(self, path: Path, rel_path: str) -> Project:
        doc = load_toml(path, rel_path)
        is_workspace = get_table(doc, "workspace") is not None
        name = get_string(doc, "package", "name")
        if is_workspace:
            version = get_string(doc, "workspace", "package", "version") or get_string(
                doc, "package", "version"
            )
        else:
            version = get_string(doc, "package", "version")
        manifest = RustManifest(path, rel_path, name=name, version=version)
        inherited = get_table(doc, "package", "version")
        if not is_workspace and isinstance(inherited, dict):
            manifest.inherits_workspace_version = _flag(inherited.get("workspace"))

        for section in DEPENDENCY_SECTIONS:
            deps = get_table(doc, section)
            if isinstance(deps, dict):
                manifest.dependencies.update(
                    str(dep) for dep, spec in deps.items() if _is_internal(spec)
                )
        kind = ProjectKind.WORKSPACE if is_workspace else ProjectKind.PACKAGE
        return Project(kind, manifest)

    def finalize(self) -> None:
        workspaces = [p for p in self._projects.values() if p.is_workspace]
        for project in self._projects.values():
            manifest = cast(RustManifest, project.manifest)
            if not manifest.inherits_workspace_version:
                continue
            root = _nearest_workspace(project, workspaces)
            if root is None:
                logger.warning(
                    "%s inherits the workspace version but no workspace root was found",
                    project.rel_path,
                )
                continue
            manifest.workspace_root = root
            manifest.version = root.version


def _nearest_workspace(project: Project, workspaces: list[Project]) -> Project | None:
    candidates = [
        ws
        for ws in workspaces
        if project.manifest.directory.is_relative_to(ws.manifest.directory)
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda ws: len(ws.manifest.directory.parts))
