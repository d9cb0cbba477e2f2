"""Python projects (pyproject.toml).

A pyproject.toml with ``[tool.uv.workspace]`` is a workspace root, even when
it also carries a ``[project]`` table; in that case ``[project].version`` is
the workspace version.
"""

from __future__ import annotations

from pathlib import Path
from typing import cast

from packaging.utils import canonicalize_name

from ..deps import dep_canonical_name, rewrite_dep_list
from ..errors import ManifestWriteError
from ..models import Language
from ..project import Manifest, Project, ProjectKind
from ..toml import (
    get_all_dependency_strings,
    get_string,
    get_table,
    load_toml,
    save_toml,
)
from .base import ProjectFinder


class PythonManifest(Manifest):
    language = Language.PYTHON

    def __init__(self, path: Path, rel_path: str, **kwargs) -> None:
        super().__init__(path, rel_path, **kwargs)
        # Canonical names of every declared requirement.
        self.declared: set[str] = set()

    def write_version(self, new_version: str) -> None:
        doc = load_toml(self.path, self.rel_path)
        if get_table(doc, "project") is None:
            raise ManifestWriteError(f"{self.rel_path} has no [project] table")
        doc["project"]["version"] = new_version
        save_toml(self.path, self.rel_path, doc)

    def update_workspace_dependencies(self, packages: list[Project]) -> None:
        versions = {
            canonicalize_name(p.name): p.version
            for p in packages
            if p.language is Language.PYTHON and p.name and p.version
        }
        if not versions.keys() & self.declared:
            return
        doc = load_toml(self.path, self.rel_path)
        changed = False
        # Rewrite deps in [project].dependencies
        deps = get_table(doc, "project", "dependencies")
        if isinstance(deps, list):
            changed |= rewrite_dep_list(deps, versions)
        # ... in [project].optional-dependencies.*
        opt_deps = get_table(doc, "project", "optional-dependencies")
        if isinstance(opt_deps, dict):
            for group in opt_deps.values():
                if isinstance(group, list):
                    changed |= rewrite_dep_list(group, versions)
        # ... and in [dependency-groups].*
        dep_groups = doc.get("dependency-groups")
        if isinstance(dep_groups, dict):
            for group in dep_groups.values():
                if isinstance(group, list):
                    changed |= rewrite_dep_list(group, versions)
        if changed:
            save_toml(self.path, self.rel_path, doc)

    def default_publish_command(self) -> str:
        return "uv publish"


class PythonFinder(ProjectFinder):
    language = Language.PYTHON
    project_files = ("pyproject.toml",)

    def parse(self, path: Path, rel_path: str) -> Project:
        doc = load_toml(path, rel_path)
        manifest = PythonManifest(
            path,
            rel_path,
            name=get_string(doc, "project", "name"),
            version=get_string(doc, "project", "version"),
        )
        for dep_str in get_all_dependency_strings(doc):
            name = dep_canonical_name(dep_str)
            if name is not None:
                manifest.declared.add(name)
        is_workspace = get_table(doc, "tool", "uv", "workspace") is not None
        kind = ProjectKind.WORKSPACE if is_workspace else ProjectKind.PACKAGE
        return Project(kind, manifest)

    def finalize(self) -> None:
        # Second pass: keep only requirements naming a project in this repo,
        # reported under the name the project itself declares.
        by_canonical = {canonicalize_name(name): name for name in self.known_names()}
        for project in self._projects.values():
            manifest = cast(PythonManifest, project.manifest)
            manifest.dependencies = {
                by_canonical[name] for name in manifest.declared if name in by_canonical
            } - {project.name}
