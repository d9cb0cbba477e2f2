"""Dart projects (pubspec.yaml).

YAML is read with PyYAML for classification, but written back with
line-level edits so comments and layout stay exactly as the author left
them.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import cast

import yaml

from ..errors import ManifestParseError
from ..models import Language
from ..project import Manifest, Project, ProjectKind
from ..versions import rewrite_version_spec
from .base import ProjectFinder, read_manifest, write_manifest

DEPENDENCY_SECTIONS = ("dependencies", "dev_dependencies")

_VERSION_RE = re.compile(r"^(version:[ \t]*)([\"']?)([^\"'\s#]*)\2", re.MULTILINE)
_NAME_RE = re.compile(r"^name:.*$", re.MULTILINE)
_KEY_RE = re.compile(r"^([ \t]*)([A-Za-z0-9_]+):[ \t]*(.*?)[ \t]*(#.*)?$")


class DartManifest(Manifest):
    language = Language.DART

    def __init__(self, path: Path, rel_path: str, **kwargs) -> None:
        super().__init__(path, rel_path, **kwargs)
        self.declared: set[str] = set()

    def write_version(self, new_version: str) -> None:
        text = read_manifest(self.path, self.rel_path)
        new_text, count = _VERSION_RE.subn(
            lambda m: f"{m.group(1)}{m.group(2)}{new_version}{m.group(2)}", text, count=1
        )
        if count == 0:
            line = f"version: {new_version}\n"
            name_line = _NAME_RE.search(text)
            if name_line is None:
                new_text = line + text
            else:
                end = name_line.end()
                if end == len(text):
                    new_text = text + "\n" + line.rstrip("\n")
                else:
                    new_text = text[: end + 1] + line + text[end + 1 :]
        write_manifest(self.path, self.rel_path, new_text)

    def update_workspace_dependencies(self, packages: list[Project]) -> None:
        versions = {
            p.name: p.version
            for p in packages
            if p.language is Language.DART and p.name and p.version
        }
        if not versions.keys() & self.declared:
            return
        text = read_manifest(self.path, self.rel_path)
        lines = text.splitlines(keepends=True)
        section: str | None = None
        current: tuple[str, int] | None = None  # (dependency name, its indent)
        for i, line in enumerate(lines):
            match = _KEY_RE.match(line.rstrip("\r\n"))
            if match is None:
                continue
            indent, key, value = len(match.group(1)), match.group(2), match.group(3)
            if indent == 0:
                section = key if key in DEPENDENCY_SECTIONS else None
                current = None
                continue
            if section is None:
                continue
            if current is not None and indent > current[1]:
                # Nested map form: "  pkg:\n    version: ^1.0.0"
                if key == "version":
                    lines[i] = _rewrite_line(line, value, versions[current[0]])
                continue
            current = None
            if key not in versions:
                continue
            if value:
                lines[i] = _rewrite_line(line, value, versions[key])
            else:
                current = (key, indent)
        new_text = "".join(lines)
        if new_text != text:
            write_manifest(self.path, self.rel_path, new_text)

    def default_publish_command(self) -> str:
        return "dart pub publish"


def _rewrite_line(line: str, value: str, version: str) -> str:
    spec = value.strip("\"'")
    new_spec = rewrite_version_spec(spec, version)
    if new_spec is None:
        return line
    quoted = value.replace(spec, new_spec, 1)
    head, sep, tail = line.partition(":")
    return head + sep + tail.replace(value, quoted, 1)


class DartFinder(ProjectFinder):
    language = Language.DART
    project_files = ("pubspec.yaml",)

    def parse(self, path: Path, rel_path: str) -> Project:
        text = read_manifest(path, rel_path)
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise ManifestParseError(f"Failed to parse {rel_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ManifestParseError(f"Failed to parse {rel_path}: not a mapping")
        name = data.get("name")
        version = data.get("version")
        manifest = DartManifest(
            path,
            rel_path,
            name=str(name) if name is not None else None,
            version=str(version) if version is not None else None,
        )
        for section in DEPENDENCY_SECTIONS:
            deps = data.get(section)
            if isinstance(deps, dict):
                manifest.declared.update(str(dep) for dep in deps)
        is_workspace = "workspace" in data or (path.parent / "melos.yaml").is_file()
        kind = ProjectKind.WORKSPACE if is_workspace else ProjectKind.PACKAGE
        return Project(kind, manifest)

    def finalize(self) -> None:
        known = self.known_names()
        for project in self._projects.values():
            manifest = cast(DartManifest, project.manifest)
            manifest.dependencies = (manifest.declared & known) - {project.name}
