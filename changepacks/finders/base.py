"""Common machinery for the per-ecosystem project finders.

A finder is handed every tracked path in the repository. It claims the
manifest files it understands, parses them into Projects, and afterwards
flags projects touched by changed paths.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from fnmatch import fnmatch
from pathlib import Path
from typing import ClassVar

from ..errors import ManifestParseError, ManifestWriteError
from ..models import Language
from ..project import Project

logger = logging.getLogger(__name__)

_INDENT_RE = re.compile(r"^([ \t]+)\S", re.MULTILINE)


def detect_indent(text: str, default: str = "  ") -> str:
    """Return the indentation unit used by the first indented line."""
    match = _INDENT_RE.search(text)
    return match.group(1) if match else default


def read_manifest(path: Path, rel_path: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestParseError(f"Failed to read {rel_path}: {exc}") from exc


def write_manifest(path: Path, rel_path: str, text: str) -> None:
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise ManifestWriteError(f"Failed to write {rel_path}: {exc}") from exc


class ProjectFinder(ABC):
    """Discovers the projects of one ecosystem.

    Subclasses set ``language`` and ``project_files`` (basenames or
    fnmatch patterns such as ``*.csproj``) and implement parse().

    Projects are indexed by absolute manifest path, so visiting the same
    path twice is a no-op.
    """

    language: ClassVar[Language]
    project_files: ClassVar[tuple[str, ...]]

    def __init__(self, root: Path) -> None:
        self.root = root
        self._projects: dict[Path, Project] = {}

    def claims(self, path: Path) -> bool:
        return any(fnmatch(path.name, pattern) for pattern in self.project_files)

    def visit(self, path: Path, rel_path: str) -> None:
        if path in self._projects or not self.claims(path):
            return
        project = self.parse(path, rel_path)
        logger.debug("found %r", project)
        self._projects[path] = project

    @abstractmethod
    def parse(self, path: Path, rel_path: str) -> Project:
        """Read the manifest at path and classify it."""

    def finalize(self) -> None:
        """Hook run once every tracked path has been visited."""

    def projects(self) -> list[Project]:
        return list(self._projects.values())

    def check_changed(self, path: Path) -> None:
        for project in self._projects.values():
            project.check_changed(path)

    def known_names(self) -> set[str]:
        return {p.name for p in self._projects.values() if p.name is not None}
