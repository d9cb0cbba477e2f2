"""Project model.

A Project is either a workspace root or a package, wrapping the
language-specific Manifest that knows how to read and rewrite the file.
Projects are plain values: discovery fills them in, the plan builder reads
them and the update step asks their manifests to rewrite themselves.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import ClassVar

from .models import BumpKind, Language
from .versions import next_version

logger = logging.getLogger(__name__)

CHANGEPACKS_DIR = ".changepacks"


class ProjectKind(str, Enum):
    WORKSPACE = "workspace"
    PACKAGE = "package"


class Manifest(ABC):
    """A parsed project manifest for one ecosystem.

    Subclasses hold whatever they need to rewrite the file and implement
    write_version() plus default_publish_command(). Workspace manifests also
    override update_workspace_dependencies().

    Attributes:
        path: Absolute path to the manifest file.
        rel_path: POSIX path of the manifest relative to the repository root.
        name: Project name, when the manifest declares one.
        version: Current version, when the manifest declares one.
        dependencies: Intra-repo dependency identifiers (names or paths).
        inherits_workspace_version: True for Rust crates using
            ``version.workspace = true``.
    """

    language: ClassVar[Language]

    def __init__(
        self,
        path: Path,
        rel_path: str,
        name: str | None = None,
        version: str | None = None,
        dependencies: set[str] | None = None,
    ) -> None:
        self.path = path
        self.rel_path = rel_path
        self.name = name
        self.version = version
        self.dependencies: set[str] = set(dependencies or ())
        self.inherits_workspace_version = False

    @property
    def directory(self) -> Path:
        return self.path.parent

    def update_version(self, kind: BumpKind) -> str:
        """Bump the on-disk version and return the new version string."""
        new_version = next_version(self.version, kind)
        logger.debug("%s: %s -> %s", self.rel_path, self.version, new_version)
        self.write_version(new_version)
        self.version = new_version
        return new_version

    @abstractmethod
    def write_version(self, new_version: str) -> None:
        """Rewrite the version field in place, leaving other text untouched."""

    def update_workspace_dependencies(self, packages: list[Project]) -> None:
        """Rewrite workspace-level specifiers that point at updated packages."""

    @abstractmethod
    def default_publish_command(self) -> str:
        """Command used when config.json has no publish override."""


@dataclass(eq=False)
class Project:
    """A discovered workspace or package."""

    kind: ProjectKind
    manifest: Manifest
    is_changed: bool = False

    @property
    def is_workspace(self) -> bool:
        return self.kind is ProjectKind.WORKSPACE

    @property
    def name(self) -> str | None:
        return self.manifest.name

    @property
    def version(self) -> str | None:
        return self.manifest.version

    @property
    def path(self) -> Path:
        return self.manifest.path

    @property
    def rel_path(self) -> str:
        return self.manifest.rel_path

    @property
    def language(self) -> Language:
        return self.manifest.language

    @property
    def dependencies(self) -> set[str]:
        return self.manifest.dependencies

    @property
    def inherits_workspace_version(self) -> bool:
        return self.manifest.inherits_workspace_version

    def check_changed(self, changed_path: Path) -> bool:
        """Flag the project as changed if changed_path lives under it.

        Paths inside the .changepacks directory never mark a project.
        """
        if self.is_changed:
            return True
        try:
            inner = changed_path.relative_to(self.manifest.directory)
        except ValueError:
            return False
        if CHANGEPACKS_DIR in inner.parts:
            return False
        self.is_changed = True
        return True

    def sort_key(self) -> tuple:
        # Workspaces first, then language order, then name (unnamed last),
        # then version.
        return (
            0 if self.is_workspace else 1,
            self.language.rank,
            self.name is None,
            self.name or "",
            self.version is None,
            self.version or "",
        )

    def __lt__(self, other: Project) -> bool:
        return self.sort_key() < other.sort_key()

    def __repr__(self) -> str:
        return f"Project({self.kind.value}, {self.language.value}, {self.rel_path!r})"
