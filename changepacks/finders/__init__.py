"""Per-ecosystem project finders."""

from __future__ import annotations

from pathlib import Path

from .base import ProjectFinder
from .csharp import CSharpFinder
from .dart import DartFinder
from .java import JavaFinder
from .node import NodeFinder
from .python import PythonFinder
from .rust import RustFinder

FINDER_TYPES: tuple[type[ProjectFinder], ...] = (
    NodeFinder,
    RustFinder,
    PythonFinder,
    DartFinder,
    CSharpFinder,
    JavaFinder,
)


def all_finders(root: Path) -> list[ProjectFinder]:
    return [finder_type(root) for finder_type in FINDER_TYPES]


__all__ = [
    "CSharpFinder",
    "DartFinder",
    "FINDER_TYPES",
    "JavaFinder",
    "NodeFinder",
    "ProjectFinder",
    "PythonFinder",
    "RustFinder",
    "all_finders",
]
