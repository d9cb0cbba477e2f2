"""Tests for changepacks.finders.python."""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import write_file

from changepacks.errors import ManifestWriteError
from changepacks.finders.python import PythonFinder
from changepacks.models import BumpKind
from changepacks.project import ProjectKind

ROOT_PYPROJECT = """\
[project]
name = "monorepo"
version = "0.1.0"
dependencies = [
    "pkg-alpha>=1.0.0",  # internal
    "requests>=2.0",
]

[dependency-groups]
dev = ["pytest>=8.0", "Pkg_Beta~=2.0"]

[tool.uv.workspace]
members = ["packages/*"]
"""

ALPHA_PYPROJECT = """\
[project]
name = "pkg-alpha"
version = "1.0.0"
dependencies = ["pkg_beta", "click>=8.0"]
"""

BETA_PYPROJECT = """\
[project]
name = "pkg-beta"
version = "2.0.0"

[project.optional-dependencies]
cli = ["pkg-alpha[extra]>=1.0"]
"""


@pytest.fixture
def python_repo(tmp_path: Path) -> Path:
    write_file(tmp_path, "pyproject.toml", ROOT_PYPROJECT)
    write_file(tmp_path, "packages/alpha/pyproject.toml", ALPHA_PYPROJECT)
    write_file(tmp_path, "packages/beta/pyproject.toml", BETA_PYPROJECT)
    return tmp_path


def discover(root: Path) -> dict:
    finder = PythonFinder(root)
    for path in sorted(root.rglob("pyproject.toml")):
        finder.visit(path, path.relative_to(root).as_posix())
    finder.finalize()
    return {p.rel_path: p for p in finder.projects()}


class TestClassification:
    def test_uv_workspace_with_project_table(self, python_repo: Path) -> None:
        root = discover(python_repo)["pyproject.toml"]
        assert root.kind is ProjectKind.WORKSPACE
        assert (root.name, root.version) == ("monorepo", "0.1.0")

    def test_member_packages(self, python_repo: Path) -> None:
        alpha = discover(python_repo)["packages/alpha/pyproject.toml"]
        assert alpha.kind is ProjectKind.PACKAGE
        assert alpha.version == "1.0.0"

    def test_internal_dependencies_use_declared_names(self, python_repo: Path) -> None:
        projects = discover(python_repo)
        assert projects["packages/alpha/pyproject.toml"].dependencies == {"pkg-beta"}
        assert projects["packages/beta/pyproject.toml"].dependencies == {"pkg-alpha"}
        assert projects["pyproject.toml"].dependencies == {"pkg-alpha", "pkg-beta"}


class TestWriteVersion:
    def test_round_trip_is_byte_identical(self, python_repo: Path) -> None:
        root = discover(python_repo)["pyproject.toml"]
        root.manifest.write_version("0.1.0")
        assert (python_repo / "pyproject.toml").read_text() == ROOT_PYPROJECT

    def test_bump(self, python_repo: Path) -> None:
        beta = discover(python_repo)["packages/beta/pyproject.toml"]
        beta.manifest.update_version(BumpKind.MAJOR)
        assert (python_repo / "packages/beta/pyproject.toml").read_text() == (
            BETA_PYPROJECT.replace('version = "2.0.0"', 'version = "3.0.0"')
        )

    def test_no_project_table(self, tmp_path: Path) -> None:
        write_file(tmp_path, "pyproject.toml", '[tool.uv.workspace]\nmembers = ["a"]\n')
        project = discover(tmp_path)["pyproject.toml"]
        assert project.version is None
        with pytest.raises(ManifestWriteError, match="project"):
            project.manifest.update_version(BumpKind.PATCH)


class TestWorkspaceDependencies:
    def test_rewrites_internal_requirements(self, python_repo: Path) -> None:
        projects = discover(python_repo)
        alpha = projects["packages/alpha/pyproject.toml"]
        beta = projects["packages/beta/pyproject.toml"]
        alpha.manifest.update_version(BumpKind.MINOR)
        beta.manifest.update_version(BumpKind.PATCH)

        projects["pyproject.toml"].manifest.update_workspace_dependencies([alpha, beta])

        text = (python_repo / "pyproject.toml").read_text()
        assert '"pkg-alpha>=1.1.0",  # internal' in text
        assert '"Pkg_Beta~=2.0.1"' in text
        assert '"requests>=2.0"' in text
        assert '"pytest>=8.0"' in text

    def test_publish_command(self, python_repo: Path) -> None:
        project = discover(python_repo)["pyproject.toml"]
        assert project.manifest.default_publish_command() == "uv publish"
