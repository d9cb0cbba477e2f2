"""Shared test fixtures."""

from __future__ import annotations

import json
import shutil
import subprocess
from collections.abc import Callable, Iterable
from pathlib import Path

import pytest

from changepacks.models import Language
from changepacks.project import Manifest, Project, ProjectKind


class FakeManifest(Manifest):
    """In-memory manifest that records the versions written to it."""

    language = Language.NODE

    def __init__(self, path: Path, rel_path: str, language: Language, **kwargs) -> None:
        super().__init__(path, rel_path, **kwargs)
        self.language = language
        self.written: list[str] = []

    def write_version(self, new_version: str) -> None:
        self.written.append(new_version)

    def default_publish_command(self) -> str:
        return "echo default"


def _make_project(
    rel_path: str,
    name: str | None = None,
    version: str | None = "1.0.0",
    deps: Iterable[str] = (),
    kind: ProjectKind = ProjectKind.PACKAGE,
    language: Language = Language.NODE,
    root: Path = Path("/repo"),
) -> Project:
    manifest = FakeManifest(
        root / rel_path,
        rel_path,
        language,
        name=name,
        version=version,
        dependencies=set(deps),
    )
    return Project(kind, manifest)


@pytest.fixture
def make_project() -> Callable[..., Project]:
    """Factory for Projects backed by a FakeManifest."""
    return _make_project


class MockPrompter:
    """Scripted Prompter.

    selections: one entry per multi_select call, each a collection of
    relative paths to pick.
    """

    def __init__(
        self,
        selections: list[Iterable[str]] | None = None,
        confirm_answer: bool = True,
        text_answer: str = "",
    ) -> None:
        self.selections = list(selections or [])
        self.confirm_answer = confirm_answer
        self.text_answer = text_answer
        self.messages: list[str] = []

    def multi_select(self, message, options, defaults):
        self.messages.append(message)
        picked = set(self.selections.pop(0)) if self.selections else set()
        return [value for _, value in options if value.rel_path in picked]

    def confirm(self, message: str) -> bool:
        self.messages.append(message)
        return self.confirm_answer

    def text(self, message: str) -> str:
        self.messages.append(message)
        return self.text_answer


@pytest.fixture
def prompter() -> MockPrompter:
    return MockPrompter()


def write_file(root: Path, rel_path: str, content: str | dict) -> Path:
    """Write text (or a dict as indented JSON) under root, creating parents."""
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, dict):
        content = json.dumps(content, indent=2) + "\n"
    path.write_text(content, encoding="utf-8")
    return path


def run_git(root: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", "-c", "commit.gpgsign=false", *args],
        cwd=root,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """An empty git repository on branch main."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    root = tmp_path / "repo"
    root.mkdir()
    run_git(root, "init", "-q")
    run_git(root, "symbolic-ref", "HEAD", "refs/heads/main")
    run_git(root, "config", "user.email", "dev@example.com")
    run_git(root, "config", "user.name", "Dev")
    return root.resolve()


def commit_all(root: Path, message: str = "commit") -> None:
    run_git(root, "add", "-A")
    run_git(root, "commit", "-q", "-m", message)
