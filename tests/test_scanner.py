"""Tests for changepacks.scanner."""

from __future__ import annotations

import asyncio
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from conftest import commit_all, run_git, write_file

from changepacks.errors import (
    BaseBranchNotFoundError,
    ManifestParseError,
    RepoNotFoundError,
)
from changepacks.finders import NodeFinder, all_finders
from changepacks.models import Config
from changepacks.project import ProjectKind
from changepacks.scanner import (
    base_changes,
    base_ref,
    discover,
    find_repo_root,
    scan,
    worktree_changes,
)


def fake_git_paths(tracked: list[str], status: list[str], diff: list[str]):
    def git_paths(*args: str, cwd: Path | None = None) -> list[str]:
        return {"ls-files": tracked, "status": status, "diff": diff}[args[0]]

    return git_paths


@pytest.fixture
def node_workspace(tmp_path: Path) -> Path:
    write_file(tmp_path, "package.json", {"name": "root", "private": True})
    write_file(tmp_path, "pnpm-workspace.yaml", "packages:\n  - packages/*\n")
    write_file(
        tmp_path,
        "packages/a/package.json",
        {"name": "a", "version": "1.0.0", "dependencies": {"b": "workspace:*"}},
    )
    write_file(tmp_path, "packages/a/src/x.js", "export const x = 1;\n")
    write_file(tmp_path, "packages/b/package.json", {"name": "b", "version": "1.0.0"})
    return tmp_path


TRACKED = [
    "package.json",
    "pnpm-workspace.yaml",
    "packages/a/package.json",
    "packages/a/src/x.js",
    "packages/b/package.json",
]


class TestScan:
    @patch("changepacks.scanner.git", return_value="abc123")
    @patch("changepacks.scanner.git_paths")
    def test_worktree_change_flags_owning_project(
        self, mock_git_paths: MagicMock, mock_git: MagicMock, node_workspace: Path
    ) -> None:
        mock_git_paths.side_effect = fake_git_paths(TRACKED, [" M packages/a/src/x.js"], [])

        projects = asyncio.run(discover(node_workspace, Config()))

        by_path = {p.rel_path: p for p in projects}
        assert by_path["packages/a/package.json"].is_changed
        assert not by_path["packages/b/package.json"].is_changed
        # The root workspace contains every path
        assert by_path["package.json"].is_changed
        assert by_path["package.json"].kind is ProjectKind.WORKSPACE
        assert by_path["packages/a/package.json"].dependencies == {"b"}

    @patch("changepacks.scanner.git", return_value="abc123")
    @patch("changepacks.scanner.git_paths")
    def test_base_diff_flags_project(
        self, mock_git_paths: MagicMock, mock_git: MagicMock, node_workspace: Path
    ) -> None:
        mock_git_paths.side_effect = fake_git_paths(TRACKED, [], ["packages/b/package.json"])
        finder = NodeFinder(node_workspace)

        asyncio.run(scan(node_workspace, [finder], Config(base_branch="develop"), remote=True))

        by_path = {p.rel_path: p for p in finder.projects()}
        assert by_path["packages/b/package.json"].is_changed
        assert not by_path["packages/a/package.json"].is_changed
        mock_git.assert_called_once_with(
            "rev-parse",
            "--verify",
            "--quiet",
            "refs/remotes/origin/develop",
            cwd=node_workspace,
            check=False,
        )

    @patch("changepacks.scanner.git", return_value="abc123")
    @patch("changepacks.scanner.git_paths")
    def test_changepacks_dir_changes_ignored(
        self, mock_git_paths: MagicMock, mock_git: MagicMock, node_workspace: Path
    ) -> None:
        mock_git_paths.side_effect = fake_git_paths(
            TRACKED, ["?? .changepacks/changepack_log_1.json"], []
        )
        projects = asyncio.run(discover(node_workspace, Config()))
        assert not any(p.is_changed for p in projects)

    @patch("changepacks.scanner.git", return_value="abc123")
    @patch("changepacks.scanner.git_paths")
    def test_ignore_patterns(
        self, mock_git_paths: MagicMock, mock_git: MagicMock, node_workspace: Path
    ) -> None:
        mock_git_paths.side_effect = fake_git_paths(TRACKED, [], [])
        config = Config(ignore=["packages/**", "!packages/b/package.json"])
        projects = asyncio.run(discover(node_workspace, config))
        assert sorted(p.rel_path for p in projects) == ["package.json", "packages/b/package.json"]

    @patch("changepacks.scanner.git", return_value="abc123")
    @patch("changepacks.scanner.git_paths")
    def test_parse_error_is_fatal(
        self, mock_git_paths: MagicMock, mock_git: MagicMock, node_workspace: Path
    ) -> None:
        write_file(node_workspace, "packages/b/package.json", "{ broken")
        mock_git_paths.side_effect = fake_git_paths(TRACKED, [], [])
        with pytest.raises(ManifestParseError, match="packages/b/package.json"):
            asyncio.run(discover(node_workspace, Config()))

    @patch("changepacks.scanner.git", return_value="")
    @patch("changepacks.scanner.git_paths")
    def test_missing_base_branch(
        self, mock_git_paths: MagicMock, mock_git: MagicMock, node_workspace: Path
    ) -> None:
        mock_git_paths.side_effect = fake_git_paths(TRACKED, [], [])
        with pytest.raises(BaseBranchNotFoundError, match="refs/heads/main"):
            asyncio.run(discover(node_workspace, Config()))


class TestWorktreeChanges:
    @patch("changepacks.scanner.git_paths")
    def test_rename_includes_both_paths(self, mock_git_paths: MagicMock, tmp_path: Path) -> None:
        mock_git_paths.return_value = ["R  new/name.js", "old/name.js", " M other.js", "?? added.js"]
        assert worktree_changes(tmp_path) == {"new/name.js", "old/name.js", "other.js", "added.js"}


def test_base_ref() -> None:
    assert base_ref("main", remote=False) == "refs/heads/main"
    assert base_ref("main", remote=True) == "refs/remotes/origin/main"


@patch("changepacks.scanner.git", side_effect=subprocess.CalledProcessError(128, ["git"]))
def test_repo_not_found(mock_git: MagicMock, tmp_path: Path) -> None:
    with pytest.raises(RepoNotFoundError):
        find_repo_root(tmp_path)


class TestWithRealGit:
    def test_discovers_and_diffs(self, git_repo: Path) -> None:
        write_file(git_repo, "package.json", {"name": "web", "version": "1.0.0"})
        write_file(git_repo, "crates/core/Cargo.toml", '[package]\nname = "core"\nversion = "0.1.0"\n')
        run_git(git_repo, "add", "package.json", "crates")
        run_git(git_repo, "commit", "-q", "-m", "init")
        run_git(git_repo, "checkout", "-q", "-b", "feature")
        write_file(git_repo, "crates/core/src/lib.rs", "pub fn f() {}\n")
        commit_all(git_repo, "feature work")

        root = find_repo_root(git_repo / "crates")
        projects = asyncio.run(discover(root, Config()))

        by_path = {p.rel_path: p for p in projects}
        assert set(by_path) == {"package.json", "crates/core/Cargo.toml"}
        assert by_path["crates/core/Cargo.toml"].is_changed

    def test_base_changes_against_main(self, git_repo: Path) -> None:
        write_file(git_repo, "a.txt", "a\n")
        commit_all(git_repo)
        run_git(git_repo, "checkout", "-q", "-b", "feature")
        write_file(git_repo, "b.txt", "b\n")
        commit_all(git_repo)
        assert base_changes(git_repo, "main", remote=False) == {"b.txt"}

    def test_missing_remote_base(self, git_repo: Path) -> None:
        write_file(git_repo, "a.txt", "a\n")
        commit_all(git_repo)
        with pytest.raises(BaseBranchNotFoundError):
            base_changes(git_repo, "main", remote=True)

    def test_all_finders_cover_every_language(self, git_repo: Path) -> None:
        assert len({finder.language for finder in all_finders(git_repo)}) == 6
