"""Tests for changepacks.cli."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner
from conftest import MockPrompter, commit_all, write_file

from changepacks.cli import cli
from changepacks.errors import UserCancelled


class CancellingPrompter(MockPrompter):
    def confirm(self, message: str) -> bool:
        raise UserCancelled("Cancelled")


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def repo(git_repo: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    write_file(git_repo, "package.json", {"name": "x", "version": "1.0.0"})
    commit_all(git_repo, "init")
    monkeypatch.chdir(git_repo)
    return git_repo


def invoke(runner: CliRunner, args: list[str], prompter: MockPrompter | None = None):
    return runner.invoke(cli, args, obj={"prompter": prompter or MockPrompter()})


class TestInit:
    def test_creates_config(self, runner: CliRunner, repo: Path) -> None:
        result = invoke(runner, ["init"])

        assert result.exit_code == 0, result.output
        assert (repo / ".changepacks" / "config.json").read_text() == "{}\n"

    def test_already_initialized(self, runner: CliRunner, repo: Path) -> None:
        invoke(runner, ["init"])
        result = invoke(runner, ["init"])

        assert result.exit_code == 1
        assert "Error: Changepacks is already initialized" in result.output

    def test_outside_repository(
        self, runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
        monkeypatch.chdir(tmp_path)

        result = invoke(runner, ["check"])

        assert result.exit_code == 1
        assert "Error: No git repository found" in result.output


def test_config_prints_effective_settings(runner: CliRunner, repo: Path) -> None:
    write_file(repo, ".changepacks/config.json", {"baseBranch": "main", "ignore": ["docs/**"]})

    result = invoke(runner, ["config"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["baseBranch"] == "main"
    assert data["ignore"] == ["docs/**"]
    assert data["updateOn"] == {}


def test_default_command_records_entry(runner: CliRunner, repo: Path) -> None:
    result = invoke(runner, ["-y", "-m", "fix bug", "-u", "minor"])

    assert result.exit_code == 0, result.output
    assert "Wrote changepack" in result.output
    [log] = list((repo / ".changepacks").glob("changepack_log_*.json"))
    data = json.loads(log.read_text())
    assert data["changes"] == {"package.json": "Minor"}
    assert data["note"] == "fix bug"


def test_check_json(runner: CliRunner, repo: Path) -> None:
    invoke(runner, ["-y", "-m", "fix"])

    result = invoke(runner, ["check", "--format", "json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["package.json"]["nextVersion"] == "1.0.1"
    assert data["package.json"]["name"] == "x"


def test_update_yes(runner: CliRunner, repo: Path) -> None:
    invoke(runner, ["-y", "-m", "feature", "-u", "major"])

    result = invoke(runner, ["update", "--yes"])

    assert result.exit_code == 0, result.output
    assert json.loads((repo / "package.json").read_text())["version"] == "2.0.0"
    assert list((repo / ".changepacks").iterdir()) == []


def test_cancelled_prompt_exits_cleanly(runner: CliRunner, repo: Path) -> None:
    invoke(runner, ["-y", "-m", "fix"])

    result = invoke(runner, ["update"], CancellingPrompter())

    assert result.exit_code == 0
    assert "Cancelled" in result.output
    assert json.loads((repo / "package.json").read_text())["version"] == "1.0.0"


@patch("changepacks.publish.run_shell", new_callable=AsyncMock, return_value=1)
def test_publish_failure_exit_code(mock_run: MagicMock, runner: CliRunner, repo: Path) -> None:
    result = invoke(runner, ["publish", "--yes", "--language", "node"])

    assert result.exit_code == 1
    assert "Error: Failed to publish 1 project(s): package.json" in result.output


def test_publish_dry_run_lists_commands(runner: CliRunner, repo: Path) -> None:
    result = invoke(runner, ["publish", "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "Publishing x: npm publish" in result.output
