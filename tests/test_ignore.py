"""Tests for changepacks.ignore."""

from __future__ import annotations

import pytest

from changepacks.ignore import IgnoreMatcher, build_matcher


class TestIgnoreMatcher:
    @pytest.mark.parametrize(
        ("patterns", "path", "ignored"),
        [
            (["examples/**"], "examples/demo/package.json", True),
            (["examples/**"], "packages/a/package.json", False),
            (["examples/"], "examples/demo/package.json", True),
            (["examples/"], "examples", False),
            (["package.json"], "deep/nested/package.json", True),
            (["/package.json"], "deep/nested/package.json", False),
            (["/package.json"], "package.json", True),
            (["*.csproj"], "src/App/App.csproj", True),
            (["**/fixtures/*"], "fixtures/Cargo.toml", True),
            (["**/fixtures/*"], "crates/x/fixtures/Cargo.toml", True),
            (["# comment", ""], "package.json", False),
        ],
    )
    def test_patterns(self, patterns: list[str], path: str, ignored: bool) -> None:
        assert IgnoreMatcher(patterns).is_ignored(path) is ignored

    def test_negation_reincludes(self) -> None:
        matcher = IgnoreMatcher(["examples/**", "!examples/keep/package.json"])
        assert matcher.is_ignored("examples/drop/package.json")
        assert not matcher.is_ignored("examples/keep/package.json")

    def test_last_match_wins(self) -> None:
        matcher = IgnoreMatcher(["!examples/keep/package.json", "examples/**"])
        assert matcher.is_ignored("examples/keep/package.json")


def test_build_matcher_empty() -> None:
    assert build_matcher([]) is None
    assert build_matcher(["x"]) is not None
