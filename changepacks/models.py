"""Data models for changepacks.

These Pydantic models represent the on-disk formats (config.json and the
changepack log entries) and the JSON documents printed by check, update
and publish. BumpKind and Language are the two closed enumerations every
other module shares.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BumpKind(str, Enum):
    """Semantic-version bump kinds.

    Ordered Major < Minor < Patch: the "smallest" kind is the strongest and
    wins when several entries target the same project.
    """

    MAJOR = "Major"
    MINOR = "Minor"
    PATCH = "Patch"

    @property
    def rank(self) -> int:
        return _BUMP_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, BumpKind):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, BumpKind):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, BumpKind):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, BumpKind):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def strongest(cls, *kinds: BumpKind) -> BumpKind:
        """Return the dominant kind (Major beats Minor beats Patch)."""
        return min(kinds, key=lambda kind: kind.rank)

    @classmethod
    def from_cli(cls, value: str) -> BumpKind:
        """Map a lowercase CLI choice ("major", "minor", "patch") to a kind."""
        return cls(value.capitalize())


_BUMP_ORDER = [BumpKind.MAJOR, BumpKind.MINOR, BumpKind.PATCH]


class Language(str, Enum):
    """Supported ecosystems. The value is the publish-config lookup key."""

    NODE = "node"
    RUST = "rust"
    PYTHON = "python"
    DART = "dart"
    CSHARP = "csharp"
    JAVA = "java"

    @property
    def rank(self) -> int:
        return list(Language).index(self)

    @property
    def publish_key(self) -> str:
        return self.value

    @property
    def display_name(self) -> str:
        return _LANGUAGE_NAMES[self]


_LANGUAGE_NAMES = {
    Language.NODE: "Node.js",
    Language.RUST: "Rust",
    Language.PYTHON: "Python",
    Language.DART: "Dart",
    Language.CSHARP: "C#",
    Language.JAVA: "Java",
}


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Config(_CamelModel):
    """Loaded from .changepacks/config.json.

    Attributes:
        ignore: gitignore-style patterns (with "!" negation) for tracked
            files that discovery should skip.
        base_branch: Branch diffed against HEAD to flag changed projects.
        latest_package: Optional relative path of the main package. Passed
            through for tooling that reads the config.
        publish: Publish command by relative manifest path or language key.
        update_on: Trigger glob → relative paths forced to a Patch update
            whenever a plan key matches the trigger.
    """

    ignore: list[str] = Field(default_factory=list)
    base_branch: str = "main"
    latest_package: str | None = None
    publish: dict[str, str] = Field(default_factory=dict)
    update_on: dict[str, list[str]] = Field(default_factory=dict)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ChangeLogEntry(BaseModel):
    """A single changepack_log_<id>.json file.

    Attributes:
        changes: Repository-relative manifest path → requested bump kind.
        note: Free-text description of the change.
        date: UTC timestamp of when the entry was recorded.
    """

    changes: dict[str, BumpKind]
    note: str
    date: datetime = Field(default_factory=_utc_now)


class ResultLog(BaseModel):
    """One contribution to a plan entry: the kind requested and its note."""

    type: BumpKind
    note: str


class ChangepackResult(_CamelModel):
    """Per-project document printed by `check --format json`."""

    logs: list[ResultLog] = Field(default_factory=list)
    version: str | None = None
    next_version: str | None = None
    name: str | None = None
    changed: bool = False
    path: str


class PublishResult(BaseModel):
    """Per-project outcome printed by `publish --format json`."""

    result: bool
    error: str | None = None
