"""gitignore-style path matching for the ``ignore`` config list.

Patterns follow the familiar gitignore rules: a leading ``!`` re-includes,
a trailing ``/`` only matches directories, a pattern containing a slash is
anchored to the repository root, and the last matching pattern wins.
Wildcards use fnmatch semantics on POSIX-style relative paths.
"""

from __future__ import annotations

from fnmatch import fnmatchcase
from posixpath import basename


class _Rule:
    def __init__(self, pattern: str) -> None:
        self.negated = pattern.startswith("!")
        if self.negated:
            pattern = pattern[1:]
        self.dir_only = pattern.endswith("/")
        pattern = pattern.rstrip("/")
        self.anchored = "/" in pattern
        self.pattern = pattern.lstrip("/")

    def _match_one(self, candidate: str) -> bool:
        if not self.anchored:
            return fnmatchcase(basename(candidate), self.pattern)
        if fnmatchcase(candidate, self.pattern):
            return True
        # "**/x" also matches "x" at the root
        return self.pattern.startswith("**/") and fnmatchcase(candidate, self.pattern[3:])

    def matches(self, rel_path: str) -> bool:
        parts = rel_path.split("/")
        # Parent directories first, then the file itself
        candidates = ["/".join(parts[:i]) for i in range(1, len(parts))]
        if not self.dir_only:
            candidates.append(rel_path)
        return any(self._match_one(candidate) for candidate in candidates)


class IgnoreMatcher:
    """Decides whether a repository-relative path is ignored."""

    def __init__(self, patterns: list[str]) -> None:
        self.rules = [
            _Rule(p.strip())
            for p in patterns
            if p.strip() and not p.strip().startswith("#")
        ]

    def is_ignored(self, rel_path: str) -> bool:
        ignored = False
        for rule in self.rules:
            if rule.matches(rel_path):
                ignored = not rule.negated
        return ignored


def build_matcher(patterns: list[str]) -> IgnoreMatcher | None:
    """Return a matcher for the patterns, or None when there are none."""
    if not patterns:
        return None
    return IgnoreMatcher(patterns)
