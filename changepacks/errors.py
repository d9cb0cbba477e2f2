"""Error taxonomy for changepacks.

Every failure the command surface reports is a ChangepacksError. The CLI
prints the message prefixed with "Error: " and exits non-zero, except for
UserCancelled, which is reported as a successful no-op.
"""

from __future__ import annotations


class ChangepacksError(Exception):
    """Base class for all changepacks failures."""


class RepoNotFoundError(ChangepacksError):
    """Raised when the current directory is not inside a git repository."""


class NotAWorkingDirectoryError(ChangepacksError):
    """Raised when the repository has no work tree (bare repository)."""


class BaseBranchNotFoundError(ChangepacksError):
    """Raised when the configured base branch cannot be resolved."""


class ConfigParseError(ChangepacksError):
    """Raised when .changepacks/config.json is not valid."""


class ManifestParseError(ChangepacksError):
    """Raised when a project manifest cannot be parsed."""


class ManifestWriteError(ChangepacksError):
    """Raised when a project manifest cannot be rewritten."""


class VersionError(ChangepacksError):
    """Raised when a version string cannot be bumped."""


class ChangelogParseError(ChangepacksError):
    """Raised when a changepack log entry cannot be deserialized."""


class ChangelogWriteError(ChangepacksError):
    """Raised when changepack log entries cannot be written or removed."""


class SubprocessSpawnError(ChangepacksError):
    """Raised when an external command cannot be started."""


class AlreadyInitializedError(ChangepacksError):
    """Raised by init when the config file already exists."""


class PublishFailedError(ChangepacksError):
    """Raised after the publish loop when one or more projects failed."""

    def __init__(self, projects: list[str]) -> None:
        self.projects = projects
        super().__init__(
            f"Failed to publish {len(projects)} project(s): {', '.join(projects)}"
        )


class UserCancelled(ChangepacksError):
    """Raised when the user aborts an interactive prompt."""
