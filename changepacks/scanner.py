"""Repository scanning.

Feeds every tracked file to the project finders, then flags the projects
touched by uncommitted changes or by commits not yet on the base branch.
"""

from __future__ import annotations

import asyncio
import logging
import subprocess
from pathlib import Path

from .errors import BaseBranchNotFoundError, NotAWorkingDirectoryError, RepoNotFoundError
from .finders import ProjectFinder, all_finders
from .ignore import build_matcher
from .models import Config
from .project import Project
from .shell import git, git_paths

logger = logging.getLogger(__name__)


def find_repo_root(start: Path) -> Path:
    """Return the work tree root of the repository containing start.

    Raises:
        RepoNotFoundError: If start is not inside a git repository.
        NotAWorkingDirectoryError: If the repository has no work tree.
    """
    try:
        git("rev-parse", "--git-dir", cwd=start)
    except subprocess.CalledProcessError as exc:
        raise RepoNotFoundError(f"No git repository found at {start}") from exc
    try:
        top = git("rev-parse", "--show-toplevel", cwd=start)
    except subprocess.CalledProcessError as exc:
        raise NotAWorkingDirectoryError(
            f"Repository at {start} has no working directory"
        ) from exc
    if not top:
        raise NotAWorkingDirectoryError(f"Repository at {start} has no working directory")
    return Path(top)


def tracked_paths(root: Path) -> list[str]:
    return git_paths("ls-files", cwd=root)


def worktree_changes(root: Path) -> set[str]:
    """Paths with any staged, unstaged or untracked change.

    Rename and copy entries contribute both the new and the original path.
    """
    changed: set[str] = set()
    entries = iter(git_paths("status", "--porcelain", "-uall", cwd=root))
    for entry in entries:
        status, path = entry[:2], entry[3:]
        changed.add(path)
        if "R" in status or "C" in status:
            # -z puts the original path in the following entry
            original = next(entries, None)
            if original:
                changed.add(original)
    return changed


def base_ref(base_branch: str, remote: bool) -> str:
    if remote:
        return f"refs/remotes/origin/{base_branch}"
    return f"refs/heads/{base_branch}"


def base_changes(root: Path, base_branch: str, remote: bool) -> set[str]:
    """Paths that differ between the base branch tip and HEAD.

    Raises:
        BaseBranchNotFoundError: If the base branch ref does not exist.
    """
    ref = base_ref(base_branch, remote)
    if not git("rev-parse", "--verify", "--quiet", ref, cwd=root, check=False):
        raise BaseBranchNotFoundError(f"Base branch '{ref}' not found")
    return set(git_paths("diff", "--name-only", ref, "HEAD", cwd=root))


async def _visit(finders: list[ProjectFinder], path: Path, rel_path: str) -> None:
    claimed = [finder for finder in finders if finder.claims(path)]
    if not claimed:
        return
    results = await asyncio.gather(
        *(asyncio.to_thread(finder.visit, path, rel_path) for finder in claimed),
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, BaseException):
            raise result


async def scan(
    root: Path,
    finders: list[ProjectFinder],
    config: Config,
    remote: bool = False,
) -> list[Project]:
    """Discover projects under root and flag the changed ones.

    Returns:
        Every discovered project, sorted (workspaces first).
    """
    matcher = build_matcher(config.ignore)
    for rel_path in await asyncio.to_thread(tracked_paths, root):
        if matcher is not None and matcher.is_ignored(rel_path):
            logger.debug("ignoring %s", rel_path)
            continue
        await _visit(finders, root / rel_path, rel_path)

    for finder in finders:
        finder.finalize()

    changed = await asyncio.to_thread(worktree_changes, root)
    changed |= await asyncio.to_thread(base_changes, root, config.base_branch, remote)
    logger.debug("%d changed path(s)", len(changed))
    for rel_path in sorted(changed):
        for finder in finders:
            finder.check_changed(root / rel_path)

    return sorted(project for finder in finders for project in finder.projects())


async def discover(root: Path, config: Config, remote: bool = False) -> list[Project]:
    """Scan the repository with every supported finder."""
    return await scan(root, all_finders(root), config, remote)
