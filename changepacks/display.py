"""Human-readable project and plan lines for terminal output."""

from __future__ import annotations

import click

from .models import BumpKind
from .project import Project
from .versions import next_version

_KIND_COLORS = {
    BumpKind.MAJOR: "red",
    BumpKind.MINOR: "yellow",
    BumpKind.PATCH: "green",
}


def format_kind(kind: BumpKind) -> str:
    return click.style(kind.value, fg=_KIND_COLORS[kind], bold=True)


def format_update(current: str | None, kind: BumpKind) -> str:
    """``v1.2.3 → v1.3.0``; a missing version reads as 0.0.0."""
    current = current or "0.0.0"
    return f"v{current} → v{next_version(current, kind)}"


def format_project(project: Project, kind: BumpKind | None = None) -> str:
    """One line describing a project, optionally with its pending bump.

    Example:
        [Workspace - Node.js] my-app (v1.0.0 → v1.0.1) - package.json
    """
    if project.is_workspace:
        tag = f"[Workspace - {project.language.display_name}]"
    else:
        tag = f"[{project.language.display_name}]"
    version = f"v{project.version}" if project.version else "unknown"
    if kind is not None:
        version = format_update(project.version, kind)
    changed = click.style(" (changed)", fg="yellow") if project.is_changed else ""
    return " ".join(
        [
            click.style(tag, fg="bright_blue", bold=True),
            click.style(project.name or "unknown", fg="bright_white", bold=True),
            click.style(f"({version})", fg="bright_green"),
            click.style("-", fg="bright_cyan"),
            click.style(project.rel_path, fg="bright_black") + changed,
        ]
    )
