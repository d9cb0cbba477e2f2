"""Command handlers: init, changepack, check, update, config, publish.

Each handler does the work behind one CLI command. Handlers print with
click.echo, ask questions through a Prompter, and raise ChangepacksError
subclasses for anything fatal; the CLI layer turns those into exit codes.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import click

from .changelog import ChangelogStore, dump_config, init_changepacks, load_config
from .display import format_kind, format_project
from .errors import PublishFailedError
from .graph import render_tree
from .models import BumpKind, ChangeLogEntry, Config, Language
from .plan import UpdatePlan, build_plan, changepack_results, planned_projects
from .project import Project, ProjectKind
from .prompter import Prompter
from .publish import publish_projects, select_publish_projects
from .scanner import discover, find_repo_root

logger = logging.getLogger(__name__)

DEFAULT_BUMP_ORDER = (BumpKind.MAJOR, BumpKind.MINOR, BumpKind.PATCH)


class OutputFormat(str, Enum):
    STDOUT = "stdout"
    JSON = "json"


@dataclass
class CommandContext:
    """Per-invocation state shared by the command handlers."""

    root: Path
    config: Config
    store: ChangelogStore
    prompter: Prompter

    @classmethod
    def open(cls, start: Path, prompter: Prompter) -> CommandContext:
        root = find_repo_root(start)
        return cls(
            root=root,
            config=load_config(root),
            store=ChangelogStore(root),
            prompter=prompter,
        )

    async def projects(
        self, remote: bool = False, kind: ProjectKind | None = None
    ) -> list[Project]:
        projects = await discover(self.root, self.config, remote)
        if kind is not None:
            projects = [p for p in projects if p.kind is kind]
        return projects

    def plan(self, projects: list[Project]) -> UpdatePlan:
        return build_plan(self.store.read_all(), self.config, projects)


def _dump_json(data: dict) -> str:
    return json.dumps(
        {key: value.model_dump(by_alias=True, mode="json") for key, value in data.items()},
        indent=2,
    )


def handle_init(start: Path, dry_run: bool = False) -> Path:
    root = find_repo_root(start)
    config_path = init_changepacks(root, dry_run=dry_run)
    if dry_run:
        click.echo(f"Would create {config_path.relative_to(root).as_posix()}")
    else:
        click.echo(f"✓ Created {config_path.relative_to(root).as_posix()}")
    return config_path


def handle_config(ctx: CommandContext) -> None:
    click.echo(dump_config(ctx.config))


async def handle_changepack(
    ctx: CommandContext,
    kind_filter: ProjectKind | None = None,
    remote: bool = False,
    yes: bool = False,
    message: str | None = None,
    update_type: BumpKind | None = None,
    bump_order: tuple[BumpKind, ...] = DEFAULT_BUMP_ORDER,
) -> str | None:
    """Record a new changepack entry.

    Interactive mode walks the bump kinds in order, offering the projects
    not yet picked. With ``yes`` every project gets ``update_type`` (Patch
    when unset). Returns the new entry id, or None when nothing was written.
    """
    projects = await ctx.projects(remote, kind_filter)
    # Crates inheriting the workspace version are bumped through the workspace
    remaining = [p for p in projects if not p.inherits_workspace_version]
    changes: dict[str, BumpKind] = {}

    if yes:
        kind = update_type or BumpKind.PATCH
        changes = {p.rel_path: kind for p in remaining}
    else:
        kinds = (update_type,) if update_type else bump_order
        for i, kind in enumerate(kinds):
            if not remaining:
                break
            is_last = i == len(kinds) - 1
            if is_last and kind is BumpKind.PATCH and len(remaining) == 1:
                selected = list(remaining)
            else:
                defaults = [p for p in remaining if p.is_changed] if is_last else []
                selected = ctx.prompter.multi_select(
                    f"Select projects for a {kind.value} update",
                    [(format_project(p), p) for p in remaining],
                    defaults,
                )
            for project in selected:
                changes[project.rel_path] = kind
            remaining = [p for p in remaining if p not in selected]

    if not changes:
        click.echo("No projects selected.")
        return None

    note = message if message is not None else ctx.prompter.text("Describe the change")
    note = note.strip()
    if not note:
        click.echo("A note is required; no changepack written.")
        return None

    entry_id = ctx.store.write(ChangeLogEntry(changes=changes, note=note))
    for path, kind in sorted(changes.items()):
        click.echo(f"  {format_kind(kind)} {path}")
    click.echo(f"✓ Wrote changepack {entry_id}")
    return entry_id


async def handle_check(
    ctx: CommandContext,
    kind_filter: ProjectKind | None = None,
    output: OutputFormat = OutputFormat.STDOUT,
    remote: bool = False,
    tree: bool = False,
) -> None:
    all_projects = await ctx.projects(remote)
    plan = ctx.plan(all_projects)
    projects = [p for p in all_projects if kind_filter is None or p.kind is kind_filter]

    if output is OutputFormat.JSON:
        click.echo(_dump_json(changepack_results(projects, plan)))
        return

    click.echo(f"Found {len(projects)} projects")
    if tree:
        for line in render_tree(projects, lambda p: _project_line(p, plan)):
            click.echo(line)
        return
    for project in projects:
        click.echo(_project_line(project, plan))


def _project_line(project: Project, plan: UpdatePlan) -> str:
    entry = plan.get(project.rel_path)
    return format_project(project, entry.kind if entry else None)


async def handle_update(
    ctx: CommandContext,
    dry_run: bool = False,
    yes: bool = False,
    output: OutputFormat = OutputFormat.STDOUT,
    remote: bool = False,
) -> bool:
    """Apply the plan to every manifest and clear the changepack logs.

    Returns:
        True if manifests were rewritten.
    """
    projects = await ctx.projects(remote)
    plan = ctx.plan(projects)
    planned = planned_projects(plan, projects)

    if output is OutputFormat.JSON:
        click.echo(_dump_json(changepack_results(projects, plan)))
    elif not planned:
        click.echo("No updates pending.")
    else:
        click.echo("Pending updates:")
        for project, entry in planned:
            click.echo(f"  {format_project(project, entry.kind)}")

    if not planned or dry_run:
        return False
    if not yes and not ctx.prompter.confirm("Apply these updates?"):
        click.echo("Update cancelled.", err=True)
        return False

    await asyncio.gather(
        *(asyncio.to_thread(project.manifest.update_version, entry.kind) for project, entry in planned)
    )

    updated = [project for project, _ in planned]
    for project in projects:
        root = getattr(project.manifest, "workspace_root", None)
        if project.inherits_workspace_version and root in updated:
            project.manifest.version = root.version
            updated.append(project)

    await asyncio.gather(
        *(
            asyncio.to_thread(project.manifest.update_workspace_dependencies, updated)
            for project in projects
            if project.is_workspace
        )
    )
    await ctx.store.clear()

    if output is OutputFormat.STDOUT:
        click.echo(f"✓ Updated {len(planned)} project(s)")
    return True


async def handle_publish(
    ctx: CommandContext,
    dry_run: bool = False,
    yes: bool = False,
    output: OutputFormat = OutputFormat.STDOUT,
    remote: bool = False,
    languages: list[Language] | None = None,
    paths: list[str] | None = None,
) -> None:
    """Publish the selected projects, dependencies first.

    Raises:
        PublishFailedError: If any project's publish command failed.
    """
    projects = await ctx.projects(remote)
    selected = select_publish_projects(projects, languages, paths)
    stdout = output is OutputFormat.STDOUT

    if not selected:
        click.echo("{}" if not stdout else "No projects to publish.")
        return
    if stdout:
        click.echo("Publish order:")
        for project in selected:
            click.echo(f"  {format_project(project)}")
    if not yes and not dry_run and not ctx.prompter.confirm("Publish these projects?"):
        click.echo("Publish cancelled.", err=True)
        return

    results = await publish_projects(selected, ctx.config, dry_run=dry_run, echo=stdout)
    failed = [path for path, result in results.items() if not result.result]

    if not stdout:
        click.echo(_dump_json(results))
    elif failed:
        for path in failed:
            click.echo(f"  ✗ {path}: {results[path].error}", err=True)
    else:
        click.echo(f"✓ Published {len(results)} project(s)")

    if failed:
        raise PublishFailedError(failed)
