"""Publishing: pick each project's command and run it in dependency order."""

from __future__ import annotations

import logging

import click

from .errors import SubprocessSpawnError
from .graph import sort_by_dependencies
from .models import Config, Language, PublishResult
from .plan import normalize_path
from .project import Project
from .shell import run_shell

logger = logging.getLogger(__name__)


def resolve_publish_command(project: Project, config: Config) -> str:
    """Choose the publish command for a project.

    Lookup order: ``config.publish[<relative path>]``, then
    ``config.publish[<language key>]``, then the ecosystem default.
    """
    if project.rel_path in config.publish:
        return config.publish[project.rel_path]
    if project.language.publish_key in config.publish:
        return config.publish[project.language.publish_key]
    return project.manifest.default_publish_command()


def select_publish_projects(
    projects: list[Project],
    languages: list[Language] | None = None,
    paths: list[str] | None = None,
) -> list[Project]:
    """Filter by language and/or relative path, then order dependencies first."""
    wanted = {normalize_path(path) for path in paths or ()}
    selected = [
        p
        for p in projects
        if (not languages or p.language in languages) and (not wanted or p.rel_path in wanted)
    ]
    return sort_by_dependencies(selected)


async def publish_projects(
    projects: list[Project],
    config: Config,
    dry_run: bool = False,
    echo: bool = True,
) -> dict[str, PublishResult]:
    """Run publish commands one after another in the given order.

    A failing project does not stop the loop; its result records the error.

    Returns:
        Map of relative path → PublishResult, in publish order.
    """
    results: dict[str, PublishResult] = {}
    for project in projects:
        command = resolve_publish_command(project, config)
        if echo:
            click.echo(f"Publishing {project.name or project.rel_path}: {command}")
        if dry_run:
            results[project.rel_path] = PublishResult(result=True)
            continue
        try:
            status = await run_shell(command, project.manifest.directory)
        except SubprocessSpawnError as exc:
            logger.debug("spawn failed for %s", project.rel_path, exc_info=True)
            results[project.rel_path] = PublishResult(result=False, error=str(exc))
            continue
        if status == 0:
            results[project.rel_path] = PublishResult(result=True)
        else:
            results[project.rel_path] = PublishResult(
                result=False, error=f"'{command}' exited with status {status}"
            )
    return results
