"""CLI entry point for changepacks."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from .errors import ChangepacksError, UserCancelled
from .models import BumpKind, Language
from .pipeline import (
    CommandContext,
    OutputFormat,
    handle_changepack,
    handle_check,
    handle_config,
    handle_init,
    handle_publish,
    handle_update,
)
from .project import ProjectKind
from .prompter import ClickPrompter

FILTER_CHOICE = click.Choice([kind.value for kind in ProjectKind])
FORMAT_CHOICE = click.Choice([fmt.value for fmt in OutputFormat])
BUMP_CHOICE = click.Choice(["major", "minor", "patch"])
LANGUAGE_CHOICE = click.Choice([language.value for language in Language])


def _run(handler, *args, **kwargs):
    """Call a handler (sync or async) and map failures to exit codes."""
    try:
        result = handler(*args, **kwargs)
        if asyncio.iscoroutine(result):
            result = asyncio.run(result)
        return result
    except UserCancelled as exc:
        click.echo(str(exc) or "Cancelled", err=True)
        return None
    except ChangepacksError as exc:
        raise click.ClickException(str(exc)) from exc


def _context(ctx: click.Context) -> CommandContext:
    return _run(CommandContext.open, Path.cwd(), ctx.obj["prompter"])


def _format_option(func):
    return click.option(
        "--format",
        "output",
        type=FORMAT_CHOICE,
        default=OutputFormat.STDOUT.value,
        show_default=True,
        help="Output format.",
    )(func)


def _remote_option(func):
    return click.option(
        "-r",
        "--remote",
        is_flag=True,
        help="Diff against origin/<base branch> instead of the local branch.",
    )(func)


@click.group(invoke_without_command=True)
@click.version_option(package_name="changepacks")
@click.option("-f", "--filter", "kind_filter", type=FILTER_CHOICE, help="Only list workspaces or packages.")
@_remote_option
@click.option("-y", "--yes", is_flag=True, help="Select every project without prompting.")
@click.option("-m", "--message", help="Note for the changepack entry.")
@click.option("-u", "--update-type", type=BUMP_CHOICE, help="Bump kind to record.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(
    ctx: click.Context,
    kind_filter: str | None,
    remote: bool,
    yes: bool,
    message: str | None,
    update_type: str | None,
    verbose: bool,
) -> None:
    """Version bumps and publishing for multi-language monorepos.

    Without a subcommand, records a new changepack entry.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj.setdefault("prompter", ClickPrompter())
    if ctx.invoked_subcommand is not None:
        return
    _run(
        handle_changepack,
        _context(ctx),
        kind_filter=ProjectKind(kind_filter) if kind_filter else None,
        remote=remote,
        yes=yes,
        message=message,
        update_type=BumpKind.from_cli(update_type) if update_type else None,
    )


@cli.command()
@click.option("--dry-run", is_flag=True, help="Check only, write nothing.")
def init(dry_run: bool) -> None:
    """Create .changepacks/config.json in the repository root."""
    _run(handle_init, Path.cwd(), dry_run=dry_run)


@cli.command()
@click.option("-f", "--filter", "kind_filter", type=FILTER_CHOICE, help="Only list workspaces or packages.")
@_format_option
@_remote_option
@click.option("--tree", is_flag=True, help="Show projects as a dependency tree.")
@click.pass_context
def check(
    ctx: click.Context, kind_filter: str | None, output: str, remote: bool, tree: bool
) -> None:
    """Show discovered projects and pending version bumps."""
    _run(
        handle_check,
        _context(ctx),
        kind_filter=ProjectKind(kind_filter) if kind_filter else None,
        output=OutputFormat(output),
        remote=remote,
        tree=tree,
    )


@cli.command()
@click.option("--dry-run", is_flag=True, help="Print the plan without applying it.")
@click.option("-y", "--yes", is_flag=True, help="Skip the confirmation prompt.")
@_format_option
@_remote_option
@click.pass_context
def update(ctx: click.Context, dry_run: bool, yes: bool, output: str, remote: bool) -> None:
    """Apply pending changepacks to project manifests."""
    _run(
        handle_update,
        _context(ctx),
        dry_run=dry_run,
        yes=yes,
        output=OutputFormat(output),
        remote=remote,
    )


@cli.command()
@click.pass_context
def config(ctx: click.Context) -> None:
    """Print the effective configuration."""
    _run(handle_config, _context(ctx))


@cli.command()
@click.option("--dry-run", is_flag=True, help="Print commands without running them.")
@click.option("-y", "--yes", is_flag=True, help="Skip the confirmation prompt.")
@_format_option
@_remote_option
@click.option("--language", "languages", multiple=True, type=LANGUAGE_CHOICE, help="Only publish this language (repeatable).")
@click.option("--project", "paths", multiple=True, help="Only publish this relative manifest path (repeatable).")
@click.pass_context
def publish(
    ctx: click.Context,
    dry_run: bool,
    yes: bool,
    output: str,
    remote: bool,
    languages: tuple[str, ...],
    paths: tuple[str, ...],
) -> None:
    """Run each project's publish command in dependency order."""
    _run(
        handle_publish,
        _context(ctx),
        dry_run=dry_run,
        yes=yes,
        output=OutputFormat(output),
        remote=remote,
        languages=[Language(language) for language in languages],
        paths=list(paths),
    )


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
