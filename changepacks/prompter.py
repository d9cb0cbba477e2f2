"""Interactive prompting.

The command handlers talk to the user only through the Prompter protocol,
so tests can drive them with a scripted double.
"""

from __future__ import annotations

from typing import Protocol, TypeVar

import click

from .errors import UserCancelled

T = TypeVar("T")


class Prompter(Protocol):
    def multi_select(
        self, message: str, options: list[tuple[str, T]], defaults: list[T]
    ) -> list[T]:
        """Let the user pick any number of options (label, value)."""
        ...

    def confirm(self, message: str) -> bool: ...

    def text(self, message: str) -> str: ...


class ClickPrompter:
    """Prompter backed by click's terminal prompts.

    multi_select lists the options with numbers and reads a comma or space
    separated list of choices; an empty answer keeps the defaults. Prompts
    go to stderr so JSON output on stdout stays parseable.
    """

    def multi_select(
        self, message: str, options: list[tuple[str, T]], defaults: list[T]
    ) -> list[T]:
        if not options:
            return []
        click.echo(message, err=True)
        for number, (label, value) in enumerate(options, start=1):
            mark = "x" if value in defaults else " "
            click.echo(f"  [{mark}] {number}. {label}", err=True)
        while True:
            answer = self._prompt(
                "Select by number (comma separated, empty keeps marked)",
                default="",
                show_default=False,
            )
            if not answer.strip():
                return [value for _, value in options if value in defaults]
            try:
                picked = {int(token) for token in answer.replace(",", " ").split()}
            except ValueError:
                click.echo("Please enter numbers only.", err=True)
                continue
            if not all(1 <= number <= len(options) for number in picked):
                click.echo(f"Choices must be between 1 and {len(options)}.", err=True)
                continue
            return [value for number, (_, value) in enumerate(options, start=1) if number in picked]

    def confirm(self, message: str) -> bool:
        try:
            return click.confirm(message, default=False, err=True)
        except click.Abort as exc:
            raise UserCancelled("Cancelled") from exc

    def text(self, message: str) -> str:
        return self._prompt(message, default="", show_default=False)

    def _prompt(self, message: str, **kwargs) -> str:
        try:
            return click.prompt(message, err=True, **kwargs)
        except click.Abort as exc:
            raise UserCancelled("Cancelled") from exc
