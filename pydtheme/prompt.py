"""Interactive prompting used while resolving settings and choosing themes."""

from typing import Optional, Protocol

import click


class Prompt(Protocol):
    """Capability for asking the user questions.

    The CLI uses ClickPrompt; tests pass a scripted implementation.
    """

    def ask(self, message: str, default: Optional[str] = None) -> str: ...

    def confirm(self, message: str, default: bool = False) -> bool: ...

    def select(self, message: str, options: list[str]) -> str: ...


class ClickPrompt:
    """Prompt implementation backed by click."""

    def ask(self, message: str, default: Optional[str] = None) -> str:
        return click.prompt(f"? {message}", default=default, type=str)

    def confirm(self, message: str, default: bool = False) -> bool:
        return click.confirm(f"? {message}", default=default)

    def select(self, message: str, options: list[str]) -> str:
        """Show a numbered menu and return the chosen option."""
        if not options:
            raise ValueError("select() needs at least one option")

        click.echo(f"? {message}")
        for index, option in enumerate(options, start=1):
            click.echo(f"  {index}) {option}")
        choice = click.prompt(
            "  Choose",
            type=click.IntRange(1, len(options)),
            default=1,
        )
        return options[choice - 1]
