from __future__ import annotations

from typing import Sequence

import typer

from oidc_cli.errors import ConfigError, FlowCancelled


class ConsoleUI:
    """:class:`~oidc_cli.ui.types.UserInterface` backed by the terminal.

    Informational messages go to stderr so that stdout carries only token
    output. ``quiet`` suppresses them; prompts are always shown.
    """

    def __init__(self, *, quiet: bool = False) -> None:
        self.quiet = quiet

    def prompt(self, message: str) -> str:
        try:
            return typer.prompt(message, err=True)
        except typer.Abort:
            raise FlowCancelled() from None

    def display(self, message: str) -> None:
        if not self.quiet:
            typer.echo(message, err=True)

    def select(self, message: str, choices: Sequence[str]) -> str:
        if not choices:
            raise ConfigError("Nothing to select from")
        typer.echo(message, err=True)
        for i, choice in enumerate(choices, 1):
            typer.echo(f"  {i}. {choice}", err=True)
        while True:
            raw = self.prompt("Select a number")
            try:
                idx = int(raw) - 1
            except ValueError:
                idx = -1
            if 0 <= idx < len(choices):
                return choices[idx]
            typer.echo(f"Selection must be between 1 and {len(choices)}.", err=True)
