from __future__ import annotations

from typing import Protocol, Sequence


class UserInterface(Protocol):
    """Terminal capabilities the login flow may use. The core never prints directly."""

    def prompt(self, message: str) -> str:
        ...

    def display(self, message: str) -> None:
        ...

    def select(self, message: str, choices: Sequence[str]) -> str:
        ...
