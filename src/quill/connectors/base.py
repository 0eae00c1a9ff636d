"""Connector protocol and shared types."""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from quill.app import Quill


@dataclass
class Command:
    """A command typed by the user: a verb plus positional arguments."""

    name: str
    args: list[str] = field(default_factory=list)


def parse_command(text: str) -> Command | None:
    """Split a line into a Command. None for blank input."""
    try:
        parts = shlex.split(text)
    except ValueError:
        parts = text.split()
    if not parts:
        return None
    return Command(name=parts[0].lower(), args=parts[1:])


@runtime_checkable
class Connector(Protocol):
    """Protocol that all view-layer connectors must implement."""

    @property
    def name(self) -> str: ...

    async def start(self, app: Quill) -> None:
        """Run the interaction loop against the given app until the user quits."""
        ...

    async def stop(self) -> None:
        """Gracefully stop the connector."""
        ...
