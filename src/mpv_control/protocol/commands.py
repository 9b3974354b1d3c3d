"""Command envelopes sent to the player.

A command is an ordered list of JSON atoms wrapped in an object:

    {"command": ["get_property", "playback-time"]}

Commands carry no id. Responses are matched to them purely by order,
see :mod:`mpv_control.queue`.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

# UTF-8, one JSON object per line
ENCODING = "utf-8"
NEWLINE = "\n"

Atom = str | int | float | bool | None


class CommandName(str, Enum):
    """Player commands used by this library."""

    GET_PROPERTY = "get_property"
    SET_PROPERTY = "set_property"
    CYCLE = "cycle"
    SEEK = "seek"
    PLAYLIST_NEXT = "playlist-next"
    PLAYLIST_PREV = "playlist-prev"


class SeekMode(str, Enum):
    """Seek mode markers understood by the ``seek`` command."""

    ABSOLUTE = "absolute"
    RELATIVE = "relative"


class Command(BaseModel):
    """A request from controller to player.

    Example:
        {"command": ["seek", 12.5, "absolute"]}
    """

    command: list[Any] = Field(default_factory=list)

    @property
    def name(self) -> str | None:
        """The command name (first atom), if any."""
        return self.command[0] if self.command else None

    def to_wire(self) -> bytes:
        """Serialize as a newline-terminated UTF-8 JSON line."""
        return (self.model_dump_json() + NEWLINE).encode(ENCODING)

    @classmethod
    def create(cls, *args: Atom | CommandName | SeekMode) -> Command:
        """Factory method for creating commands from atoms."""
        return cls(command=[a.value if isinstance(a, Enum) else a for a in args])

    # Convenience factories for common commands
    @classmethod
    def get_property(cls, name: str) -> Command:
        """Create a get_property command."""
        return cls.create(CommandName.GET_PROPERTY, name)

    @classmethod
    def set_property(cls, name: str, value: Atom) -> Command:
        """Create a set_property command."""
        return cls.create(CommandName.SET_PROPERTY, name, value)

    @classmethod
    def cycle_pause(cls) -> Command:
        """Create a command toggling the pause property."""
        return cls.create(CommandName.CYCLE, "pause")

    @classmethod
    def seek(cls, seconds: float, mode: SeekMode = SeekMode.ABSOLUTE) -> Command:
        """Create a seek command."""
        return cls.create(CommandName.SEEK, seconds, mode)

    @classmethod
    def playlist_next(cls) -> Command:
        return cls.create(CommandName.PLAYLIST_NEXT)

    @classmethod
    def playlist_prev(cls) -> Command:
        return cls.create(CommandName.PLAYLIST_PREV)
