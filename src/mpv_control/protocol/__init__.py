"""Wire protocol layer.

Defines the JSON-lines protocol spoken over the player's IPC socket:
- Commands: controller → player, ``{"command": [...]}``
- Responses: player → controller, ``{"error": ..., "data": ...}``
- Notifications: player → controller, ``{"event": ...}``, never correlated

Responses carry no usable correlation; they are matched to requests by
arrival order alone.
"""

from .commands import Command, CommandName, SeekMode
from .messages import Notification, Response, WireMessage, classify, is_notification
from .parser import WireParser

__all__ = [
    "Command",
    "CommandName",
    "SeekMode",
    "Notification",
    "Response",
    "WireMessage",
    "classify",
    "is_notification",
    "WireParser",
]
