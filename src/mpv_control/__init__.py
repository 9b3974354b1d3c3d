"""mpv-control: drive a media player over its JSON IPC socket.

Spawns the player, connects to its Unix socket and correlates commands
with responses in FIFO order while unsolicited events stream past.
"""

from .config import PlayerConfig
from .exceptions import (
    NotConnectedError,
    PlayerError,
    ProcessSpawnError,
    SocketNeverReadyError,
)
from .protocol import Command, Notification, Response, WireParser
from .queue import PendingRequest, TransactionQueue
from .session import PlayerSession
from .supervisor import ProcessSupervisor

__version__ = "0.1.0"
__all__ = [
    "PlayerConfig",
    "PlayerSession",
    "ProcessSupervisor",
    "TransactionQueue",
    "PendingRequest",
    "WireParser",
    "Command",
    "Notification",
    "Response",
    "PlayerError",
    "ProcessSpawnError",
    "SocketNeverReadyError",
    "NotConnectedError",
]
