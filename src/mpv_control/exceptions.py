"""Exception hierarchy for mpv-control.

All library-specific exceptions inherit from :class:`PlayerError` so that
callers can catch a single base class when they do not care about the
specific failure mode.
"""


class PlayerError(Exception):
    """Base exception for all player session operations."""


class ProcessSpawnError(PlayerError):
    """Raised when the player executable cannot be started at all."""


class SocketNeverReadyError(PlayerError, ConnectionError):
    """Raised when the player's IPC socket never becomes available.

    Either the process exited before creating the socket, or the socket did
    not appear within the configured startup timeout.
    """


class NotConnectedError(PlayerError, ConnectionError):
    """Raised by the awaitable API when no IPC channel is connected."""
