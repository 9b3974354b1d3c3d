"""Player configuration.

Only the executable and its startup arguments are user-facing settings.
The timeouts bound the startup and shutdown waits of the supervisor.
"""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field

DEFAULT_EXECUTABLE = "mpv"


@dataclass
class PlayerConfig:
    """Configuration for a player session."""

    # Player process
    executable: str = DEFAULT_EXECUTABLE
    extra_args: list[str] = field(default_factory=list)

    # Startup: wait for the IPC socket to appear
    startup_timeout: float = 5.0
    poll_interval: float = 0.05

    # Shutdown: grace period between SIGTERM and SIGKILL
    terminate_timeout: float = 5.0

    # Where generated sockets live (default: system temp directory)
    socket_dir: str | None = None

    @classmethod
    def from_env(cls) -> PlayerConfig:
        """Build a config from ``MPV_CONTROL_EXECUTABLE`` and ``MPV_CONTROL_ARGS``."""
        return cls(
            executable=os.getenv("MPV_CONTROL_EXECUTABLE", DEFAULT_EXECUTABLE),
            extra_args=shlex.split(os.getenv("MPV_CONTROL_ARGS", "")),
        )
