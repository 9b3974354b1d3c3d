"""Default player instance.

Convenience wrapper for integrations that only ever drive one player,
such as an editor plugin inserting and following playback positions.
The session is created lazily on first use; nothing else in the package
depends on this module-level state.

Usage:
    from mpv_control import default as player

    await player.start("lecture.mp4")
    player.query_playback_time(insert_timestamp)
    player.seek_absolute(754.0)
"""

from __future__ import annotations

from .config import PlayerConfig
from .queue import ResponseCallback
from .session import PlayerSession

_session: PlayerSession | None = None


def get_session() -> PlayerSession:
    """Get the default session, creating it from the environment if needed."""
    global _session
    if _session is None:
        _session = PlayerSession(PlayerConfig.from_env())
    return _session


def set_session(session: PlayerSession | None) -> None:
    """Replace the default session (``None`` resets it)."""
    global _session
    _session = session


async def start(path: str, *args: str) -> bool:
    """Play ``path`` in a fresh player, stopping any previous one."""
    return await get_session().start(*args, path)


async def kill() -> None:
    """Stop the default player. Safe to call when nothing is running."""
    if _session is not None:
        await _session.kill()


def is_alive() -> bool:
    return _session is not None and _session.is_alive()


def toggle_pause() -> bool:
    return get_session().toggle_pause()


def query_playback_time(callback: ResponseCallback) -> bool:
    """Ask for the playback position; ``callback`` receives seconds."""
    return get_session().query_playback_time(callback)


def seek_absolute(seconds: float) -> bool:
    return get_session().seek_absolute(seconds)
