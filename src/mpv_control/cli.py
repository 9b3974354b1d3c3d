"""mpv-control CLI.

Usage:
    mpv-control play movie.mkv                 # Play a file, wait for exit
    mpv-control play movie.mkv --events        # Also print player events
    mpv-control play movie.mkv -- --volume=50  # Pass extra player options
    mpv-control --log-level DEBUG play a.mp3   # Show IPC traffic on stderr

Environment:
    MPV_CONTROL_EXECUTABLE   Player executable (default: mpv)
    MPV_CONTROL_ARGS         Extra player arguments (shell-quoted)
"""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from . import __version__
from .config import PlayerConfig
from .exceptions import PlayerError
from .protocol import Notification
from .session import PlayerSession

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    help="Logging level (logs go to stderr)",
)
@click.version_option(version=__version__, prog_name="mpv-control")
def main(log_level: str) -> None:
    """Control a media player over its JSON IPC socket."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


@main.command(context_settings={"ignore_unknown_options": True})
@click.argument("media")
@click.argument("player_args", nargs=-1, type=click.UNPROCESSED)
@click.option("--executable", default=None, help="Player executable (overrides environment)")
@click.option("--events", "show_events", is_flag=True, help="Print player events as JSON lines")
@click.pass_context
def play(
    ctx: click.Context,
    media: str,
    player_args: tuple[str, ...],
    executable: str | None,
    show_events: bool,
) -> None:
    """Play MEDIA and wait until the player exits."""
    config = PlayerConfig.from_env()
    if executable:
        config.executable = executable

    try:
        returncode = asyncio.run(_play(config, media, list(player_args), show_events))
    except PlayerError as e:
        raise click.ClickException(str(e)) from e
    except KeyboardInterrupt:
        returncode = 130

    ctx.exit(returncode)


async def _play(
    config: PlayerConfig,
    media: str,
    player_args: list[str],
    show_events: bool,
) -> int:
    """Run one player session to completion and return its exit code."""
    exited: asyncio.Future[int] = asyncio.get_running_loop().create_future()

    def on_exit(returncode: int) -> None:
        if not exited.done():
            exited.set_result(returncode)

    def on_event(notification: Notification) -> None:
        click.echo(notification.model_dump_json())

    async with PlayerSession(config) as player:
        player.on_exit(on_exit)
        if show_events:
            player.on_event(on_event)

        await player.start(*player_args, media)
        return await exited


if __name__ == "__main__":
    main()
