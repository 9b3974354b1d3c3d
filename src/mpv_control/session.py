"""Player session.

One PlayerSession owns one supervised player process, the channel to its
IPC socket and the transaction queue bound to that channel:

    PlayerSession() -> start() -> ... -> kill() -> start() -> ... -> destroy()

Commands are fire-and-forget or callback based. A callback is invoked at
most once, with the response's data payload, and never after kill().

Usage:
    async with PlayerSession() as player:
        await player.start("movie.mkv")
        player.toggle_pause()
        position = await player.get_property("playback-time")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from .config import PlayerConfig
from .exceptions import NotConnectedError, PlayerError, SocketNeverReadyError
from .protocol import Command, CommandName, Notification, SeekMode
from .protocol.commands import Atom
from .queue import ResponseCallback, TransactionQueue
from .supervisor import ProcessSupervisor
from .transport import UnixSocketChannel

logger = logging.getLogger(__name__)

PLAYBACK_TIME = "playback-time"

EventListener = Callable[[Notification], None]
ExitListener = Callable[[int], None]


def _ignore(_data: Any) -> None:
    """Callback for fire-and-forget commands."""


class PlayerSession:
    """Controls one player process over its IPC socket.

    Starting a session stops whatever the session was running before.
    """

    def __init__(self, config: PlayerConfig | None = None) -> None:
        self.config = config or PlayerConfig()
        self._supervisor = ProcessSupervisor(self.config, on_exit=self._handle_exit)
        self._channel: UnixSocketChannel | None = None
        self._queue: TransactionQueue | None = None
        self._event_listeners: list[EventListener] = []
        self._exit_listeners: list[ExitListener] = []
        self._waiters: set[asyncio.Future[Any]] = set()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def supervisor(self) -> ProcessSupervisor:
        return self._supervisor

    @property
    def queue(self) -> TransactionQueue | None:
        """The transaction queue of the current connection, if any."""
        return self._queue

    @property
    def is_connected(self) -> bool:
        return self._queue is not None and self._queue.is_connected

    def is_alive(self) -> bool:
        """True iff the player process exists and is running."""
        return self._supervisor.is_alive()

    async def start(self, *args: str, executable: str | None = None) -> bool:
        """Start the player and connect to its IPC socket.

        Any player this session was running is killed first.

        Args:
            *args: Extra player arguments, e.g. the media file to play
            executable: Player executable (default: config.executable)

        Returns:
            True once the channel is connected

        Raises:
            ProcessSpawnError: If the executable cannot be started
            SocketNeverReadyError: If the socket never becomes reachable
        """
        await self.kill()

        extra_args = [*self.config.extra_args, *args]
        socket_path = await self._supervisor.start(executable, extra_args)

        channel = UnixSocketChannel(socket_path)
        queue = TransactionQueue(channel, on_notification=self._dispatch_event)
        try:
            await self._connect(channel, queue)
        except BaseException:
            # No process may outlive a failed start
            await self._supervisor.kill()
            raise

        self._channel = channel
        self._queue = queue
        return True

    async def kill(self) -> None:
        """Discard pending requests, close the channel and stop the player.

        Safe to call multiple times or when never started.
        """
        # Tear down synchronously first so no callback can fire from here on
        queue, self._queue = self._queue, None
        channel, self._channel = self._channel, None
        if queue is not None:
            queue.close()
        self._fail_waiters()

        if channel is not None:
            await channel.wait_closed()
        await self._supervisor.kill()

    async def destroy(self) -> None:
        """Kill the session and drop all listeners."""
        await self.kill()
        self._event_listeners.clear()
        self._exit_listeners.clear()

    async def __aenter__(self) -> PlayerSession:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.destroy()

    async def _connect(self, channel: UnixSocketChannel, queue: TransactionQueue) -> None:
        """Open the channel, retrying while the player starts listening."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.startup_timeout
        while True:
            try:
                await channel.open(queue.feed)
                return
            except ConnectionError as e:
                if not self.is_alive() or loop.time() >= deadline:
                    raise SocketNeverReadyError(str(e)) from e
            await asyncio.sleep(self.config.poll_interval)

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def on_event(self, listener: EventListener) -> Callable[[], None]:
        """Subscribe to player notifications.

        Returns:
            Unsubscribe function
        """
        self._event_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._event_listeners:
                self._event_listeners.remove(listener)

        return unsubscribe

    def on_exit(self, listener: ExitListener) -> Callable[[], None]:
        """Subscribe to player exit, called with the exit code.

        Returns:
            Unsubscribe function
        """
        self._exit_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._exit_listeners:
                self._exit_listeners.remove(listener)

        return unsubscribe

    def _dispatch_event(self, notification: Notification) -> None:
        for listener in list(self._event_listeners):
            try:
                listener(notification)
            except Exception:
                logger.exception(f"Error in event listener for {notification.event}")

    def _handle_exit(self, returncode: int) -> None:
        for listener in list(self._exit_listeners):
            try:
                listener(returncode)
            except Exception:
                logger.exception("Error in exit listener")

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def enqueue(
        self,
        command: Command,
        callback: ResponseCallback = _ignore,
        delayed: bool = False,
    ) -> bool:
        """Send a command; ``callback`` receives the response's data.

        Returns:
            False if the session is not connected, True otherwise
        """
        if self._queue is None:
            logger.warning(f"Player not running; dropping command {command.command}")
            return False
        return self._queue.enqueue(command, callback, delayed)

    def query_property(
        self,
        name: str,
        callback: ResponseCallback,
        delayed: bool = False,
    ) -> bool:
        """Query a player property; ``callback`` receives the raw value."""
        return self.enqueue(Command.get_property(name), callback, delayed)

    def query_playback_time(self, callback: ResponseCallback) -> bool:
        """Query the current playback position in seconds."""
        return self.query_property(PLAYBACK_TIME, callback)

    def set_property(self, name: str, value: Atom) -> bool:
        return self.enqueue(Command.set_property(name, value))

    def toggle_pause(self) -> bool:
        """Toggle pause."""
        return self.enqueue(Command.cycle_pause())

    def seek_absolute(self, seconds: float) -> bool:
        """Seek to an absolute position in seconds."""
        return self.enqueue(Command.seek(seconds, SeekMode.ABSOLUTE))

    def seek_relative(self, seconds: float) -> bool:
        """Seek forward (positive) or backward (negative) by ``seconds``."""
        return self.enqueue(Command.seek(seconds, SeekMode.RELATIVE))

    def playlist_next(self) -> bool:
        return self.enqueue(Command.playlist_next())

    def playlist_prev(self) -> bool:
        return self.enqueue(Command.playlist_prev())

    # -------------------------------------------------------------------------
    # Awaitable API
    # -------------------------------------------------------------------------

    async def request(
        self,
        *args: Atom,
        timeout: float | None = None,
        delayed: bool = False,
    ) -> Any:
        """Send a command built from ``args`` and wait for its data.

        Raises:
            NotConnectedError: If the session is not connected
            PlayerError: If the session is killed before the reply arrives
            TimeoutError: If ``timeout`` passes first
        """
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

        def resolve(data: Any) -> None:
            if not future.done():
                future.set_result(data)

        if not self.enqueue(Command.create(*args), resolve, delayed):
            raise NotConnectedError("Player not connected")

        self._waiters.add(future)
        try:
            return await asyncio.wait_for(future, timeout)
        finally:
            self._waiters.discard(future)

    async def get_property(self, name: str, timeout: float | None = None) -> Any:
        """Wait for the value of a player property."""
        return await self.request(CommandName.GET_PROPERTY.value, name, timeout=timeout)

    def _fail_waiters(self) -> None:
        waiters, self._waiters = self._waiters, set()
        for future in waiters:
            if not future.done():
                future.set_exception(PlayerError("Player session was killed"))
