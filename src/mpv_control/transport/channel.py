"""Byte channels between controller and player.

Architecture:
- Channel is the PROTOCOL (interface) the transaction queue writes to
- UnixSocketChannel connects to the player's IPC socket
- MockChannel records writes and lets tests deliver bytes by hand

Channels are byte pipes. They know nothing about framing or correlation;
every received chunk is handed to the ``on_data`` callback as-is.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

DataCallback = Callable[[bytes], None]
EofCallback = Callable[[], None]

READ_SIZE = 4096


class ChannelState(str, Enum):
    """Connection state machine."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"


@runtime_checkable
class Channel(Protocol):
    """Protocol for controller-side channels.

    All channels must implement:
    - state/is_connected: Connection status
    - write: Queue bytes for the player (non-blocking)
    - close: Tear down immediately; no data callback fires afterwards
    """

    @property
    def state(self) -> ChannelState:
        """Current connection state."""
        ...

    @property
    def is_connected(self) -> bool:
        """Check if channel is connected."""
        ...

    def write(self, data: bytes) -> None:
        """Send bytes to the player.

        Raises:
            ConnectionError: If not connected
        """
        ...

    def close(self) -> None:
        """Close the channel."""
        ...


class UnixSocketChannel:
    """Channel over a Unix-domain stream socket.

    A background reader task hands every chunk to ``on_data`` as soon as it
    arrives. ``on_data`` runs synchronously, so one chunk is fully processed
    before the next is read.
    """

    def __init__(self, socket_path: str | Path, read_size: int = READ_SIZE):
        self._socket_path = Path(socket_path)
        self._read_size = read_size
        self._state = ChannelState.DISCONNECTED
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._on_data: DataCallback | None = None
        self._on_eof: EofCallback | None = None

    @property
    def socket_path(self) -> Path:
        """The filesystem path of the socket this channel targets."""
        return self._socket_path

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ChannelState.CONNECTED

    async def open(self, on_data: DataCallback, on_eof: EofCallback | None = None) -> None:
        """Connect to the socket and start the reader task.

        If already connected, this method is a no-op.

        Raises:
            ConnectionError: If the socket is not reachable
        """
        if self._state == ChannelState.CONNECTED:
            return

        self._state = ChannelState.CONNECTING
        try:
            self._reader, self._writer = await asyncio.open_unix_connection(
                str(self._socket_path)
            )
        except OSError as e:
            self._state = ChannelState.DISCONNECTED
            raise ConnectionError(f"Cannot connect to {self._socket_path}: {e}") from e

        self._on_data = on_data
        self._on_eof = on_eof
        self._state = ChannelState.CONNECTED
        self._reader_task = asyncio.create_task(self._read_loop())
        logger.info(f"Channel connected to {self._socket_path}")

    def write(self, data: bytes) -> None:
        if not self.is_connected or self._writer is None:
            raise ConnectionError("Channel not connected")
        self._writer.write(data)

    def close(self) -> None:
        """Close the channel.

        Safe to call multiple times or when not connected.
        """
        if self._state in (ChannelState.DISCONNECTED, ChannelState.CLOSED):
            self._state = ChannelState.CLOSED
            return

        self._state = ChannelState.CLOSED
        self._on_data = None
        self._on_eof = None

        if self._reader_task:
            self._reader_task.cancel()

        if self._writer:
            self._writer.close()

        logger.info(f"Channel to {self._socket_path} closed")

    async def wait_closed(self) -> None:
        """Wait for the reader task and the socket to finish closing."""
        if self._reader_task:
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader_task
            self._reader_task = None

        if self._writer:
            with contextlib.suppress(OSError):
                await self._writer.wait_closed()
            self._writer = None
            self._reader = None

    async def _read_loop(self) -> None:
        """Background task reading chunks and handing them to ``on_data``."""
        if self._reader is None:
            return

        try:
            while True:
                chunk = await self._reader.read(self._read_size)
                if not chunk:
                    # EOF - player closed the socket
                    break
                on_data = self._on_data
                if on_data is None:
                    break
                on_data(chunk)
        except OSError as e:
            logger.error(f"Channel read error: {e}")
        except Exception:
            logger.exception("Channel read loop error")

        if self._state == ChannelState.CONNECTED:
            logger.info(f"Channel to {self._socket_path} reached EOF")
            self._state = ChannelState.DISCONNECTED
            if self._on_eof is not None:
                self._on_eof()


class MockChannel:
    """Mock channel for testing.

    Records every write and lets the test deliver inbound bytes.
    No actual I/O - everything is in-memory.

    Usage:
        channel = MockChannel()
        queue = TransactionQueue(channel)
        channel.open(queue.feed)

        queue.enqueue(Command.get_property("playback-time"), results.append)
        channel.deliver(b'{"error":"success","data":42.5}\\n')

        assert channel.written == [b'{"command":["get_property","playback-time"]}\\n']
    """

    def __init__(self) -> None:
        self._state = ChannelState.DISCONNECTED
        self._on_data: DataCallback | None = None
        self._written: list[bytes] = []

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ChannelState.CONNECTED

    @property
    def written(self) -> list[bytes]:
        """Get all byte strings written through this channel."""
        return self._written.copy()

    def open(self, on_data: DataCallback) -> None:
        self._on_data = on_data
        self._state = ChannelState.CONNECTED

    def write(self, data: bytes) -> None:
        if not self.is_connected:
            raise ConnectionError("Channel not connected")
        self._written.append(data)

    def deliver(self, data: bytes) -> None:
        """Simulate bytes arriving from the player."""
        if self._on_data is not None and self.is_connected:
            self._on_data(data)

    def close(self) -> None:
        self._state = ChannelState.CLOSED
        self._on_data = None
