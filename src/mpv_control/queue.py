"""Transaction queue: FIFO correlation of requests and responses.

The player's responses carry no correlation id we rely on. Each response
is matched to the oldest unanswered request, so the queue order must equal
the order in which requests were written. Notifications (values with an
``event`` key) may arrive at any point and are never matched.

Delayed requests trade pipelining for strict serialization: their bytes
are withheld until every earlier request has been answered. Requests
queued behind a withheld one are withheld too, so the unsent requests
always form the tail of the queue and bytes go out in queue order.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .protocol import Command, Notification, WireParser, classify
from .transport import Channel

logger = logging.getLogger(__name__)

ResponseCallback = Callable[[Any], None]
NotificationCallback = Callable[[Notification], None]


@dataclass(eq=False)
class PendingRequest:
    """A request waiting for its response."""

    command: Command
    callback: ResponseCallback
    delayed: bool = False
    sent: bool = False


class TransactionQueue:
    """Ordered list of outstanding requests bound to one channel.

    The owner wires the channel's data callback to :meth:`feed`. All
    complete values in a chunk are routed before :meth:`feed` returns.

    Usage:
        queue = TransactionQueue(channel, on_notification=print)
        await channel.open(queue.feed)
        queue.enqueue(Command.get_property("playback-time"), print)
    """

    def __init__(
        self,
        channel: Channel,
        on_notification: NotificationCallback | None = None,
    ) -> None:
        self._channel = channel
        self._on_notification = on_notification
        self._pending: deque[PendingRequest] = deque()
        self._parser = WireParser()
        self._closed = False

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_connected(self) -> bool:
        """True while the queue is open and its channel is connected."""
        return not self._closed and self._channel.is_connected

    @property
    def pending(self) -> list[PendingRequest]:
        """Snapshot of outstanding requests, oldest first."""
        return list(self._pending)

    def enqueue(
        self,
        command: Command,
        callback: ResponseCallback,
        delayed: bool = False,
    ) -> bool:
        """Queue a request and transmit it now or once it reaches the head.

        Args:
            command: The command envelope to send
            callback: Called with the response's data payload
            delayed: Withhold transmission until all earlier requests are answered

        Returns:
            False if no channel is connected or the write fails (nothing is
            queued), True otherwise
        """
        if not self.is_connected:
            logger.warning(f"Not connected; dropping command {command.command}")
            return False

        request = PendingRequest(command=command, callback=callback, delayed=delayed)
        if self._has_withheld():
            send_now = False
        else:
            send_now = not delayed or not self._pending
        self._pending.append(request)

        if send_now:
            return self._transmit(request)
        logger.debug(f"Withholding command {command.command}")
        return True

    def feed(self, chunk: bytes) -> None:
        """Route every complete value now available from the channel."""
        if self._closed:
            return
        for value in self._parser.feed(chunk):
            if self._closed:
                # A callback tore the session down mid-drain
                return
            self._route(value)

    def close(self) -> None:
        """Discard all pending requests unfired and close the channel.

        Safe to call multiple times.
        """
        if self._closed:
            return
        self._closed = True

        discarded = len(self._pending)
        self._pending.clear()
        self._parser.reset()
        self._channel.close()

        if discarded:
            logger.info(f"Discarded {discarded} pending request(s) on close")

    def _route(self, value: Any) -> None:
        message = classify(value)

        if isinstance(message, Notification):
            logger.debug(f"Notification: {message.event}")
            if self._on_notification is not None:
                try:
                    self._on_notification(message)
                except Exception:
                    logger.exception(f"Error in notification listener for {message.event}")
            return

        if not self._pending:
            logger.debug(f"Dropping unmatched response: {value}")
            return

        request = self._pending.popleft()
        self._send_withheld()

        if not message.ok:
            logger.warning(f"Command {request.command.command} failed: {message.error}")

        try:
            request.callback(message.data)
        except Exception:
            logger.exception(f"Error in callback for {request.command.command}")

    def _has_withheld(self) -> bool:
        # Unsent requests are always a suffix of the queue
        return bool(self._pending) and not self._pending[-1].sent

    def _send_withheld(self) -> None:
        """Send withheld requests in order, stopping at a delayed one not at the head."""
        for index, request in enumerate(list(self._pending)):
            if request.sent:
                continue
            if request.delayed and index > 0:
                return
            if not self._transmit(request):
                return

    def _transmit(self, request: PendingRequest) -> bool:
        try:
            self._channel.write(request.command.to_wire())
        except ConnectionError as e:
            # A reply can never arrive for bytes never written
            logger.error(f"Failed to send {request.command.command}: {e}")
            self._pending.remove(request)
            return False
        request.sent = True
        logger.debug(f"Sent {request.command.command}")
        return True
