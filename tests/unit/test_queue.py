"""Unit tests for TransactionQueue correlation.

Uses MockChannel so every byte in and out is visible to the test.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from unittest.mock import MagicMock

import pytest

from mpv_control.protocol import Command, Notification
from mpv_control.queue import TransactionQueue
from mpv_control.transport import ChannelState, MockChannel

OK_NULL = b'{"error":"success","data":null}\n'


def response(data: Any) -> bytes:
    return (json.dumps({"error": "success", "data": data}) + "\n").encode()


def sent_commands(channel: MockChannel) -> list[list[Any]]:
    return [json.loads(line)["command"] for line in channel.written]


# =============================================================================
# Scenarios
# =============================================================================


class TestScenarios:
    """End-to-end routing scenarios over a mock channel."""

    def test_property_query(self, channel: MockChannel, queue: TransactionQueue) -> None:
        """Property query callback receives the response data."""
        results: list[Any] = []

        assert queue.enqueue(Command.get_property("playback-time"), results.append)
        channel.deliver(b'{"error":"success","data":42.5}\n')

        assert results == [42.5]
        assert sent_commands(channel) == [["get_property", "playback-time"]]

    def test_event_before_response(self, channel: MockChannel, queue: TransactionQueue) -> None:
        """An event is dropped; the callback fires once on the real response."""
        callback = MagicMock()

        queue.enqueue(Command.cycle_pause(), callback)
        channel.deliver(b'{"event":"pause"}\n')

        callback.assert_not_called()
        assert len(queue) == 1

        channel.deliver(OK_NULL)

        callback.assert_called_once_with(None)
        assert len(queue) == 0

    def test_two_requests_in_order(self, channel: MockChannel, queue: TransactionQueue) -> None:
        """Responses are matched to requests in send order."""
        order: list[tuple[str, Any]] = []

        queue.enqueue(Command.get_property("a"), lambda d: order.append(("A", d)))
        queue.enqueue(Command.get_property("b"), lambda d: order.append(("B", d)))
        channel.deliver(response("ansA") + response("ansB"))

        assert order == [("A", "ansA"), ("B", "ansB")]


# =============================================================================
# FIFO matching
# =============================================================================


class TestFifoMatching:
    """Responses match the head of the queue, never by content."""

    def test_interleaved_notifications(self, channel: MockChannel, queue: TransactionQueue) -> None:
        """Notifications between responses do not disturb matching."""
        results: list[Any] = []
        for i in range(4):
            queue.enqueue(Command.get_property(f"p{i}"), results.append)

        channel.deliver(
            b'{"event":"start-file"}\n'
            + response(0)
            + b'{"event":"seek"}\n{"event":"playback-restart"}\n'
            + response(1)
            + response(2)
            + b'{"event":"idle"}'
            + response(3)
        )

        assert results == [0, 1, 2, 3]

    def test_response_split_across_chunks(
        self, channel: MockChannel, queue: TransactionQueue
    ) -> None:
        results: list[Any] = []
        queue.enqueue(Command.get_property("path"), results.append)
        data = response("/media/movie.mkv")

        channel.deliver(data[:7])
        assert results == []
        channel.deliver(data[7:])

        assert results == ["/media/movie.mkv"]

    def test_response_content_ignored_for_matching(
        self, channel: MockChannel, queue: TransactionQueue
    ) -> None:
        """A request_id in the response does not reorder matching."""
        order: list[str] = []
        queue.enqueue(Command.get_property("a"), lambda d: order.append("A"))
        queue.enqueue(Command.get_property("b"), lambda d: order.append("B"))

        channel.deliver(b'{"request_id":7,"error":"success","data":1}\n')

        assert order == ["A"]

    def test_unmatched_response_dropped(
        self, channel: MockChannel, queue: TransactionQueue
    ) -> None:
        """A response with an empty queue is dropped without error."""
        channel.deliver(OK_NULL)

        assert len(queue) == 0

    def test_error_not_forwarded(
        self,
        channel: MockChannel,
        queue: TransactionQueue,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Failed commands still deliver data to the callback and log a warning."""
        results: list[Any] = []
        queue.enqueue(Command.get_property("nope"), results.append)

        with caplog.at_level(logging.WARNING):
            channel.deliver(b'{"error":"property not found"}\n')

        assert results == [None]
        assert "property not found" in caplog.text


class TestNotifications:
    """Notifications never touch the queue."""

    @pytest.mark.parametrize("pending", [0, 1, 3])
    def test_queue_length_unchanged(
        self, channel: MockChannel, queue: TransactionQueue, pending: int
    ) -> None:
        callback = MagicMock()
        for i in range(pending):
            queue.enqueue(Command.get_property(f"p{i}"), callback)

        channel.deliver(b'{"event":"pause","error":"success","data":1}\n')

        assert len(queue) == pending
        callback.assert_not_called()

    def test_listener_receives_notifications(self) -> None:
        channel = MockChannel()
        seen: list[Notification] = []
        queue = TransactionQueue(channel, on_notification=seen.append)
        channel.open(queue.feed)

        channel.deliver(b'{"event":"property-change","name":"volume","data":50}\n')

        assert [n.event for n in seen] == ["property-change"]
        assert seen[0].model_extra == {"name": "volume", "data": 50}

    def test_listener_error_does_not_break_routing(self) -> None:
        channel = MockChannel()
        queue = TransactionQueue(channel, on_notification=MagicMock(side_effect=RuntimeError))
        channel.open(queue.feed)
        results: list[Any] = []
        queue.enqueue(Command.get_property("x"), results.append)

        channel.deliver(b'{"event":"boom"}\n' + response(1))

        assert results == [1]


# =============================================================================
# Delayed requests
# =============================================================================


class TestDelayedRequests:
    """Delayed requests are withheld until all earlier ones are answered."""

    def test_delayed_on_empty_queue_sent_immediately(
        self, channel: MockChannel, queue: TransactionQueue
    ) -> None:
        queue.enqueue(Command.seek(10), MagicMock(), delayed=True)

        assert sent_commands(channel) == [["seek", 10, "absolute"]]

    def test_delayed_withheld_until_queue_drains(
        self, channel: MockChannel, queue: TransactionQueue
    ) -> None:
        queue.enqueue(Command.get_property("a"), MagicMock())
        queue.enqueue(Command.get_property("b"), MagicMock())
        queue.enqueue(Command.seek(10), MagicMock(), delayed=True)

        assert len(channel.written) == 2

        channel.deliver(response(1))
        assert len(channel.written) == 2

        channel.deliver(b'{"event":"seek"}\n')
        assert len(channel.written) == 2

        channel.deliver(response(2))
        assert sent_commands(channel)[-1] == ["seek", 10, "absolute"]

    def test_delayed_callback_receives_its_own_response(
        self, channel: MockChannel, queue: TransactionQueue
    ) -> None:
        results: list[Any] = []
        queue.enqueue(Command.get_property("a"), lambda d: results.append(("a", d)))
        queue.enqueue(Command.get_property("b"), lambda d: results.append(("b", d)), delayed=True)

        channel.deliver(response(1))
        channel.deliver(response(2))

        assert results == [("a", 1), ("b", 2)]

    def test_consecutive_delayed_serialized(
        self, channel: MockChannel, queue: TransactionQueue
    ) -> None:
        queue.enqueue(Command.get_property("a"), MagicMock(), delayed=True)
        queue.enqueue(Command.get_property("b"), MagicMock(), delayed=True)

        assert sent_commands(channel) == [["get_property", "a"]]

        channel.deliver(response(1))

        assert sent_commands(channel) == [["get_property", "a"], ["get_property", "b"]]

    def test_requests_behind_withheld_keep_queue_order(
        self, channel: MockChannel, queue: TransactionQueue
    ) -> None:
        """A plain request behind a withheld one waits, so replies still match."""
        results: list[tuple[str, Any]] = []
        for name, delayed in (("a", False), ("b", True), ("c", False)):
            queue.enqueue(
                Command.get_property(name),
                lambda d, name=name: results.append((name, d)),
                delayed=delayed,
            )

        assert sent_commands(channel) == [["get_property", "a"]]

        channel.deliver(response("ans-a"))

        assert sent_commands(channel) == [
            ["get_property", "a"],
            ["get_property", "b"],
            ["get_property", "c"],
        ]

        channel.deliver(response("ans-b") + response("ans-c"))

        assert results == [("a", "ans-a"), ("b", "ans-b"), ("c", "ans-c")]

    def test_release_stops_at_next_delayed(
        self, channel: MockChannel, queue: TransactionQueue
    ) -> None:
        """Releasing withheld requests stops before a delayed one that is not the head."""
        queue.enqueue(Command.get_property("a"), MagicMock())
        queue.enqueue(Command.get_property("b"), MagicMock(), delayed=True)
        queue.enqueue(Command.get_property("c"), MagicMock())
        queue.enqueue(Command.get_property("d"), MagicMock(), delayed=True)
        queue.enqueue(Command.get_property("e"), MagicMock())

        channel.deliver(response(1))
        assert [c[1] for c in sent_commands(channel)] == ["a", "b", "c"]

        channel.deliver(response(2))
        assert [c[1] for c in sent_commands(channel)] == ["a", "b", "c"]

        channel.deliver(response(3))
        assert [c[1] for c in sent_commands(channel)] == ["a", "b", "c", "d", "e"]


# =============================================================================
# Connection and teardown
# =============================================================================


class TestClose:
    """Teardown discards pending requests unfired."""

    def test_enqueue_without_connection_returns_false(self, channel: MockChannel) -> None:
        queue = TransactionQueue(channel)

        assert queue.enqueue(Command.cycle_pause(), MagicMock()) is False
        assert len(queue) == 0
        assert channel.written == []

    def test_failed_write_is_not_queued(
        self, channel: MockChannel, queue: TransactionQueue
    ) -> None:
        """A request whose bytes could not be written is dropped, never resent."""
        callback = MagicMock()
        channel.write = MagicMock(side_effect=ConnectionError("broken pipe"))

        assert queue.enqueue(Command.get_property("a"), callback) is False
        assert len(queue) == 0

        channel.write = MagicMock()
        queue.enqueue(Command.get_property("b"), MagicMock())

        assert channel.write.call_count == 1
        callback.assert_not_called()

    def test_failed_release_drops_withheld_request(
        self, channel: MockChannel, queue: TransactionQueue
    ) -> None:
        delayed = MagicMock()
        queue.enqueue(Command.get_property("a"), MagicMock())
        queue.enqueue(Command.get_property("b"), delayed, delayed=True)
        channel.write = MagicMock(side_effect=ConnectionError("broken pipe"))

        channel.deliver(response(1))

        assert len(queue) == 0
        delayed.assert_not_called()

    def test_close_discards_pending(self, channel: MockChannel, queue: TransactionQueue) -> None:
        callback = MagicMock()
        queue.enqueue(Command.get_property("a"), callback)

        queue.close()
        queue.feed(OK_NULL)

        callback.assert_not_called()
        assert len(queue) == 0
        assert channel.state == ChannelState.CLOSED

    def test_enqueue_after_close_returns_false(
        self, channel: MockChannel, queue: TransactionQueue
    ) -> None:
        queue.close()

        assert queue.enqueue(Command.cycle_pause(), MagicMock()) is False

    def test_close_twice(self, queue: TransactionQueue) -> None:
        queue.close()
        queue.close()

        assert queue.closed
        assert len(queue) == 0

    def test_close_from_callback_stops_drain(
        self, channel: MockChannel, queue: TransactionQueue
    ) -> None:
        """Values already buffered are not routed once a callback closes the queue."""
        second = MagicMock()
        queue.enqueue(Command.get_property("a"), lambda d: queue.close())
        queue.enqueue(Command.get_property("b"), second)

        channel.deliver(response(1) + response(2))

        second.assert_not_called()

    def test_callback_error_logged(
        self,
        channel: MockChannel,
        queue: TransactionQueue,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """A raising callback is logged and the next response still routes."""
        results: list[Any] = []
        queue.enqueue(Command.get_property("a"), MagicMock(side_effect=ValueError("bad")))
        queue.enqueue(Command.get_property("b"), results.append)

        with caplog.at_level(logging.ERROR):
            channel.deliver(response(1) + response(2))

        assert results == [2]
        assert "Error in callback" in caplog.text
