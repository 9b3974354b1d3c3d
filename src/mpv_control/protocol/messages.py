"""Inbound messages from the player.

Every decoded value is one of two kinds:
- Notification: unsolicited, carries an ``event`` key. Never tied to a request.
- Response: anything else. Expected shape is ``{"error": ..., "data": ...}``.

Example (response):
    {"request_id": 0, "error": "success", "data": 42.5}

Example (notification):
    {"event": "pause"}
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

SUCCESS = "success"


class Notification(BaseModel):
    """An unsolicited event emitted by the player."""

    model_config = ConfigDict(extra="allow")

    event: str


class Response(BaseModel):
    """A reply to the oldest outstanding request."""

    model_config = ConfigDict(extra="allow")

    error: str | None = None
    data: Any = None
    request_id: int | None = None

    @property
    def ok(self) -> bool:
        """True when the player reported success."""
        return self.error == SUCCESS


WireMessage = Notification | Response


def is_notification(value: Any) -> bool:
    """Check whether a decoded value is a notification."""
    return isinstance(value, dict) and "event" in value


def classify(value: Any) -> WireMessage:
    """Classify a decoded JSON value as a notification or a response.

    Classification is by the presence of the ``event`` key only; the
    content of a response is never inspected for matching.
    """
    if is_notification(value):
        return Notification.model_validate({**value, "event": str(value["event"])})
    if isinstance(value, dict):
        return Response(
            error=value.get("error"),
            data=value.get("data"),
            request_id=value.get("request_id")
            if isinstance(value.get("request_id"), int)
            else None,
        )
    # Not an object: treat the whole value as the payload
    return Response(data=value)
