"""Incremental JSON framing for the player's output stream.

The socket delivers bytes with no alignment to message boundaries. The
parser accumulates them and frames by structural completeness: a frame
starts at the first ``{`` and ends where the matching ``}`` closes it,
ignoring braces inside string literals.

Usage:
    parser = WireParser()
    for value in parser.feed(chunk):
        handle(value)
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator
from typing import Any

logger = logging.getLogger(__name__)

# Structural bytes. UTF-8 continuation bytes never collide with ASCII.
OBJECT_START = ord("{")
OPENERS = frozenset(b"{[")
QUOTE = ord('"')
BACKSLASH = ord("\\")
STRUCTURAL = re.compile(rb'[{}\[\]"]')
STRING_SPECIAL = re.compile(rb'["\\]')


class WireParser:
    """Turns an append-only byte stream into a lazy sequence of JSON values.

    Bytes are only ever removed from the front of the buffer, and only once
    a complete frame has been consumed. An incomplete trailing value stays
    buffered until more bytes arrive. Scan state for that value is kept
    between calls, so each byte is examined once.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._reset_scan()

    @property
    def pending(self) -> bytes:
        """Bytes received but not yet consumed."""
        return bytes(self._buffer)

    def reset(self) -> None:
        """Drop all buffered bytes."""
        self._buffer.clear()
        self._reset_scan()

    def feed(self, chunk: bytes) -> Iterator[Any]:
        """Append a chunk and return an iterator over the values now complete.

        The chunk is buffered immediately; values are decoded lazily as the
        iterator is consumed. Abandoning the iterator early is safe: the
        remaining frames stay buffered and are produced by the next call.
        """
        self._buffer.extend(chunk)
        return self._drain()

    def _reset_scan(self) -> None:
        self._frame_start: int | None = None
        self._scan_pos = 0
        self._depth = 0
        self._in_string = False
        self._escaped = False

    def _drain(self) -> Iterator[Any]:
        while True:
            end = self._frame_end()
            if end is None:
                return

            start = self._frame_start or 0
            frame = bytes(self._buffer[start:end])
            del self._buffer[:end]
            self._reset_scan()
            if start:
                logger.debug(f"Skipped {start} stray bytes before JSON value")

            try:
                value = json.loads(frame)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                # Complete frame that is not JSON; drop it and keep going
                logger.warning(f"Dropping malformed frame: {e} (frame: {frame[:50]!r})")
                continue
            yield value

    def _frame_end(self) -> int | None:
        """Resume scanning the current frame; return the index just past it, or None."""
        buf = self._buffer
        if self._frame_start is None:
            start = buf.find(OBJECT_START)
            if start < 0:
                return None
            self._frame_start = start
            self._scan_pos = start

        pos = self._scan_pos
        depth = self._depth
        in_string = self._in_string
        escaped = self._escaped
        size = len(buf)
        end = None

        while True:
            if escaped:
                if pos >= size:
                    break
                pos += 1
                escaped = False
                continue

            match = (STRING_SPECIAL if in_string else STRUCTURAL).search(buf, pos)
            if match is None:
                pos = size
                break
            byte = buf[match.start()]
            pos = match.end()

            if in_string:
                if byte == BACKSLASH:
                    escaped = True
                else:
                    in_string = False
            elif byte == QUOTE:
                in_string = True
            elif byte in OPENERS:
                depth += 1
            else:
                depth -= 1
                if depth == 0:
                    end = pos
                    break

        self._scan_pos = pos
        self._depth = depth
        self._in_string = in_string
        self._escaped = escaped
        return end
