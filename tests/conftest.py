"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import stat
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from mpv_control.config import PlayerConfig
from mpv_control.queue import TransactionQueue
from mpv_control.transport import MockChannel

FAKE_PLAYER = Path(__file__).parent / "fixtures" / "fake_player.py"


@pytest.fixture
def channel() -> MockChannel:
    """Unopened in-memory channel."""
    return MockChannel()


@pytest.fixture
def queue(channel: MockChannel) -> TransactionQueue:
    """Transaction queue bound to an open mock channel."""
    tq = TransactionQueue(channel)
    channel.open(tq.feed)
    return tq


def write_executable(path: Path, body: str) -> Path:
    """Write a shell script and make it executable."""
    path.write_text(f"#!/bin/sh\n{body}\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def make_executable(tmp_path: Path) -> Callable[[str, str], Path]:
    """Factory writing named shell scripts into tmp_path."""
    return lambda name, body: write_executable(tmp_path / name, body)


@pytest.fixture
def fake_player(tmp_path: Path) -> Path:
    """Executable that runs the fake player with the given arguments."""
    return write_executable(
        tmp_path / "fake-mpv",
        f'exec "{sys.executable}" "{FAKE_PLAYER}" "$@"',
    )


@pytest.fixture
def player_config(fake_player: Path) -> PlayerConfig:
    """Config pointing at the fake player with short timeouts."""
    return PlayerConfig(
        executable=str(fake_player),
        startup_timeout=10.0,
        poll_interval=0.01,
        terminate_timeout=2.0,
    )
