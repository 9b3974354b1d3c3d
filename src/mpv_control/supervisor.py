"""Player process supervisor.

Spawns the player with a freshly generated IPC socket path, waits until
the socket exists (or the player dies, or the startup timeout passes) and
terminates the player on request.

Spawn contract:
    <executable> --no-terminal --input-unix-socket=<path> <extra args...>
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import tempfile
import uuid
from collections.abc import Callable, Sequence
from pathlib import Path

from .config import PlayerConfig
from .exceptions import ProcessSpawnError, SocketNeverReadyError

logger = logging.getLogger(__name__)

NO_TERMINAL_FLAG = "--no-terminal"
SOCKET_FLAG = "--input-unix-socket"

ExitCallback = Callable[[int], None]


def generate_socket_path(socket_dir: str | None = None) -> Path:
    """Return a unique, not-yet-existing socket path."""
    base = Path(socket_dir) if socket_dir else Path(tempfile.gettempdir())
    return base / f"mpv-{uuid.uuid4().hex[:12]}.sock"


def build_command(executable: str, socket_path: Path, extra_args: Sequence[str]) -> list[str]:
    """Build the argv for spawning the player."""
    return [executable, NO_TERMINAL_FLAG, f"{SOCKET_FLAG}={socket_path}", *extra_args]


class ProcessSupervisor:
    """Owns at most one player process and its socket path.

    Starting implicitly stops whatever process the supervisor owned before.
    """

    def __init__(
        self,
        config: PlayerConfig | None = None,
        on_exit: ExitCallback | None = None,
    ):
        self.config = config or PlayerConfig()
        self._on_exit = on_exit
        self._process: asyncio.subprocess.Process | None = None
        self._socket_path: Path | None = None
        self._stderr_task: asyncio.Task[None] | None = None
        self._exit_task: asyncio.Task[None] | None = None

    @property
    def socket_path(self) -> Path | None:
        """Socket path of the current process, if any."""
        return self._socket_path

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    def is_alive(self) -> bool:
        """True iff a process handle exists and the process is still running."""
        return self._process is not None and self._process.returncode is None

    async def start(
        self,
        executable: str | None = None,
        extra_args: Sequence[str] = (),
    ) -> Path:
        """Spawn the player and wait for its IPC socket.

        Args:
            executable: Player executable (default: config.executable)
            extra_args: Arguments appended after the IPC flags

        Returns:
            The socket path, which exists when this returns

        Raises:
            ProcessSpawnError: If the executable cannot be started
            SocketNeverReadyError: If the player exits or times out first
        """
        await self.kill()

        executable = executable or self.config.executable
        socket_path = generate_socket_path(self.config.socket_dir)
        cmd = build_command(executable, socket_path, extra_args)

        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProcessSpawnError(f"Failed to start {executable}: {e}") from e

        self._socket_path = socket_path
        self._stderr_task = asyncio.create_task(self._read_stderr())
        logger.info(f"Launched player: {' '.join(cmd)} (pid={self._process.pid})")

        try:
            await self._wait_for_socket()
        except (SocketNeverReadyError, asyncio.CancelledError):
            await self.kill()
            raise

        self._exit_task = asyncio.create_task(self._watch_exit())
        return socket_path

    async def kill(self) -> None:
        """Terminate the player if alive and clear all handles.

        Safe to call multiple times or when never started.
        """
        process, self._process = self._process, None
        socket_path, self._socket_path = self._socket_path, None
        exit_task, self._exit_task = self._exit_task, None
        stderr_task, self._stderr_task = self._stderr_task, None

        if exit_task:
            exit_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await exit_task

        if process and process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=self.config.terminate_timeout)
            except TimeoutError:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()
            logger.info(f"Player terminated (pid={process.pid})")

        if stderr_task:
            stderr_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await stderr_task

        if socket_path:
            socket_path.unlink(missing_ok=True)

    async def _wait_for_socket(self) -> None:
        """Block until the socket exists, the player exits, or the timeout passes."""
        process = self._process
        socket_path = self._socket_path
        if process is None or socket_path is None:
            raise SocketNeverReadyError("No player process")

        async def socket_appeared() -> None:
            while not socket_path.exists():
                await asyncio.sleep(self.config.poll_interval)

        ready = asyncio.create_task(socket_appeared())
        exited = asyncio.create_task(process.wait())
        try:
            done, _ = await asyncio.wait(
                {ready, exited},
                timeout=self.config.startup_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (ready, exited):
                task.cancel()
            await asyncio.gather(ready, exited, return_exceptions=True)

        if ready in done:
            logger.debug(f"Socket ready at {socket_path}")
            return
        if exited in done:
            raise SocketNeverReadyError(
                f"Player exited with code {process.returncode} before creating {socket_path}"
            )
        raise SocketNeverReadyError(
            f"Socket {socket_path} did not appear within {self.config.startup_timeout}s"
        )

    async def _watch_exit(self) -> None:
        """Log the player's exit and notify the exit listener."""
        process = self._process
        if process is None:
            return
        returncode = await process.wait()
        logger.info(f"Player exited with code {returncode} (pid={process.pid})")
        if self._on_exit is not None:
            try:
                self._on_exit(returncode)
            except Exception:
                logger.exception("Error in exit listener")

    async def _read_stderr(self) -> None:
        """Read and log stderr output."""
        process = self._process
        if not process or not process.stderr:
            return

        try:
            while True:
                line = await process.stderr.readline()
                if not line:
                    break
                logger.debug(f"[player stderr] {line.decode('utf-8', errors='replace').rstrip()}")
        except asyncio.CancelledError:
            pass
