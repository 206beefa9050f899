"""Launch and supervise the Minecraft server process.

The supervisor owns exactly one child process.  Startup is complete when the
readiness marker first shows up on the child's stdout; an error line on
stderr, an early exit, or the startup timeout fail the start instead.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import os
from pathlib import Path

from .config import ServerConfig
from .errors import (
    AlreadyRunning,
    ExecutableNotFound,
    LifecycleError,
    ProcessError,
    ProcessExited,
    StartupTimeout,
)
from .events import EventEmitter
from .protocol import (
    ERROR_MARKER,
    JAVA_EXECUTABLE,
    READINESS_MARKER,
    STARTUP_TIMEOUT,
    STOP_TIMEOUT,
)
from .server_properties import prepare_server_directory

logger = logging.getLogger("minecraft-mcp.server")


class ProcessState(enum.Enum):
    NOT_STARTED = "not_started"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"


# States from which start() may be called again.
_STARTABLE = frozenset({ProcessState.NOT_STARTED, ProcessState.STOPPED, ProcessState.FAILED})


def resolve_server_path(path: str) -> Path:
    """Expand ``~`` and make ``path`` absolute relative to the working directory."""
    return Path(os.path.abspath(os.path.expanduser(path)))


def server_command(jar: Path, memory: str) -> list[str]:
    return [
        JAVA_EXECUTABLE,
        f"-Xmx{memory}",
        f"-Xms{memory}",
        "-jar",
        str(jar),
        "nogui",
    ]


class ProcessSupervisor(EventEmitter):
    """Single-slot owner of the server process.

    Emits ``log`` for every stdout line, ``error`` for every stderr line and
    ``stopped`` with the return code once the process has exited.

    ``spawn`` defaults to :func:`asyncio.create_subprocess_exec` and is only
    replaced in tests.
    """

    def __init__(
        self,
        config: ServerConfig,
        *,
        startup_timeout: float = STARTUP_TIMEOUT,
        stop_timeout: float = STOP_TIMEOUT,
        spawn=asyncio.create_subprocess_exec,
    ) -> None:
        super().__init__()
        self._config = config
        self._startup_timeout = startup_timeout
        self._stop_timeout = stop_timeout
        self._spawn = spawn
        self._state = ProcessState.NOT_STARTED
        self._process: asyncio.subprocess.Process | None = None
        self._ready: asyncio.Future[None] | None = None
        self._watchers: list[asyncio.Task[None]] = []

    @property
    def state(self) -> ProcessState:
        return self._state

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process is not None else None

    def is_running(self) -> bool:
        return self._state is ProcessState.RUNNING

    # -- Start --------------------------------------------------------------

    async def start(self) -> None:
        """Spawn the server and wait until it reports readiness.

        Raises:
            AlreadyRunning: If a process is starting, running or stopping.
            ExecutableNotFound: If the configured jar does not exist.
            ProcessError: If spawning fails or stderr reports an error.
            ProcessExited: If the process exits before it is ready.
            StartupTimeout: If the readiness marker never appears.
        """
        if self._state not in _STARTABLE:
            raise AlreadyRunning(f"Server is already {self._state.value}")

        jar = resolve_server_path(self._config.server_path)
        if not jar.is_file():
            raise ExecutableNotFound(str(jar))

        self._state = ProcessState.STARTING
        workdir = jar.parent
        await asyncio.to_thread(prepare_server_directory, workdir, self._config)

        args = server_command(jar, self._config.memory_allocation)
        logger.info("Launching server: %s", " ".join(args))
        try:
            process = await self._spawn(
                *args,
                cwd=str(workdir),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            self._state = ProcessState.FAILED
            raise ProcessError(f"Failed to launch server: {exc}") from exc

        self._process = process
        self._ready = asyncio.get_running_loop().create_future()
        self._watchers = [
            asyncio.create_task(self._read_stdout(process)),
            asyncio.create_task(self._read_stderr(process)),
            asyncio.create_task(self._wait_exit(process)),
        ]

        try:
            await asyncio.wait_for(self._ready, self._startup_timeout)
        except asyncio.TimeoutError:
            logger.error("Server not ready after %gs, stopping it", self._startup_timeout)
            await self._abort_start()
            raise StartupTimeout(self._startup_timeout) from None
        except LifecycleError:
            await self._abort_start()
            raise

        logger.info("Server ready (pid %d)", process.pid)

    async def _abort_start(self) -> None:
        await self.stop()
        self._state = ProcessState.FAILED

    # -- Output watchers ----------------------------------------------------

    async def _read_stdout(self, process: asyncio.subprocess.Process) -> None:
        # Keep draining after readiness so the child never blocks on a full pipe.
        async for raw in process.stdout:
            line = raw.decode("utf-8", errors="replace").rstrip()
            self.emit("log", line)
            if READINESS_MARKER in line and self._resolve_ready():
                self._state = ProcessState.RUNNING

    async def _read_stderr(self, process: asyncio.subprocess.Process) -> None:
        async for raw in process.stderr:
            line = raw.decode("utf-8", errors="replace").rstrip()
            self.emit("error", line)
            if ERROR_MARKER in line:
                self._resolve_ready(ProcessError(line))

    async def _wait_exit(self, process: asyncio.subprocess.Process) -> None:
        returncode = await process.wait()
        self._resolve_ready(ProcessExited(returncode))
        if self._state is ProcessState.RUNNING:
            logger.warning("Server exited unexpectedly (code %s)", returncode)
            self._state = ProcessState.STOPPED if returncode == 0 else ProcessState.FAILED
            self.emit("stopped", returncode)

    def _resolve_ready(self, error: Exception | None = None) -> bool:
        """Settle the startup future once; returns False if already settled."""
        if self._ready is None or self._ready.done():
            return False
        if error is None:
            self._ready.set_result(None)
        else:
            self._ready.set_exception(error)
        return True

    # -- Stop ---------------------------------------------------------------

    async def stop(self) -> None:
        """Terminate the server and wait for it to exit.

        Does nothing unless the process is running (or still starting, which
        only happens while cleaning up a failed start).
        """
        process = self._process
        if process is None or self._state not in (ProcessState.RUNNING, ProcessState.STARTING):
            return

        self._state = ProcessState.STOPPING
        logger.info("Stopping server (pid %d)", process.pid)
        if process.returncode is None:
            try:
                process.terminate()
            except ProcessLookupError:
                pass

        try:
            returncode = await asyncio.wait_for(process.wait(), self._stop_timeout)
        except asyncio.TimeoutError:
            logger.warning("Server ignored SIGTERM for %gs, killing it", self._stop_timeout)
            process.kill()
            returncode = await process.wait()

        await asyncio.gather(*self._watchers, return_exceptions=True)
        self._watchers = []
        self._state = ProcessState.STOPPED
        logger.info("Server stopped (code %s)", returncode)
        self.emit("stopped", returncode)
