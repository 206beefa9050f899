"""Startup and shutdown sequencing for the whole service.

Startup order: MCP transport, server process, a fixed grace period, then the
bot session.  Shutdown runs the reverse: transport, session, process.  Each
shutdown step is attempted even if an earlier one failed.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
import signal
from collections.abc import Awaitable, Callable

from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from .bot_client import SessionClient
from .config import ServerConfig
from .dispatcher import ToolDispatcher, build_server
from .errors import StartupFailed
from .protocol import GRACE_PERIOD, TRANSPORT_CLOSE_TIMEOUT
from .server_launcher import ProcessSupervisor

logger = logging.getLogger("minecraft-mcp")

Transport = Callable[[Server], Awaitable[None]]


class AppState(enum.Enum):
    IDLE = "idle"
    STARTING_TRANSPORT = "starting_transport"
    STARTING_PROCESS = "starting_process"
    AWAITING_GRACE = "awaiting_grace"
    CONNECTING = "connecting"
    LIVE = "live"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


async def serve_stdio(server: Server) -> None:
    """Serve MCP over stdin/stdout until the client closes the stream."""
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


class Application:
    """Owns the supervisor, the session and the dispatcher."""

    def __init__(
        self,
        config: ServerConfig,
        *,
        supervisor: ProcessSupervisor | None = None,
        session: SessionClient | None = None,
        transport: Transport = serve_stdio,
        grace_period: float = GRACE_PERIOD,
        close_timeout: float = TRANSPORT_CLOSE_TIMEOUT,
    ) -> None:
        self.supervisor = supervisor or ProcessSupervisor(config)
        self.session = session or SessionClient(config)
        self.dispatcher = ToolDispatcher(self.session)
        self.server = build_server(self.dispatcher)
        self._transport = transport
        self._grace_period = grace_period
        self._close_timeout = close_timeout
        self._state = AppState.IDLE
        self._transport_task: asyncio.Task[None] | None = None
        self._shutdown_task: asyncio.Task[None] | None = None
        self._stop_requested: asyncio.Event | None = None
        self._fault = False
        self._wire_events()

    @property
    def state(self) -> AppState:
        return self._state

    def _wire_events(self) -> None:
        server_log = logging.getLogger("minecraft-mcp.server")
        bot_log = logging.getLogger("minecraft-mcp.bot")
        self.supervisor.on("log", lambda line: server_log.info("[Server] %s", line))
        self.supervisor.on("error", lambda line: server_log.error("[Server Error] %s", line))
        self.supervisor.on("stopped", lambda code: server_log.info("[Server] exited with code %s", code))
        self.session.on("chat", lambda username, message: bot_log.info("[Chat] %s: %s", username, message))
        self.session.on("connected", lambda: bot_log.info("[Bot] connected"))
        self.session.on("kicked", lambda reason: bot_log.warning("[Bot] kicked: %s", reason))
        self.session.on("error", lambda error: bot_log.error("[Bot Error] %s", error))

    # -- Startup ------------------------------------------------------------

    async def start(self) -> None:
        """Bring every component up, or clean up and raise StartupFailed."""
        try:
            self._state = AppState.STARTING_TRANSPORT
            logger.info("Starting MCP transport...")
            self._transport_task = asyncio.create_task(self._transport(self.server))
            await asyncio.sleep(0)
            if self._transport_task.done():
                self._transport_task.result()

            self._state = AppState.STARTING_PROCESS
            logger.info("Starting Minecraft server...")
            await self.supervisor.start()
            logger.info("Minecraft server started successfully")

            self._state = AppState.AWAITING_GRACE
            await asyncio.sleep(self._grace_period)

            self._state = AppState.CONNECTING
            logger.info("Connecting bot to server...")
            await self.session.connect()
            logger.info("Bot connected successfully")
        except Exception as exc:
            logger.error("Failed to start: %s", exc)
            await self.shutdown()
            raise StartupFailed(str(exc)) from exc

        self._state = AppState.LIVE
        logger.info("MCP server ready")

    # -- Shutdown -----------------------------------------------------------

    async def shutdown(self) -> None:
        """Stop everything once; later calls wait for the same shutdown."""
        if self._state is AppState.STOPPED:
            return
        if self._shutdown_task is None:
            self._shutdown_task = asyncio.create_task(self._shutdown())
        await asyncio.shield(self._shutdown_task)

    async def _shutdown(self) -> None:
        self._state = AppState.SHUTTING_DOWN
        logger.info("Shutting down...")
        steps = (
            ("closing MCP transport", self._close_transport),
            ("disconnecting bot", self.session.disconnect),
            ("stopping Minecraft server", self.supervisor.stop),
        )
        for description, step in steps:
            logger.info("%s%s...", description[0].upper(), description[1:])
            try:
                await step()
            except Exception:
                logger.exception("Error while %s", description)
        self._state = AppState.STOPPED
        logger.info("Shutdown complete")

    async def _close_transport(self) -> None:
        task = self._transport_task
        if task is None or task.done():
            return
        task.cancel()
        done, _ = await asyncio.wait({task}, timeout=self._close_timeout)
        if not done:
            logger.warning(
                "MCP transport still open after %gs, continuing shutdown", self._close_timeout,
            )
        elif not task.cancelled() and task.exception() is not None:
            logger.warning("MCP transport ended with an error: %s", task.exception())

    # -- Main loop ----------------------------------------------------------

    def request_stop(self) -> None:
        """Ask :meth:`run` to shut down; repeated requests are ignored."""
        if self._stop_requested is not None and not self._stop_requested.is_set():
            logger.info("Stop requested")
            self._stop_requested.set()

    def _on_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict) -> None:
        loop.default_exception_handler(context)
        self._fault = True
        self.request_stop()

    def _install_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        loop.set_exception_handler(self._on_loop_exception)
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop)
            except (NotImplementedError, RuntimeError):
                # Not supported on Windows event loops; Ctrl+C then surfaces
                # as KeyboardInterrupt from asyncio.run().
                pass

    async def run(self) -> int:
        """Start, serve until stopped or the client goes away, shut down.

        Returns the process exit code.
        """
        self._stop_requested = asyncio.Event()
        self._install_handlers()
        stop_wait = asyncio.create_task(self._stop_requested.wait())
        start_task = asyncio.create_task(self.start())
        try:
            # A stop request must also interrupt a slow or hung startup.
            await asyncio.wait({start_task, stop_wait}, return_when=asyncio.FIRST_COMPLETED)
            if not start_task.done():
                logger.info("Stop requested during startup")
                return 1 if self._fault else 0
            try:
                start_task.result()
            except StartupFailed:
                return 1

            done, _ = await asyncio.wait(
                {stop_wait, self._transport_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            stop_wait.cancel()
            if not start_task.done():
                start_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await start_task
            # Also reached when asyncio.run() cancels us on Ctrl+C.
            await self.shutdown()

        exit_code = 1 if self._fault else 0
        if self._transport_task in done and not self._transport_task.cancelled():
            error = self._transport_task.exception()
            if error is not None:
                logger.error("MCP transport failed", exc_info=error)
                exit_code = 1
            else:
                logger.info("MCP client disconnected")

        return exit_code
