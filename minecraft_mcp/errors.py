"""Exception hierarchy for minecraft-mcp.

Lifecycle errors abort startup and trigger a full cleanup.  Everything else
is local to the tool call that raised it and reaches the MCP caller as an
error result.
"""

from __future__ import annotations


class MinecraftMCPError(Exception):
    """Base class for every error raised by this package."""


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

class LifecycleError(MinecraftMCPError):
    """The server process or the bot session failed to come up."""


class ExecutableNotFound(LifecycleError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Server executable not found: {path}")
        self.path = path


class ProcessError(LifecycleError):
    """The server process could not be spawned or reported an error."""


class ProcessExited(LifecycleError):
    def __init__(self, returncode: int | None) -> None:
        super().__init__(f"Server process exited before it was ready (code {returncode})")
        self.returncode = returncode


class StartupTimeout(LifecycleError):
    def __init__(self, timeout: float) -> None:
        super().__init__(f"Server did not become ready within {timeout:g}s")
        self.timeout = timeout


class BotConnectionError(LifecycleError):
    """The bot could not establish its session with the server."""


class StartupFailed(LifecycleError):
    """Raised by the orchestrator once a failed startup has been cleaned up."""


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------

class AlreadyRunning(MinecraftMCPError):
    pass


class AlreadyConnected(MinecraftMCPError):
    pass


class NotConnected(MinecraftMCPError):
    def __init__(self, message: str = "Bot not connected") -> None:
        super().__init__(message)


class Busy(MinecraftMCPError):
    """Another motion (navigation or a timed control hold) owns the bot."""


# ---------------------------------------------------------------------------
# Call-specific failures
# ---------------------------------------------------------------------------

class InvalidArguments(MinecraftMCPError):
    pass


class InvalidSlot(MinecraftMCPError):
    def __init__(self, slot: int) -> None:
        super().__init__(f"Invalid slot {slot}: must be between 0 and 8")
        self.slot = slot


class UnknownTool(MinecraftMCPError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class UnknownResource(MinecraftMCPError):
    def __init__(self, uri: str) -> None:
        super().__init__(f"Unknown resource: {uri}")
        self.uri = uri


class ResourceUnavailable(MinecraftMCPError):
    pass


class NoTargetBlock(MinecraftMCPError):
    pass


class CannotDigAir(MinecraftMCPError):
    pass


class ItemNotFound(MinecraftMCPError):
    pass


class EntityNotFound(MinecraftMCPError):
    pass


class PlayerNotFound(MinecraftMCPError):
    pass


class NavigationUnavailable(MinecraftMCPError):
    def __init__(self) -> None:
        super().__init__("Pathfinding is not available for this bot")
