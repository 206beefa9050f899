"""Immutable configuration for the supervised server and the bot session."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_SERVER_PATH = os.path.join("minecraft-server", "server.jar")


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """Everything needed to launch the server and log the bot into it.

    Attributes:
        server_path: Path to the server jar.  ``~`` is expanded and relative
            paths are resolved against the working directory at start time.
        memory_allocation: JVM heap size, used for both ``-Xmx`` and ``-Xms``.
        port: TCP port the server listens on and the bot connects to.
        max_players: Written to ``server.properties``.
        username: Offline-mode username of the bot.
        version: Minecraft protocol version the bot speaks.
        host: Host the bot connects to.
    """

    server_path: str
    memory_allocation: str = "2G"
    port: int = 25565
    max_players: int = 20
    username: str = "MCPBot"
    version: str = "1.21"
    host: str = "localhost"

    def __post_init__(self) -> None:
        if not self.server_path:
            raise ValueError("Server JAR path is required")
        if not 1 <= self.port <= 65535:
            raise ValueError(f"Invalid port number: {self.port}")
        if self.max_players < 1:
            raise ValueError(f"Invalid max players: {self.max_players}")
        if not self.username:
            raise ValueError("Bot username is required")

    def bot_options(self) -> dict[str, object]:
        """Options handed to ``mineflayer.createBot``."""
        return {
            "host": self.host,
            "port": self.port,
            "username": self.username,
            "version": self.version,
        }
