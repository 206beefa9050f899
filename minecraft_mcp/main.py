"""Click CLI entry point for minecraft-mcp.

Parses the server options, configures logging, and hands off to the
:class:`~minecraft_mcp.app.Application`.  stdout carries the MCP JSON-RPC
stream, so every human-readable message goes to stderr.
"""

import asyncio
import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .app import Application
from .config import DEFAULT_SERVER_PATH, ServerConfig

console = Console(stderr=True)

FILE_LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"


def configure_logging(*, verbose: bool, log_file: str | None) -> None:
    """Log to stderr through rich and, optionally, append to a plain file."""
    handlers: list[logging.Handler] = [
        RichHandler(console=console, show_path=False, rich_tracebacks=True),
    ]
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(name)s] %(message)s",
        handlers=handlers,
        force=True,
    )


@click.command(context_settings={"auto_envvar_prefix": "MINECRAFT_MCP"})
@click.option(
    "--server-jar",
    "-j",
    default=DEFAULT_SERVER_PATH,
    show_default=True,
    help="Path to the Minecraft server JAR file.",
)
@click.option("--memory", default="2G", show_default=True, help="JVM heap size (-Xmx/-Xms).")
@click.option(
    "--port",
    default=25565,
    show_default=True,
    type=click.IntRange(1, 65535),
    help="Server port the bot connects to.",
)
@click.option(
    "--max-players",
    default=10,
    show_default=True,
    type=click.IntRange(min=1),
    help="Written to server.properties.",
)
@click.option("--username", default="MCPBot", show_default=True, help="Bot username (offline mode).")
@click.option("--mc-version", default="1.21", show_default=True, help="Minecraft version the bot speaks.")
@click.option("--host", default="localhost", show_default=True, help="Host the bot connects to.")
@click.option(
    "--log-file",
    default="mcp.log",
    show_default=True,
    type=click.Path(dir_okay=False),
    help="Append logs to this file. Pass an empty string to disable.",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
@click.version_option(version=__version__, prog_name="minecraft-mcp")
def cli(
    server_jar: str,
    memory: str,
    port: int,
    max_players: int,
    username: str,
    mc_version: str,
    host: str,
    log_file: str,
    verbose: bool,
) -> None:
    """Run a Minecraft server and expose a bot in it as MCP tools.

    Starts the server from SERVER_JAR, connects a bot once the server is
    ready, and serves the Model Context Protocol over stdio.
    """
    configure_logging(verbose=verbose, log_file=log_file or None)

    try:
        config = ServerConfig(
            server_path=server_jar,
            memory_allocation=memory,
            port=port,
            max_players=max_players,
            username=username,
            version=mc_version,
            host=host,
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc

    app = Application(config)
    try:
        exit_code = asyncio.run(app.run())
    except KeyboardInterrupt:
        # Event loops without signal handler support end up here; run()
        # has already been torn down by asyncio.run().
        console.print("[dim]Interrupted[/dim]")
        exit_code = 0
    except Exception:
        logging.getLogger("minecraft-mcp").exception("Uncaught error")
        exit_code = 1
    sys.exit(exit_code)


def main() -> None:
    """Entry point for the ``minecraft-mcp`` command."""
    cli()


if __name__ == "__main__":
    main()
