"""Rewrite the key=value files the server reads at boot.

Both ``eula.txt`` and ``server.properties`` are plain ``key=value`` files.
Existing keys are replaced in place, missing keys are appended, and every
other line (comments, unrelated settings) is left alone, so patching the
same file twice produces the same result.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from .config import ServerConfig
from .protocol import EULA_FILE, PROPERTIES_FILE

logger = logging.getLogger("minecraft-mcp.server")


def server_properties_for(config: ServerConfig) -> dict[str, str]:
    """Properties forced on every start.

    Offline mode lets the bot log in without a Microsoft account; peaceful
    difficulty and no monsters keep the bot alive while idle.
    """
    return {
        "online-mode": "false",
        "enforce-secure-profile": "false",
        "difficulty": "peaceful",
        "spawn-monsters": "false",
        "spawn-npcs": "true",
        "spawn-animals": "true",
        "max-players": str(config.max_players),
        "server-port": str(config.port),
    }


def patch_text(text: str, values: dict[str, str]) -> str:
    """Return ``text`` with each ``key=...`` line set to the given value."""
    missing: list[str] = []
    for key, value in values.items():
        pattern = re.compile(rf"^{re.escape(key)}=.*$", re.MULTILINE)
        # Callable replacement so backslashes in values are taken literally.
        text, count = pattern.subn(lambda _m, line=f"{key}={value}": line, text)
        if count == 0:
            missing.append(f"{key}={value}")

    if missing:
        if text and not text.endswith("\n"):
            text += "\n"
        text += "\n".join(missing) + "\n"
    return text


def patch_properties(path: Path, values: dict[str, str]) -> None:
    """Apply ``values`` to the file at ``path``, creating it if needed."""
    try:
        original = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        original = ""

    updated = patch_text(original, values)
    if updated != original:
        path.write_text(updated, encoding="utf-8")
        logger.debug("Updated %s", path)


def accept_eula(directory: Path) -> None:
    patch_properties(directory / EULA_FILE, {"eula": "true"})


def prepare_server_directory(directory: Path, config: ServerConfig) -> None:
    """Write the EULA marker and forced properties next to the server jar."""
    accept_eula(directory)
    patch_properties(directory / PROPERTIES_FILE, server_properties_for(config))
