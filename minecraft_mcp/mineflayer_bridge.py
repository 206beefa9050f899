"""Thin adapter around a mineflayer bot driven through JSPyBridge.

mineflayer and mineflayer-pathfinder run in a Node.js child process managed
by the ``javascript`` package.  Every method here is synchronous and may
block on the bridge (promises returned by mineflayer are awaited by the
bridge), so :class:`~minecraft_mcp.bot_client.SessionClient` always calls
them through ``asyncio.to_thread()``.

Event callbacks fire on the bridge's event thread, not on the asyncio loop.

Only plain Python values (tuples, dicts, strings, numbers) cross this
boundary so the session layer never touches JS proxies directly.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger("minecraft-mcp.bot")

# Promises such as dig() or equip() can take a while on a busy server.
ACTION_TIMEOUT_MS = 60_000

Vec = tuple[float, float, float]


def _vec(position: Any) -> Vec:
    return (float(position.x), float(position.y), float(position.z))


class MineflayerBot:
    """Python-facing view of one ``mineflayer.createBot()`` instance."""

    def __init__(self, options: dict[str, Any]) -> None:
        # Importing ``javascript`` boots the Node bridge, so defer it until a
        # bot is actually created.
        from javascript import On, globalThis, require

        self._on = On
        self._object = globalThis.Object
        self._mineflayer = require("mineflayer")
        self._vec3 = require("vec3").Vec3
        self._pathfinder = None
        self._bot = self._mineflayer.createBot(options)

    # -- Events -------------------------------------------------------------

    def on(self, event: str, callback: Callable[..., None]) -> None:
        """Forward a mineflayer event to ``callback`` with its JS arguments."""

        @self._on(self._bot, event)
        def _handler(this, *args):
            callback(*args)

    # -- Plugins ------------------------------------------------------------

    def load_pathfinder(self) -> bool:
        """Load mineflayer-pathfinder and default movements; False if unavailable."""
        from javascript import require

        try:
            pathfinder = require("mineflayer-pathfinder")
        except Exception as exc:
            logger.warning("mineflayer-pathfinder unavailable: %s", exc)
            return False
        self._bot.loadPlugin(pathfinder.pathfinder)
        self._bot.pathfinder.setMovements(pathfinder.Movements(self._bot))
        self._pathfinder = pathfinder
        return True

    # -- Session ------------------------------------------------------------

    def quit(self) -> None:
        self._bot.quit()

    def chat(self, message: str) -> None:
        self._bot.chat(message)

    def set_control_state(self, control: str, state: bool) -> None:
        self._bot.setControlState(control, state)

    # -- Queries ------------------------------------------------------------

    def position(self) -> Vec | None:
        entity = self._bot.entity
        if not entity or not entity.position:
            return None
        return _vec(entity.position)

    def status(self) -> dict[str, Any]:
        return {
            "health": self._bot.health,
            "food": self._bot.food,
            "gameMode": self._bot.game.gameMode,
            "isRaining": bool(self._bot.isRaining),
            "timeOfDay": self._bot.time.timeOfDay,
        }

    def block_at(self, x: int, y: int, z: int) -> dict[str, Any] | None:
        block = self._bot.blockAt(self._vec3(x, y, z))
        if not block:
            return None
        return {
            "name": block.name,
            "position": _vec(block.position),
            "hardness": block.hardness,
        }

    def inventory_items(self) -> list[dict[str, Any]]:
        return [
            {
                "name": item.name,
                "count": item.count,
                "slot": item.slot,
                "displayName": item.displayName,
            }
            for item in self._bot.inventory.items()
        ]

    def entities(self) -> list[dict[str, Any]]:
        own_id = self._bot.entity.id if self._bot.entity else None
        result = []
        for entity in self._object.values(self._bot.entities):
            if entity.id == own_id or not entity.position:
                continue
            result.append({
                "id": entity.id,
                "name": entity.username or entity.name or entity.displayName or "unknown",
                "type": entity.type,
                "position": _vec(entity.position),
            })
        return result

    def player_entity_id(self, username: str) -> int | None:
        player = self._bot.players[username]
        if not player or not player.entity:
            return None
        return player.entity.id

    # -- World interaction --------------------------------------------------

    def place_block(self, x: int, y: int, z: int, face: Vec) -> None:
        reference = self._bot.blockAt(self._vec3(x, y, z))
        self._bot.placeBlock(reference, self._vec3(*face), timeout=ACTION_TIMEOUT_MS)

    def dig(self, x: int, y: int, z: int) -> None:
        block = self._bot.blockAt(self._vec3(x, y, z))
        self._bot.dig(block, timeout=ACTION_TIMEOUT_MS)

    def set_quick_bar_slot(self, slot: int) -> None:
        self._bot.setQuickBarSlot(slot)

    def equip(self, slot: int, destination: str) -> None:
        item = self._bot.inventory.slots[slot]
        self._bot.equip(item, destination, timeout=ACTION_TIMEOUT_MS)

    def attack(self, entity_id: int) -> None:
        self._bot.attack(self._bot.entities[entity_id])

    def activate_item(self, off_hand: bool) -> None:
        self._bot.activateItem(off_hand)

    def deactivate_item(self) -> None:
        self._bot.deactivateItem()

    def look_at(self, x: float, y: float, z: float) -> None:
        self._bot.lookAt(self._vec3(x, y, z), True, timeout=ACTION_TIMEOUT_MS)

    # -- Navigation ---------------------------------------------------------

    def set_goal_follow(self, entity_id: int, distance: int) -> None:
        goal = self._pathfinder.goals.GoalFollow(self._bot.entities[entity_id], distance)
        self._bot.pathfinder.setGoal(goal, True)

    def set_goal_position(self, x: float, y: float, z: float) -> None:
        goal = self._pathfinder.goals.GoalBlock(x, y, z)
        self._bot.pathfinder.setGoal(goal)

    def clear_goal(self) -> None:
        if self._pathfinder is not None:
            self._bot.pathfinder.setGoal(None)
