"""The single bot session and every avatar action exposed as a tool.

:class:`SessionClient` owns at most one bot at a time.  The bot itself is a
blocking object (see :mod:`minecraft_mcp.mineflayer_bridge`), so every call
into it is offloaded with ``asyncio.to_thread()``, and its events are
marshalled back onto the event loop with ``call_soon_threadsafe()``.

Motion ownership:
    - A timed control hold (jump, move, turn) occupies one control
      dimension.  Each hold carries a generation number, and only the newest
      hold on a dimension may release it.
    - A navigation goal (follow a player, go to a point) owns all motion.
      Timed holds fail with :class:`Busy` while it is active, a navigation
      request fails with :class:`Busy` while any hold is outstanding, and a
      new goal replaces the current one.
"""

from __future__ import annotations

import asyncio
import enum
import itertools
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .config import ServerConfig
from .errors import (
    AlreadyConnected,
    BotConnectionError,
    Busy,
    CannotDigAir,
    EntityNotFound,
    InvalidArguments,
    InvalidSlot,
    ItemNotFound,
    NavigationUnavailable,
    NoTargetBlock,
    NotConnected,
    PlayerNotFound,
)
from .events import EventEmitter
from .protocol import (
    ATTACK_RANGE,
    CONTROL_DURATIONS,
    DEFAULT_ENTITY_RANGE,
    EQUIP_DESTINATIONS,
    FOLLOW_DISTANCE,
    HOTBAR_FIRST_SLOT,
    HOTBAR_LAST_SLOT,
)

logger = logging.getLogger("minecraft-mcp.bot")

# Placement always targets the top face of the reference block.
TOP_FACE = (0.0, 1.0, 0.0)

# Item name fragments that imply an armour or off-hand slot.
_NATURAL_DESTINATIONS = (
    ("helmet", "head"),
    ("chestplate", "torso"),
    ("elytra", "torso"),
    ("leggings", "legs"),
    ("boots", "feet"),
    ("shield", "off-hand"),
)


class SessionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"


@dataclass(frozen=True, slots=True)
class Position:
    x: float
    y: float
    z: float

    def distance_to(self, other: Position) -> float:
        return math.dist((self.x, self.y, self.z), (other.x, other.y, other.z))

    def rounded(self, digits: int = 2) -> dict[str, float]:
        return {
            "x": round(self.x, digits),
            "y": round(self.y, digits),
            "z": round(self.z, digits),
        }

    def __str__(self) -> str:
        return f"({self.x:g}, {self.y:g}, {self.z:g})"


@dataclass(frozen=True, slots=True)
class PendingControlAction:
    """A timed hold on one control dimension."""

    control: str
    generation: int
    duration: float


@dataclass(slots=True)
class _Navigation:
    kind: str  # "follow" or "position"
    target: str
    waiter: asyncio.Future = field(repr=False)


def _default_bot_factory(options: dict[str, Any]):
    from .mineflayer_bridge import MineflayerBot

    return MineflayerBot(options)


def natural_destination(item_name: str) -> str:
    """Equipment slot an item goes to when no destination is given."""
    for fragment, destination in _NATURAL_DESTINATIONS:
        if fragment in item_name:
            return destination
    return "hand"


class SessionClient(EventEmitter):
    """Single-slot owner of the bot session.

    Emits ``connected`` once the bot has spawned, ``chat`` with
    ``(username, message)``, ``kicked`` with the reason and ``error`` with
    the underlying error object.
    """

    def __init__(
        self,
        config: ServerConfig,
        *,
        bot_factory: Callable[[dict[str, Any]], Any] = _default_bot_factory,
    ) -> None:
        super().__init__()
        self._config = config
        self._bot_factory = bot_factory
        self._bot: Any = None
        self._state = SessionState.DISCONNECTED
        self._pathfinder = False
        self._spawned: asyncio.Future[None] | None = None
        self._closed: asyncio.Future[None] | None = None
        self._holds: dict[str, PendingControlAction] = {}
        self._generations = itertools.count(1)
        self._navigation: _Navigation | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    def is_connected(self) -> bool:
        return self._state is SessionState.CONNECTED

    # -- Connection ---------------------------------------------------------

    async def connect(self) -> None:
        """Create the bot and wait until it has spawned in the world.

        Raises:
            AlreadyConnected: If a session is connecting, connected or closing.
            BotConnectionError: If the bot errors out, is kicked, or the
                connection ends before the bot spawns.
        """
        if self._state is not SessionState.DISCONNECTED:
            raise AlreadyConnected(f"Bot is already {self._state.value}")

        self._state = SessionState.CONNECTING
        loop = asyncio.get_running_loop()
        self._spawned = loop.create_future()
        options = self._config.bot_options()
        logger.info("Connecting to %s:%s as %s (version %s)",
                    options["host"], options["port"], options["username"], options["version"])

        try:
            bot = await asyncio.to_thread(self._bot_factory, options)
        except Exception as exc:
            self._reset()
            raise BotConnectionError(f"Failed to create bot: {exc}") from exc

        self._bot = bot
        try:
            await asyncio.to_thread(self._subscribe, bot, loop)
        except Exception as exc:
            await self._abandon(bot)
            raise BotConnectionError(f"Failed to create bot: {exc}") from exc

        try:
            await self._spawned
        except BotConnectionError:
            self._reset()
            raise

        try:
            self._pathfinder = await asyncio.to_thread(bot.load_pathfinder)
        except Exception as exc:
            await self._abandon(bot)
            raise BotConnectionError(f"Failed to initialise bot: {exc}") from exc
        self._state = SessionState.CONNECTED
        logger.info("Bot spawned%s", "" if self._pathfinder else " (pathfinding unavailable)")
        self.emit("connected")

    def _subscribe(self, bot: Any, loop: asyncio.AbstractEventLoop) -> None:
        handlers = {
            "spawn": self._on_spawn,
            "chat": self._on_chat,
            "kicked": self._on_kicked,
            "error": self._on_error,
            "end": self._on_end,
            "goal_reached": self._on_goal_reached,
        }
        for event, handler in handlers.items():
            bot.on(event, lambda *args, handler=handler: loop.call_soon_threadsafe(handler, *args))

    async def disconnect(self) -> None:
        """Quit the server and wait for the connection to close."""
        if self._state is SessionState.DISCONNECTED or self._bot is None:
            return

        bot = self._bot
        self._state = SessionState.DISCONNECTING
        self._release_navigation("interrupted by disconnect")
        self._closed = asyncio.get_running_loop().create_future()
        logger.info("Disconnecting bot")
        await asyncio.to_thread(bot.quit)
        await self._closed
        self._reset()
        logger.info("Bot disconnected")

    async def _abandon(self, bot: Any) -> None:
        """Drop a half-initialised bot and close its connection."""
        self._reset()
        try:
            await asyncio.to_thread(bot.quit)
        except Exception:
            logger.warning("Failed to quit abandoned bot", exc_info=True)

    def _reset(self) -> None:
        self._bot = None
        self._pathfinder = False
        self._holds.clear()
        self._spawned = None
        self._closed = None
        self._state = SessionState.DISCONNECTED

    # -- Bot events (run on the event loop) ---------------------------------

    def _on_spawn(self, *args: Any) -> None:
        # spawn fires again after every respawn; only the first one matters.
        if self._spawned is not None and not self._spawned.done():
            self._spawned.set_result(None)

    def _on_chat(self, username: str, message: str, *args: Any) -> None:
        self.emit("chat", username, message)

    def _on_kicked(self, reason: Any, *args: Any) -> None:
        self.emit("kicked", reason)
        self._fail_spawn(f"Kicked from server: {reason}")

    def _on_error(self, error: Any, *args: Any) -> None:
        self.emit("error", error)
        self._fail_spawn(f"Connection error: {error}")

    def _on_end(self, *args: Any) -> None:
        self._fail_spawn("Connection closed before the bot spawned")
        if self._closed is not None and not self._closed.done():
            self._closed.set_result(None)
        elif self._state is SessionState.CONNECTED:
            logger.warning("Bot connection ended unexpectedly")
            self._release_navigation("interrupted by disconnect")
            self._reset()

    def _on_goal_reached(self, *args: Any) -> None:
        # Follow goals are dynamic: reaching the player does not end them.
        if self._navigation is not None and self._navigation.kind == "position":
            self._release_navigation("reached")

    def _fail_spawn(self, message: str) -> None:
        if self._spawned is not None and not self._spawned.done():
            self._spawned.set_exception(BotConnectionError(message))

    # -- Helpers ------------------------------------------------------------

    def _require_bot(self) -> Any:
        if self._state is not SessionState.CONNECTED or self._bot is None:
            raise NotConnected()
        return self._bot

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.to_thread(func, *args)

    async def _position(self, bot: Any) -> Position | None:
        coords = await self._run(bot.position)
        return Position(*coords) if coords is not None else None

    def get_position(self) -> Position | None:
        """Current bot position, or None if not connected or not spawned.

        Never raises, so resources can report "unavailable" instead.
        """
        if self._state is not SessionState.CONNECTED or self._bot is None:
            return None
        try:
            coords = self._bot.position()
        except Exception:
            logger.debug("Position lookup failed", exc_info=True)
            return None
        return Position(*coords) if coords is not None else None

    # -- Chat ---------------------------------------------------------------

    async def send_chat(self, message: str) -> None:
        bot = self._require_bot()
        if not message:
            raise InvalidArguments("Chat message must not be empty")
        await self._run(bot.chat, message)

    # -- Timed controls -----------------------------------------------------

    async def jump(self) -> None:
        await self._hold("jump")

    async def move_forward(self) -> None:
        await self._hold("forward")

    async def move_back(self) -> None:
        await self._hold("back")

    async def turn_left(self) -> None:
        await self._hold("left")

    async def turn_right(self) -> None:
        await self._hold("right")

    async def _hold(self, control: str) -> None:
        bot = self._require_bot()
        if self._navigation is not None:
            raise Busy(f"Navigation to {self._navigation.target} in progress; call stopFollowing first")

        action = PendingControlAction(control, next(self._generations), CONTROL_DURATIONS[control])
        self._holds[control] = action
        try:
            await self._run(bot.set_control_state, control, True)
            await asyncio.sleep(action.duration)
        finally:
            # A newer hold on the same control owns the release.
            if self._holds.get(control) is action:
                del self._holds[control]
                if self._bot is bot:
                    await self._run(bot.set_control_state, control, False)

    # -- World interaction --------------------------------------------------

    async def _block(self, bot: Any, x: int, y: int, z: int) -> dict[str, Any]:
        block = await self._run(bot.block_at, x, y, z)
        if block is None:
            raise NoTargetBlock(f"No block found at ({x}, {y}, {z})")
        return block

    async def place_block(self, x: int, y: int, z: int) -> None:
        """Place the held block on top of the block at (x, y, z)."""
        bot = self._require_bot()
        await self._block(bot, x, y, z)
        await self._run(bot.place_block, x, y, z, TOP_FACE)

    async def dig_block(self, x: int, y: int, z: int) -> None:
        bot = self._require_bot()
        block = await self._block(bot, x, y, z)
        if block["name"] == "air":
            raise CannotDigAir(f"Cannot dig air at ({x}, {y}, {z})")
        await self._run(bot.dig, x, y, z)

    async def get_block_info(self, x: int, y: int, z: int) -> dict[str, Any]:
        bot = self._require_bot()
        block = await self._block(bot, x, y, z)
        return {
            "name": block["name"],
            "position": Position(*block["position"]).rounded(),
            "hardness": block["hardness"],
        }

    # -- Inventory ----------------------------------------------------------

    async def select_slot(self, slot: int) -> None:
        bot = self._require_bot()
        if not HOTBAR_FIRST_SLOT <= slot <= HOTBAR_LAST_SLOT:
            raise InvalidSlot(slot)
        await self._run(bot.set_quick_bar_slot, slot)

    async def get_inventory(self) -> list[dict[str, Any]]:
        bot = self._require_bot()
        return await self._run(bot.inventory_items)

    async def equip_item(self, item_name: str, destination: str | None = None) -> str:
        bot = self._require_bot()
        items = await self._run(bot.inventory_items)
        item = next((i for i in items if item_name in i["name"]), None)
        if item is None:
            raise ItemNotFound(f"No item matching {item_name!r} in inventory")

        destination = destination or natural_destination(item["name"])
        if destination not in EQUIP_DESTINATIONS:
            raise InvalidArguments(f"Invalid destination {destination!r}")
        await self._run(bot.equip, item["slot"], destination)
        return f"Equipped {item['name']} to {destination}"

    # -- Queries ------------------------------------------------------------

    async def get_status(self) -> dict[str, Any]:
        bot = self._require_bot()
        status = await self._run(bot.status)
        position = await self._position(bot)
        return {
            "health": status["health"],
            "food": status["food"],
            "gameMode": status["gameMode"],
            "position": position.rounded() if position else None,
            "isRaining": status["isRaining"],
            "timeOfDay": status["timeOfDay"],
        }

    async def _entities_within(self, bot: Any, radius: float) -> list[tuple[float, dict[str, Any]]]:
        origin = await self._position(bot)
        if origin is None:
            return []
        nearby = []
        for entity in await self._run(bot.entities):
            distance = origin.distance_to(Position(*entity["position"]))
            if distance <= radius:
                nearby.append((distance, entity))
        nearby.sort(key=lambda pair: pair[0])
        return nearby

    async def get_nearby_entities(self, radius: float = DEFAULT_ENTITY_RANGE) -> list[dict[str, Any]]:
        bot = self._require_bot()
        return [
            {
                "name": entity["name"],
                "type": entity["type"],
                "position": Position(*entity["position"]).rounded(),
                "distance": round(distance, 2),
            }
            for distance, entity in await self._entities_within(bot, radius)
        ]

    # -- Combat / item use --------------------------------------------------

    async def attack(self, entity_name: str) -> str:
        bot = self._require_bot()
        wanted = entity_name.lower()
        for _distance, entity in await self._entities_within(bot, ATTACK_RANGE):
            if str(entity["name"]).lower() == wanted:
                await self._run(bot.attack, entity["id"])
                return f"Attacked {entity['name']}"
        raise EntityNotFound(f"No {entity_name!r} within {ATTACK_RANGE:g} blocks")

    async def use_item(self, hand: str = "right") -> None:
        bot = self._require_bot()
        await self._run(bot.activate_item, hand == "left")

    async def stop_using_item(self) -> None:
        bot = self._require_bot()
        await self._run(bot.deactivate_item)

    # -- Orientation / navigation -------------------------------------------

    async def look_at(self, x: float, y: float, z: float) -> None:
        bot = self._require_bot()
        await self._run(bot.look_at, x, y, z)

    async def follow_player(self, player_name: str) -> str:
        """Follow a player until the goal is replaced or cancelled."""
        bot = self._require_bot()
        entity_id = await self._run(bot.player_entity_id, player_name)
        if entity_id is None:
            raise PlayerNotFound(f"Player {player_name!r} not found or not in view")
        return await self._navigate(
            bot, "follow", player_name, bot.set_goal_follow, entity_id, FOLLOW_DISTANCE,
        )

    async def go_to_position(self, x: float, y: float, z: float) -> str:
        """Walk to (x, y, z); returns once arrived, replaced or cancelled."""
        bot = self._require_bot()
        target = Position(x, y, z)
        return await self._navigate(
            bot, "position", str(target), bot.set_goal_position,
            math.floor(x), math.floor(y), math.floor(z),
        )

    async def stop_following(self) -> None:
        """Cancel any navigation goal, whichever call started it."""
        bot = self._require_bot()
        navigation = self._navigation
        if self._pathfinder:
            await self._run(bot.clear_goal)
        self._release_navigation("cancelled", navigation)

    async def _navigate(self, bot: Any, kind: str, target: str, set_goal: Callable[..., None], *args: Any) -> str:
        if not self._pathfinder:
            raise NavigationUnavailable()
        if self._holds:
            raise Busy(f"Timed {', '.join(sorted(self._holds))} control in progress")

        self._release_navigation("replaced")
        navigation = _Navigation(kind, target, asyncio.get_running_loop().create_future())
        self._navigation = navigation
        logger.info("Navigation started: %s %s", kind, target)
        try:
            await self._run(set_goal, *args)
            outcome = await navigation.waiter
        finally:
            if self._navigation is navigation:
                self._navigation = None

        if kind == "follow":
            return f"Stopped following {target} ({outcome})"
        if outcome == "reached":
            return f"Arrived at {target}"
        return f"Navigation to {target} {outcome}"

    def _release_navigation(self, outcome: str, navigation: _Navigation | None = None) -> None:
        navigation = navigation or self._navigation
        if navigation is None:
            return
        if self._navigation is navigation:
            self._navigation = None
        if not navigation.waiter.done():
            navigation.waiter.set_result(outcome)
            logger.info("Navigation %s: %s %s", outcome, navigation.kind, navigation.target)
