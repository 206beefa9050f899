"""Declarative tool catalog.

Each tool is described once: a pydantic model carries the argument types,
bounds, enums and defaults, the JSON input schema is generated from that
model, and the same model validates incoming arguments before anything
reaches the bot session.  Field aliases keep the wire names camelCase while
the session methods take snake_case keyword arguments.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import InvalidArguments
from .protocol import DEFAULT_ENTITY_RANGE, HOTBAR_FIRST_SLOT, HOTBAR_LAST_SLOT

# Bumped whenever a tool is added, removed or changes its arguments.
CATALOG_VERSION = "1.0"


class ToolArguments(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class NoArguments(ToolArguments):
    pass


class ChatArguments(ToolArguments):
    message: str = Field(min_length=1, description="The message to send")


class BlockArguments(ToolArguments):
    x: int = Field(description="Block X coordinate")
    y: int = Field(description="Block Y coordinate")
    z: int = Field(description="Block Z coordinate")


class PointArguments(ToolArguments):
    x: float = Field(description="X coordinate")
    y: float = Field(description="Y coordinate (vertical)")
    z: float = Field(description="Z coordinate")


class SlotArguments(ToolArguments):
    slot: int = Field(
        ge=HOTBAR_FIRST_SLOT, le=HOTBAR_LAST_SLOT,
        description="Hotbar slot (0-8)",
    )


class EquipArguments(ToolArguments):
    item_name: str = Field(
        alias="itemName", min_length=1,
        description="Name or part of the name of the item to equip",
    )
    destination: Literal["hand", "head", "torso", "legs", "feet", "off-hand"] | None = Field(
        default=None,
        description="Where to equip the item. Defaults to the item's natural slot.",
    )


class NearbyEntitiesArguments(ToolArguments):
    radius: float = Field(
        default=DEFAULT_ENTITY_RANGE, alias="range", ge=1, le=100,
        description="Search radius in blocks (1-100). Default is 10.",
    )


class AttackArguments(ToolArguments):
    entity_name: str = Field(alias="entityName", min_length=1, description="Name of the entity to attack")


class UseItemArguments(ToolArguments):
    hand: Literal["right", "left"] = Field(default="right", description="Hand holding the item")


class FollowArguments(ToolArguments):
    player_name: str = Field(alias="playerName", min_length=1, description="Name of the player to follow")


@dataclass(frozen=True, slots=True)
class ToolDescriptor:
    """One entry of the tool catalog.

    Attributes:
        name: Tool name as seen by MCP clients.
        description: Human-readable description for ``tools/list``.
        arguments: Pydantic model that defines and validates the input.
        handler: Name of the :class:`SessionClient` coroutine to call.
        confirmation: Text returned when the handler returns nothing.
    """

    name: str
    description: str
    arguments: type[ToolArguments]
    handler: str
    confirmation: str | None = None

    @property
    def input_schema(self) -> dict[str, Any]:
        return self.arguments.model_json_schema(by_alias=True)

    def parse(self, arguments: dict[str, Any] | None) -> dict[str, Any]:
        """Validate raw arguments and return keyword arguments for the handler."""
        try:
            model = self.arguments.model_validate(arguments or {})
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
                for err in exc.errors()
            )
            raise InvalidArguments(f"Invalid arguments for '{self.name}': {problems}") from exc
        return model.model_dump()


TOOLS: tuple[ToolDescriptor, ...] = (
    ToolDescriptor("chat", "Send a chat message", ChatArguments, "send_chat", "Message sent"),
    ToolDescriptor("jump", "Make the bot jump", NoArguments, "jump", "Jumped!"),
    ToolDescriptor("moveForward", "Walk forward for one second", NoArguments, "move_forward", "Moved forward"),
    ToolDescriptor("moveBack", "Walk backward for one second", NoArguments, "move_back", "Moved back"),
    ToolDescriptor("turnLeft", "Strafe left for half a second", NoArguments, "turn_left", "Turned left"),
    ToolDescriptor("turnRight", "Strafe right for half a second", NoArguments, "turn_right", "Turned right"),
    ToolDescriptor(
        "placeBlock", "Place the held block on top of the block at the given coordinates",
        BlockArguments, "place_block", "Block placed",
    ),
    ToolDescriptor("digBlock", "Dig the block at the given coordinates", BlockArguments, "dig_block", "Block dug"),
    ToolDescriptor(
        "getBlockInfo", "Get name, position and hardness of the block at the given coordinates",
        BlockArguments, "get_block_info",
    ),
    ToolDescriptor("selectSlot", "Select a hotbar slot", SlotArguments, "select_slot", "Slot selected"),
    ToolDescriptor("getInventory", "List the items in the bot's inventory", NoArguments, "get_inventory"),
    ToolDescriptor(
        "equipItem", "Equip the first inventory item whose name contains the given text",
        EquipArguments, "equip_item",
    ),
    ToolDescriptor(
        "getStatus", "Get health, food, game mode, position, weather and time of day",
        NoArguments, "get_status",
    ),
    ToolDescriptor(
        "getNearbyEntities", "List entities within a radius of the bot",
        NearbyEntitiesArguments, "get_nearby_entities",
    ),
    ToolDescriptor("attack", "Attack a named entity within 4 blocks", AttackArguments, "attack"),
    ToolDescriptor("useItem", "Start using the held item", UseItemArguments, "use_item", "Using item"),
    ToolDescriptor("stopUsingItem", "Stop using the held item", NoArguments, "stop_using_item", "Stopped using item"),
    ToolDescriptor("lookAt", "Look at the given coordinates", PointArguments, "look_at", "Looking at target"),
    ToolDescriptor(
        "followPlayer", "Follow a player at a distance of 2 blocks until stopped",
        FollowArguments, "follow_player",
    ),
    ToolDescriptor("stopFollowing", "Cancel the current navigation goal", NoArguments, "stop_following", "Stopped"),
    ToolDescriptor(
        "goToPosition", "Walk to the given coordinates using pathfinding",
        PointArguments, "go_to_position",
    ),
)

TOOLS_BY_NAME: dict[str, ToolDescriptor] = {tool.name: tool for tool in TOOLS}
