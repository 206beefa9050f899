"""Tests for the tool catalog and the MCP request dispatcher."""

import asyncio
import json

import pytest
from mcp import types

from minecraft_mcp.dispatcher import RESOURCES, ToolDispatcher, build_server
from minecraft_mcp.errors import (
    InvalidArguments,
    NotConnected,
    ResourceUnavailable,
    UnknownResource,
    UnknownTool,
)
from minecraft_mcp.protocol import LOCATION_URI, STATUS_URI
from minecraft_mcp.tools import TOOLS, TOOLS_BY_NAME

EXPECTED_TOOLS = [
    "chat", "jump", "moveForward", "moveBack", "turnLeft", "turnRight",
    "placeBlock", "digBlock", "getBlockInfo", "selectSlot", "getInventory",
    "equipItem", "getStatus", "getNearbyEntities", "attack", "useItem",
    "stopUsingItem", "lookAt", "followPlayer", "stopFollowing", "goToPosition",
]

# Minimal valid arguments for every tool.
SAMPLE_ARGUMENTS = {
    "chat": {"message": "hello"},
    "placeBlock": {"x": 1, "y": 64, "z": 1},
    "digBlock": {"x": 1, "y": 64, "z": 1},
    "getBlockInfo": {"x": 1, "y": 64, "z": 1},
    "selectSlot": {"slot": 0},
    "equipItem": {"itemName": "sword"},
    "attack": {"entityName": "zombie"},
    "lookAt": {"x": 0, "y": 64, "z": 0},
    "followPlayer": {"playerName": "Steve"},
    "goToPosition": {"x": 10, "y": 64, "z": -5},
}


@pytest.fixture
def dispatcher(session):
    return ToolDispatcher(session)


def text_of(result):
    assert len(result) == 1
    assert result[0].type == "text"
    return result[0].text


class TestCatalog:
    def test_tool_names_and_order(self, dispatcher):
        assert [tool.name for tool in dispatcher.list_tools()] == EXPECTED_TOOLS
        assert list(TOOLS_BY_NAME) == EXPECTED_TOOLS

    def test_every_tool_has_object_schema(self, dispatcher):
        for tool in dispatcher.list_tools():
            assert tool.inputSchema["type"] == "object", tool.name
            assert tool.description, tool.name

    def test_select_slot_bounds(self):
        slot = TOOLS_BY_NAME["selectSlot"].input_schema["properties"]["slot"]
        assert slot["minimum"] == 0
        assert slot["maximum"] == 8

    def test_wire_names_are_camel_case(self):
        schema = TOOLS_BY_NAME["equipItem"].input_schema
        assert "itemName" in schema["properties"]
        assert schema["required"] == ["itemName"]
        assert "range" in TOOLS_BY_NAME["getNearbyEntities"].input_schema["properties"]

    def test_defaults_and_enums(self):
        nearby = TOOLS_BY_NAME["getNearbyEntities"].input_schema["properties"]["range"]
        assert nearby["default"] == 10
        hand = TOOLS_BY_NAME["useItem"].input_schema["properties"]["hand"]
        assert hand["enum"] == ["right", "left"]
        assert hand["default"] == "right"

    def test_parse_maps_aliases_to_keywords(self):
        assert TOOLS_BY_NAME["followPlayer"].parse({"playerName": "Alex"}) == {"player_name": "Alex"}
        assert TOOLS_BY_NAME["getNearbyEntities"].parse({}) == {"radius": 10}
        assert TOOLS_BY_NAME["jump"].parse(None) == {}

    @pytest.mark.parametrize(
        "name, arguments",
        [
            ("selectSlot", {"slot": 9}),
            ("selectSlot", {"slot": -1}),
            ("placeBlock", {"x": 1, "y": 2}),
            ("chat", {"message": ""}),
            ("useItem", {"hand": "both"}),
            ("getNearbyEntities", {"range": 500}),
        ],
    )
    def test_parse_rejects_bad_arguments(self, name, arguments):
        with pytest.raises(InvalidArguments, match=name):
            TOOLS_BY_NAME[name].parse(arguments)

    def test_every_tool_has_a_session_handler(self, session):
        for tool in TOOLS:
            assert callable(getattr(session, tool.handler)), tool.name


class TestResources:
    def test_list_resources(self, dispatcher):
        uris = [str(resource.uri) for resource in dispatcher.list_resources()]
        assert uris == [LOCATION_URI, STATUS_URI]
        assert all(resource.mimeType == "application/json" for resource in RESOURCES)

    async def test_location_before_connect_is_unavailable(self, dispatcher):
        with pytest.raises(ResourceUnavailable, match="Position not available"):
            await dispatcher.read_resource(LOCATION_URI)

    async def test_status_before_connect(self, dispatcher):
        [contents] = await dispatcher.read_resource(STATUS_URI)
        assert json.loads(contents.content) == {"connected": False}
        assert contents.mime_type == "application/json"

    async def test_location_when_connected(self, dispatcher, connected, fake_bot):
        fake_bot.pos = (10.123, 64.0, -5.987)
        [contents] = await dispatcher.read_resource(LOCATION_URI)
        assert json.loads(contents.content) == {"x": 10.12, "y": 64.0, "z": -5.99}

    async def test_status_when_connected(self, dispatcher, connected):
        [contents] = await dispatcher.read_resource(STATUS_URI)
        assert json.loads(contents.content) == {"connected": True}

    async def test_unknown_uri(self, dispatcher):
        with pytest.raises(UnknownResource):
            await dispatcher.read_resource("world://avatar/nowhere")


class TestCallTool:
    @pytest.mark.parametrize("name", EXPECTED_TOOLS)
    async def test_every_tool_requires_connection(self, dispatcher, name):
        with pytest.raises(NotConnected, match="Bot not connected"):
            await dispatcher.call_tool(name, SAMPLE_ARGUMENTS.get(name, {}))

    async def test_unknown_tool(self, dispatcher):
        with pytest.raises(UnknownTool):
            await dispatcher.call_tool("fly", {})

    async def test_missing_required_argument(self, dispatcher, connected):
        with pytest.raises(InvalidArguments):
            await dispatcher.call_tool("placeBlock", {"x": 1, "y": 2})

    async def test_invalid_slot_does_not_break_later_calls(self, dispatcher, connected, fake_bot):
        with pytest.raises(InvalidArguments):
            await dispatcher.call_tool("selectSlot", {"slot": 9})

        result = await dispatcher.call_tool("selectSlot", {"slot": 3})

        assert text_of(result) == "Slot selected"
        assert fake_bot.calls == [("set_quick_bar_slot", 3)]

    async def test_chat_confirmation(self, dispatcher, connected, fake_bot):
        result = await dispatcher.call_tool("chat", {"message": "hello world"})
        assert text_of(result) == "Message sent"
        assert fake_bot.chat_log == ["hello world"]

    async def test_jump_confirmation(self, dispatcher, connected, short_controls):
        assert text_of(await dispatcher.call_tool("jump", {})) == "Jumped!"

    async def test_structured_results_are_json(self, dispatcher, connected, fake_bot):
        fake_bot.items = [{"name": "oak_log", "count": 12, "slot": 36}]
        result = await dispatcher.call_tool("getInventory", {})
        assert json.loads(text_of(result)) == [{"name": "oak_log", "count": 12, "slot": 36}]

    async def test_string_results_are_passed_through(self, dispatcher, connected, fake_bot):
        fake_bot.items = [{"name": "diamond_sword", "count": 1, "slot": 36}]
        result = await dispatcher.call_tool("equipItem", {"itemName": "sword"})
        assert text_of(result) == "Equipped diamond_sword to hand"

    async def test_extra_arguments_are_ignored(self, dispatcher, connected):
        result = await dispatcher.call_tool("stopUsingItem", {"unexpected": True})
        assert text_of(result) == "Stopped using item"

    async def test_go_to_then_stop_then_status(self, dispatcher, connected, fake_bot):
        walk = asyncio.create_task(dispatcher.call_tool("goToPosition", {"x": 10, "y": 64, "z": -5}))
        for _ in range(200):
            if fake_bot.goal is not None:
                break
            await asyncio.sleep(0.005)
        assert fake_bot.goal == ("position", 10, 64, -5)

        assert text_of(await dispatcher.call_tool("stopFollowing", {})) == "Stopped"
        assert text_of(await walk) == "Navigation to (10, 64, -5) cancelled"
        assert fake_bot.goal is None

        status = json.loads(text_of(await dispatcher.call_tool("getStatus", {})))
        assert status["health"] == 20
        assert status["position"] == {"x": 0.5, "y": 64.0, "z": 0.5}


class TestBuildServer:
    def test_registers_request_handlers(self, dispatcher):
        server = build_server(dispatcher)
        for request_type in (
            types.ListResourcesRequest,
            types.ReadResourceRequest,
            types.ListToolsRequest,
            types.CallToolRequest,
        ):
            assert request_type in server.request_handlers

    def test_server_name(self, dispatcher):
        assert build_server(dispatcher).name == "minecraft-mcp"
