"""Shared fixtures and fakes for the minecraft-mcp test suite.

Nothing here needs Java or Node: ``FakeBot`` stands in for the mineflayer
bridge and ``FakeProcess`` for an asyncio subprocess.
"""

import asyncio

import pytest

from minecraft_mcp import bot_client
from minecraft_mcp.bot_client import SessionClient
from minecraft_mcp.config import ServerConfig


class FakeBot:
    """Records calls and replays events like ``MineflayerBot`` would."""

    def __init__(self, options=None, *, spawn=True, connect_error=None):
        self.options = options
        self.handlers = {}
        self.controls = {}
        self.control_log = []
        self.chat_log = []
        self.calls = []
        self.pos = (0.5, 64.0, 0.5)
        self.blocks = {}
        self.items = []
        self.entity_list = []
        self.players = {}
        self.pathfinder_available = True
        self.pathfinder_error = None
        self.goal = None
        self.quit_called = False
        self._spawn = spawn
        self._connect_error = connect_error

    # -- Events

    def on(self, event, callback):
        self.handlers.setdefault(event, []).append(callback)
        if event == "spawn" and self._spawn:
            callback()
        if event == "error" and self._connect_error is not None:
            callback(self._connect_error)

    def fire(self, event, *args):
        for callback in self.handlers.get(event, []):
            callback(*args)

    def load_pathfinder(self):
        if self.pathfinder_error is not None:
            raise self.pathfinder_error
        return self.pathfinder_available

    # -- Session

    def quit(self):
        self.quit_called = True
        self.fire("end", "disconnect.quitting")

    def chat(self, message):
        self.chat_log.append(message)

    def set_control_state(self, control, state):
        self.controls[control] = state
        self.control_log.append((control, state))

    # -- Queries

    def position(self):
        return self.pos

    def status(self):
        return {
            "health": 20,
            "food": 18,
            "gameMode": "survival",
            "isRaining": False,
            "timeOfDay": 6000,
        }

    def block_at(self, x, y, z):
        return self.blocks.get((x, y, z))

    def inventory_items(self):
        return list(self.items)

    def entities(self):
        return list(self.entity_list)

    def player_entity_id(self, username):
        return self.players.get(username)

    # -- Actions

    def place_block(self, x, y, z, face):
        self.calls.append(("place_block", x, y, z, face))

    def dig(self, x, y, z):
        self.calls.append(("dig", x, y, z))

    def set_quick_bar_slot(self, slot):
        self.calls.append(("set_quick_bar_slot", slot))

    def equip(self, slot, destination):
        self.calls.append(("equip", slot, destination))

    def attack(self, entity_id):
        self.calls.append(("attack", entity_id))

    def activate_item(self, off_hand):
        self.calls.append(("activate_item", off_hand))

    def deactivate_item(self):
        self.calls.append(("deactivate_item",))

    def look_at(self, x, y, z):
        self.calls.append(("look_at", x, y, z))

    def set_goal_follow(self, entity_id, distance):
        self.goal = ("follow", entity_id, distance)

    def set_goal_position(self, x, y, z):
        self.goal = ("position", x, y, z)

    def clear_goal(self):
        self.goal = None


class FakeProcess:
    """Quacks like ``asyncio.subprocess.Process`` for the supervisor."""

    def __init__(self, *, ignore_terminate=False):
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        self.pid = 4242
        self.returncode = None
        self.terminated = False
        self.killed = False
        self.ignore_terminate = ignore_terminate
        self._exited = asyncio.Event()

    def write_stdout(self, line):
        self.stdout.feed_data((line + "\n").encode())

    def write_stderr(self, line):
        self.stderr.feed_data((line + "\n").encode())

    def exit(self, code=0):
        if self.returncode is not None:
            return
        self.returncode = code
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        self._exited.set()

    def terminate(self):
        self.terminated = True
        if not self.ignore_terminate:
            self.exit(143)

    def kill(self):
        self.killed = True
        self.exit(-9)

    async def wait(self):
        await self._exited.wait()
        return self.returncode


class FakeSpawner:
    """Replacement for ``asyncio.create_subprocess_exec``."""

    def __init__(self, process=None, *, on_spawn=None, error=None):
        self.process = process
        self.on_spawn = on_spawn
        self.error = error
        self.calls = []

    async def __call__(self, *args, **kwargs):
        self.calls.append((args, kwargs))
        if self.error is not None:
            raise self.error
        if self.on_spawn is not None:
            self.on_spawn(self.process)
        return self.process


@pytest.fixture
def server_jar(tmp_path):
    jar = tmp_path / "server.jar"
    jar.write_bytes(b"PK")
    return jar


@pytest.fixture
def config(server_jar):
    return ServerConfig(server_path=str(server_jar), max_players=10)


@pytest.fixture
def fake_bot():
    return FakeBot()


@pytest.fixture
def session(config, fake_bot):
    """A disconnected session whose bot factory returns ``fake_bot``."""

    def factory(options):
        fake_bot.options = options
        return fake_bot

    return SessionClient(config, bot_factory=factory)


@pytest.fixture
async def connected(session):
    await session.connect()
    yield session
    await session.disconnect()


@pytest.fixture
def short_controls(monkeypatch):
    """Shrink timed control holds so tests do not sleep for seconds."""
    for control in bot_client.CONTROL_DURATIONS:
        monkeypatch.setitem(bot_client.CONTROL_DURATIONS, control, 0.01)
