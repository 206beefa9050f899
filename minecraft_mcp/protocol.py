"""Constants shared by the supervisor, the bot session and the MCP surface.

Durations are in seconds. Marker strings are matched as substrings of the
Minecraft server's console output.
"""

# --- Server process ---

# The vanilla server prints 'Done (12.345s)! For help, type "help"' once the
# world is loaded and the listener is up.
READINESS_MARKER = "Done"
ERROR_MARKER = "ERROR"

STARTUP_TIMEOUT = 60.0
STOP_TIMEOUT = 30.0

# Delay between process readiness and the bot connecting.
GRACE_PERIOD = 5.0

# How long shutdown waits for a cancelled MCP transport before moving on.
# The stdio reader blocks in a thread until the client closes stdin.
TRANSPORT_CLOSE_TIMEOUT = 2.0

JAVA_EXECUTABLE = "java"
EULA_FILE = "eula.txt"
PROPERTIES_FILE = "server.properties"

# --- Bot controls ---

CONTROL_DURATIONS: dict[str, float] = {
    "forward": 1.0,
    "back": 1.0,
    "left": 0.5,
    "right": 0.5,
    "jump": 0.5,
}

HOTBAR_FIRST_SLOT = 0
HOTBAR_LAST_SLOT = 8

ATTACK_RANGE = 4.0
FOLLOW_DISTANCE = 2
DEFAULT_ENTITY_RANGE = 10.0

EQUIP_DESTINATIONS = ("hand", "head", "torso", "legs", "feet", "off-hand")

# --- MCP surface ---

SERVER_NAME = "minecraft-mcp"
LOCATION_URI = "world://avatar/location"
STATUS_URI = "world://avatar/status"
