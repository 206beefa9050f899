"""minecraft-mcp: MCP server that puts a Minecraft bot behind tools.

This package supervises a local Minecraft Java server, connects a single
mineflayer bot to it, and exposes that bot to AI assistants as Model Context
Protocol resources and tools.

Architecture:
    MCP client <--stdio JSON-RPC--> minecraft-mcp (this package)
                                        |
                                        | javascript bridge (JSPyBridge)
                                        v
                                    mineflayer bot --TCP--> java -jar server.jar
"""

__version__ = "1.0.0"
