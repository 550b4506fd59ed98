"""MCP server and Foundry bridge implementations."""

from .base import MCPServer, ToolDef, ToolParameter, ToolResult
from .creature_index import CreatureIndexServer
from .foundry_bridge import FoundryBridge
from .foundry_bridge_base import FoundryBridgeBase
from .foundry_host import BridgeFileStorage, FoundryContentHost

__all__ = [
    # Base classes
    "MCPServer",
    "ToolDef",
    "ToolParameter",
    "ToolResult",
    # Server implementations
    "CreatureIndexServer",
    # Foundry
    "FoundryBridge",
    "FoundryBridgeBase",
    "FoundryContentHost",
    "BridgeFileStorage",
]
