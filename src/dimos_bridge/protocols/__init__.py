"""Protocol layer — line-framed JSON-RPC discovery and invocation."""

from dimos_bridge.protocols.client import invoke, list_tools
from dimos_bridge.protocols.discovery import discover
from dimos_bridge.protocols.errors import (
    BridgeError,
    DiscoveryError,
    ProtocolError,
    TimeoutError,
    ToolError,
    TransportError,
)
from dimos_bridge.protocols.models import Endpoint, ToolDescriptor, ToolResult

__all__ = [
    "BridgeError",
    "DiscoveryError",
    "Endpoint",
    "ProtocolError",
    "TimeoutError",
    "ToolDescriptor",
    "ToolError",
    "ToolResult",
    "TransportError",
    "discover",
    "invoke",
    "list_tools",
]
