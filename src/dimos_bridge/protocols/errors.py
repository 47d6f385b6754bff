"""Shared error types for the bridge."""

from __future__ import annotations


class BridgeError(Exception):
    """Base error for all bridge failures."""


class TransportError(BridgeError):
    """The connection to the RPC endpoint could not be opened or broke."""

    def __init__(self, address: str, detail: str = "") -> None:
        self.address = address
        self.detail = detail
        super().__init__(f"Transport error ({address})" + (f": {detail}" if detail else ""))


class ProtocolError(BridgeError):
    """The remote sent something that is not a valid JSON-RPC line."""


class TimeoutError(BridgeError):
    """No terminal response arrived within the bound."""

    def __init__(self, timeout: float, operation: str = "call") -> None:
        self.timeout = timeout
        self.operation = operation
        super().__init__(f"{operation} timed out after {timeout}s")


class ToolError(BridgeError):
    """The remote explicitly reported an error for a tool call."""

    def __init__(self, name: str, detail: str = "") -> None:
        self.name = name
        self.detail = detail
        super().__init__(f"Tool error: {name}" + (f": {detail}" if detail else ""))


class ToolNotFoundError(BridgeError):
    """Requested tool is not registered with the host."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool not found: {name}")


class InvalidArgumentsError(BridgeError):
    """Arguments for a tool call do not match its parameter schema."""

    def __init__(self, name: str, detail: str = "") -> None:
        self.name = name
        self.detail = detail
        super().__init__(f"Invalid arguments for {name}" + (f": {detail}" if detail else ""))


class DiscoveryError(BridgeError):
    """Tool discovery failed; no tools should be registered."""


class ConfigError(BridgeError):
    """Bridge configuration could not be read or validated."""
