"""Wire models — JSON-RPC 2.0 messages, endpoints and tool definitions.

Implements the message format used by the Model Context Protocol for
the ``initialize`` handshake, tool discovery (``tools/list``) and
execution (``tools/call``).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 9990

# ---------------------------------------------------------------------------
# JSON-RPC 2.0 envelope
# ---------------------------------------------------------------------------


class JsonRpcRequest(BaseModel):
    """A JSON-RPC 2.0 request (or notification when ``id`` is ``None``)."""

    jsonrpc: str = "2.0"
    id: int | None = None
    method: str
    params: dict[str, Any] = {}

    def to_wire(self) -> dict[str, Any]:
        """Dump for the wire, omitting ``id`` on notifications."""
        data = self.model_dump()
        if self.id is None:
            del data["id"]
        return data


class JsonRpcError(BaseModel):
    """A JSON-RPC 2.0 error object."""

    code: int | None = None
    message: str = ""
    data: Any = None


class JsonRpcResponse(BaseModel):
    """A JSON-RPC 2.0 response message."""

    jsonrpc: str = "2.0"
    id: int | str | None = None
    result: Any = None
    error: JsonRpcError | None = None


# ---------------------------------------------------------------------------
# Bridge payloads
# ---------------------------------------------------------------------------


class Endpoint(BaseModel):
    """Address of the remote RPC server."""

    model_config = ConfigDict(frozen=True)

    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


class ToolDescriptor(BaseModel):
    """A tool definition as returned by ``tools/list``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=dict, alias="inputSchema")

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("input_schema", mode="before")
    @classmethod
    def _none_schema(cls, value: Any) -> Any:
        return {} if value is None else value


class ToolResult(BaseModel):
    """Normalized textual outcome of one tool call."""

    text: str
