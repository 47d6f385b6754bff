"""Tool adapter: binds a discovered tool to an executable host capability."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel

from dimos_bridge.protocols import client
from dimos_bridge.protocols.models import Endpoint, ToolDescriptor
from dimos_bridge.schema import ValidationSchema, translate_schema


class TextContent(BaseModel):
    """Plain text content part."""

    type: Literal["text"] = "text"
    text: str


class ToolEnvelope(BaseModel):
    """What the host receives back from a tool execution."""

    tool_call_id: str = ""
    content: list[TextContent] = []
    details: dict[str, Any] = {}

    @property
    def text(self) -> str:
        return "".join(part.text for part in self.content)


class BridgedTool:
    """A remote tool the host can execute like a local one.

    ``name`` is what the host sees; ``remote_name`` is what is sent in
    ``tools/call``.  They differ only when a tool prefix is configured.
    """

    def __init__(
        self,
        descriptor: ToolDescriptor,
        endpoint: Endpoint,
        *,
        parameters: ValidationSchema | None = None,
        call_timeout: float = client.CALL_TIMEOUT,
        prefix: str = "",
    ) -> None:
        self.descriptor = descriptor
        self.parameters = parameters or translate_schema(descriptor.input_schema)
        self.name = f"{prefix}{descriptor.name}"
        self._endpoint = endpoint
        self._call_timeout = call_timeout

    @property
    def remote_name(self) -> str:
        return self.descriptor.name

    @property
    def description(self) -> str:
        return self.descriptor.description

    async def execute(
        self, tool_call_id: str = "", params: dict[str, Any] | None = None
    ) -> ToolEnvelope:
        """Forward *params* verbatim to the remote tool."""
        arguments = params or {}
        result = await client.invoke(
            self._endpoint, self.remote_name, arguments, self._call_timeout
        )
        return ToolEnvelope(
            tool_call_id=tool_call_id,
            content=[TextContent(text=result.text)],
            details={"tool": self.remote_name, "arguments": arguments},
        )

    def __repr__(self) -> str:
        return f"BridgedTool(name={self.name!r}, endpoint={self._endpoint.address!r})"
