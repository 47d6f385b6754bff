"""Host collaborator — the plugin API and an in-process tool registry.

A real agent framework provides its own :class:`PluginApi`.
:class:`ToolRegistry` is the implementation used by the CLI and tests.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable
from uuid import uuid4

from pydantic import BaseModel, Field, ValidationError

from dimos_bridge.protocols.errors import InvalidArgumentsError, ToolNotFoundError

if TYPE_CHECKING:
    from dimos_bridge.adapter import BridgedTool, ToolEnvelope

logger = logging.getLogger(__name__)


@runtime_checkable
class PluginApi(Protocol):
    """What a host exposes to the bridge during registration."""

    logger: logging.Logger | Any
    plugin_config: Mapping[str, Any] | None

    def register_tool(self, tool: BridgedTool) -> None: ...


class ToolCall(BaseModel):
    """A tool invocation requested by the agent."""

    id: str = Field(default_factory=lambda: uuid4().hex[:12])
    name: str
    arguments: dict[str, Any] = {}


class ToolRegistry:
    """Maintains a name-to-tool map and dispatches tool calls.

    Usage::

        registry = ToolRegistry(plugin_config={"port": 9990})
        register(registry)                      # dimos_bridge.plugin.register
        result = await registry.execute(ToolCall(name="echo", arguments={"msg": "hi"}))
    """

    def __init__(
        self,
        plugin_config: Mapping[str, Any] | None = None,
        *,
        log: logging.Logger | None = None,
    ) -> None:
        self.plugin_config = plugin_config
        self.logger = log or logger
        self._tools: dict[str, BridgedTool] = {}

    def register_tool(self, tool: BridgedTool) -> None:
        if tool.name in self._tools:
            self.logger.warning("Replacing already registered tool %s", tool.name)
        self._tools[tool.name] = tool

    def get(self, name: str) -> BridgedTool:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def all_tools(self) -> list[BridgedTool]:
        return list(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def execute(self, tool_call: ToolCall) -> ToolEnvelope:
        """Validate arguments, then run the call on its tool.

        Validation only checks the call; the tool receives the arguments
        exactly as the caller supplied them.
        """
        tool = self.get(tool_call.name)
        try:
            tool.parameters.validate_arguments(tool_call.arguments)
        except ValidationError as exc:
            raise InvalidArgumentsError(tool_call.name, str(exc)) from exc
        return await tool.execute(tool_call.id, tool_call.arguments)

    async def execute_all(self, tool_calls: list[ToolCall]) -> list[ToolEnvelope]:
        """Execute multiple tool calls concurrently."""
        return list(await asyncio.gather(*[self.execute(tc) for tc in tool_calls]))
