"""Async RPC client: one connection, one session, one request per call.

:func:`invoke` executes a single ``tools/call``; :func:`list_tools` fetches
the catalog with ``tools/list``.  Neither keeps state between calls, so any
number of them may run concurrently on the same event loop.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, cast

from pydantic import ValidationError

from dimos_bridge.protocols import errors
from dimos_bridge.protocols.channel import RpcChannel, TcpChannel
from dimos_bridge.protocols.models import Endpoint, JsonRpcResponse, ToolDescriptor, ToolResult
from dimos_bridge.protocols.session import Session, drive
from dimos_bridge.utils.telemetry import (
    ATTR_ENDPOINT,
    ATTR_TIMEOUT,
    ATTR_TOOL_COUNT,
    ATTR_TOOL_ERROR,
    ATTR_TOOL_NAME,
    get_tracer,
)

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

CALL_TIMEOUT = 30.0
EMPTY_RESULT_TEXT = "OK"


def _create_channel(endpoint: Endpoint) -> RpcChannel:
    return TcpChannel(endpoint)


async def _run(endpoint: Endpoint, session: Session, timeout: float) -> JsonRpcResponse:
    """Connect, drive *session* to completion and always release the channel.

    The timeout covers the connection attempt as well as both round trips.
    A completed session closes the channel; any failure aborts it, so a
    remote that stopped reading cannot hold the caller past the bound.
    """
    channel = _create_channel(endpoint)
    try:
        async with asyncio.timeout(timeout):
            await channel.connect()
            response = await drive(channel, session)
    except asyncio.TimeoutError as exc:
        channel.abort()
        raise errors.TimeoutError(timeout, session.method) from exc
    except BaseException:
        channel.abort()
        raise
    await channel.close()
    return response


async def invoke(
    endpoint: Endpoint,
    tool_name: str,
    arguments: dict[str, Any] | None = None,
    timeout: float = CALL_TIMEOUT,
) -> ToolResult:
    """Call *tool_name* on the remote and return its normalized text.

    Tool-level errors reported by the remote come back as a result whose
    text starts with ``"Error: "``.

    Raises:
        TransportError: The endpoint could not be reached or dropped the connection.
        ProtocolError: The remote sent a malformed line.
        TimeoutError: No result arrived within *timeout* seconds.
    """
    with _tracer.start_as_current_span("dimos.invoke") as span:
        span.set_attribute(ATTR_ENDPOINT, endpoint.address)
        span.set_attribute(ATTR_TOOL_NAME, tool_name)
        span.set_attribute(ATTR_TIMEOUT, timeout)

        session = Session("tools/call", {"name": tool_name, "arguments": arguments or {}})
        try:
            response = await _run(endpoint, session, timeout)
        except errors.TimeoutError:
            logger.warning("Call to %s on %s timed out after %ss", tool_name, endpoint.address, timeout)
            raise

        span.set_attribute(ATTR_TOOL_ERROR, response.error is not None)
        return normalize_result(response)


def normalize_result(response: JsonRpcResponse) -> ToolResult:
    """Fold a ``tools/call`` response into a :class:`ToolResult`."""
    if response.error is not None:
        return ToolResult(text=f"Error: {response.error.message}")

    result = response.result
    content = result.get("content") if isinstance(result, dict) else None
    if not isinstance(content, list):
        return ToolResult(text=json.dumps(result, default=str))

    parts = [
        str(item.get("text", ""))
        for item in cast("list[Any]", content)
        if isinstance(item, dict) and item.get("type") == "text"
    ]
    return ToolResult(text="\n".join(parts) or EMPTY_RESULT_TEXT)


async def list_tools(endpoint: Endpoint, timeout: float) -> list[ToolDescriptor]:
    """Fetch the remote tool catalog.

    Raises:
        TransportError, ProtocolError, TimeoutError: As for :func:`invoke`.
        ToolError: The remote answered ``tools/list`` with an error.
    """
    with _tracer.start_as_current_span("dimos.discover") as span:
        span.set_attribute(ATTR_ENDPOINT, endpoint.address)

        response = await _run(endpoint, Session("tools/list"), timeout)
        if response.error is not None:
            raise errors.ToolError("tools/list", response.error.message)

        tools = parse_catalog(response.result)
        span.set_attribute(ATTR_TOOL_COUNT, len(tools))
        return tools


def parse_catalog(result: Any) -> list[ToolDescriptor]:
    """Map a ``tools/list`` result to descriptors, keeping the first of duplicate names."""
    raw_tools = result.get("tools") if isinstance(result, dict) else None
    if not isinstance(raw_tools, list):
        msg = "tools/list result has no 'tools' list"
        raise errors.ProtocolError(msg)

    tools: dict[str, ToolDescriptor] = {}
    for raw in cast("list[Any]", raw_tools):
        try:
            tool = ToolDescriptor.model_validate(raw)
        except ValidationError as exc:
            raise errors.ProtocolError(f"Invalid tool entry: {exc}") from exc
        if tool.name in tools:
            logger.warning("Duplicate tool %r in catalog; keeping the first", tool.name)
            continue
        tools[tool.name] = tool
    return list(tools.values())
