"""Tests for the async invocation client and catalog parsing."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Any

import pytest

from dimos_bridge.protocols import client
from dimos_bridge.protocols.client import invoke, list_tools, normalize_result, parse_catalog
from dimos_bridge.protocols.errors import ProtocolError, ToolError, TransportError
from dimos_bridge.protocols.errors import TimeoutError as BridgeTimeoutError
from dimos_bridge.protocols.models import Endpoint, JsonRpcResponse


async def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        assert time.monotonic() < deadline, "condition not met in time"
        await asyncio.sleep(0.01)


def _result(content: Any) -> JsonRpcResponse:
    return JsonRpcResponse(id=2, result={"content": content})


class TestNormalizeResult:
    def test_text_parts_joined_by_newline(self) -> None:
        response = _result([
            {"type": "text", "text": "a"},
            {"type": "text", "text": "b"},
            {"type": "image"},
        ])
        assert normalize_result(response).text == "a\nb"

    def test_empty_content_is_ok(self) -> None:
        assert normalize_result(_result([])).text == "OK"

    def test_only_non_text_content_is_ok(self) -> None:
        assert normalize_result(_result([{"type": "image", "data": "xx"}])).text == "OK"

    def test_error_is_folded_into_text(self) -> None:
        response = JsonRpcResponse(id=2, error={"code": -1, "message": "bad arg"})
        assert normalize_result(response).text == "Error: bad arg"

    def test_non_list_content_falls_back_to_json(self) -> None:
        response = JsonRpcResponse(id=2, result={"content": "plain", "extra": 1})
        assert normalize_result(response).text == '{"content": "plain", "extra": 1}'

    def test_missing_result_falls_back_to_json(self) -> None:
        assert normalize_result(JsonRpcResponse(id=2)).text == "null"


class TestParseCatalog:
    def test_maps_entries(self) -> None:
        tools = parse_catalog({
            "tools": [
                {"name": "a", "description": "A", "inputSchema": {"properties": {}}},
                {"name": "b"},
            ]
        })
        assert [t.name for t in tools] == ["a", "b"]
        assert tools[0].input_schema == {"properties": {}}
        assert tools[1].description == ""
        assert tools[1].input_schema == {}

    def test_null_description_becomes_empty(self) -> None:
        tools = parse_catalog({"tools": [{"name": "a", "description": None, "inputSchema": None}]})
        assert tools[0].description == ""
        assert tools[0].input_schema == {}

    def test_duplicate_names_keep_first(self) -> None:
        tools = parse_catalog({"tools": [{"name": "a", "description": "1"}, {"name": "a", "description": "2"}]})
        assert len(tools) == 1
        assert tools[0].description == "1"

    def test_missing_tools_raises(self) -> None:
        with pytest.raises(ProtocolError, match="tools"):
            parse_catalog({"items": []})

    def test_invalid_entry_raises(self) -> None:
        with pytest.raises(ProtocolError, match="Invalid tool entry"):
            parse_catalog({"tools": [{"description": "no name"}]})


class TestInvoke:
    async def test_success(self, mcp_server: Any) -> None:
        server = await mcp_server()
        result = await invoke(server.endpoint, "echo", {"msg": "hello"})

        assert result.text == "hello"
        assert server.methods() == ["initialize", "notifications/initialized", "tools/call"]
        call = server.received[-1]
        assert call["id"] == 2
        assert call["params"] == {"name": "echo", "arguments": {"msg": "hello"}}

    async def test_multiple_text_parts(self, mcp_server: Any) -> None:
        def handler(name: str, arguments: dict[str, Any]) -> dict[str, Any]:
            return {"result": {"content": [
                {"type": "text", "text": "a"},
                {"type": "text", "text": "b"},
                {"type": "image"},
            ]}}

        server = await mcp_server(call_handler=handler)
        result = await invoke(server.endpoint, "anything", {})
        assert result.text == "a\nb"

    async def test_tool_error_is_a_result(self, mcp_server: Any) -> None:
        def handler(name: str, arguments: dict[str, Any]) -> dict[str, Any]:
            return {"error": {"code": -32000, "message": "bad arg"}}

        server = await mcp_server(call_handler=handler)
        result = await invoke(server.endpoint, "echo", {"msg": 1})
        assert result.text == "Error: bad arg"

    async def test_empty_content_is_ok(self, mcp_server: Any) -> None:
        server = await mcp_server(call_handler=lambda name, args: {"result": {"content": []}})
        result = await invoke(server.endpoint, "noop")
        assert result.text == "OK"

    async def test_chunked_and_noisy_server(self, mcp_server: Any) -> None:
        base: list[Any] = []

        def responder(message: dict[str, Any]) -> list[Any]:
            replies: list[Any] = [
                {"jsonrpc": "2.0", "method": "notifications/message", "params": {"level": "info"}},
                {"jsonrpc": "2.0", "id": 42, "result": {}},
            ]
            return replies + base[0].default_responder(message)

        server = await mcp_server(responder=responder, chunk_size=5)
        base.append(server)
        result = await invoke(server.endpoint, "echo", {"msg": "through the noise"})
        assert result.text == "through the noise"

    async def test_timeout_when_remote_never_answers(self, mcp_server: Any) -> None:
        server = await mcp_server(responder=lambda message: [])
        bound = 0.3

        start = time.monotonic()
        with pytest.raises(BridgeTimeoutError) as info:
            await invoke(server.endpoint, "echo", {"msg": "hi"}, timeout=bound)
        elapsed = time.monotonic() - start

        assert info.value.timeout == bound
        assert bound - 0.01 <= elapsed < bound + 1.0
        await _wait_until(lambda: server.disconnects == 1)

    async def test_timeout_tears_down_a_backed_up_connection(self, mcp_server: Any) -> None:
        # The remote answers the handshake, then never reads the oversized payload.
        server = await mcp_server(read_limit=1)
        bound = 0.5

        start = time.monotonic()
        with pytest.raises(BridgeTimeoutError):
            await asyncio.wait_for(
                invoke(server.endpoint, "echo", {"blob": "x" * 32_000_000}, timeout=bound), 5.0
            )
        elapsed = time.monotonic() - start

        assert elapsed < bound + 1.0

    async def test_unresolvable_host_is_transport_error(self) -> None:
        endpoint = Endpoint(host="a" * 64 + ".example", port=9)
        with pytest.raises(TransportError) as info:
            await invoke(endpoint, "echo", {}, timeout=5.0)
        assert info.value.address == endpoint.address

    async def test_nothing_listening_fails_fast(self, closed_endpoint: Endpoint) -> None:
        start = time.monotonic()
        with pytest.raises(TransportError):
            await invoke(closed_endpoint, "echo", {"msg": "hi"}, timeout=5.0)
        assert time.monotonic() - start < 5.0

    async def test_remote_closing_early_is_transport_error(self, mcp_server: Any) -> None:
        server = await mcp_server(close_immediately=True)
        with pytest.raises(TransportError):
            await invoke(server.endpoint, "echo", {})

    async def test_malformed_reply_is_protocol_error(self, mcp_server: Any) -> None:
        server = await mcp_server(responder=lambda message: [b"<html>\n"])
        with pytest.raises(ProtocolError):
            await invoke(server.endpoint, "echo", {})
        await _wait_until(lambda: server.disconnects == 1)

    async def test_concurrent_calls_are_independent(self, mcp_server: Any) -> None:
        server = await mcp_server()
        results = await asyncio.gather(*[
            invoke(server.endpoint, "echo", {"msg": f"m{i}"}) for i in range(5)
        ])
        assert [r.text for r in results] == [f"m{i}" for i in range(5)]
        assert server.connections == 5

    async def test_timeout_does_not_affect_other_calls(self, mcp_server: Any) -> None:
        silent = await mcp_server(responder=lambda message: [])
        live = await mcp_server()

        slow, fast = await asyncio.gather(
            invoke(silent.endpoint, "echo", {"msg": "x"}, timeout=0.2),
            invoke(live.endpoint, "echo", {"msg": "y"}),
            return_exceptions=True,
        )
        assert isinstance(slow, BridgeTimeoutError)
        assert fast.text == "y"  # type: ignore[union-attr]

    async def test_channel_closed_on_success(self, mcp_server: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        server = await mcp_server()
        channels: list[Any] = []
        original = client._create_channel

        def tracking(endpoint: Endpoint) -> Any:
            channel = original(endpoint)
            channels.append(channel)
            return channel

        monkeypatch.setattr(client, "_create_channel", tracking)
        await invoke(server.endpoint, "echo", {"msg": "x"})
        assert len(channels) == 1
        assert not channels[0].is_open


class TestListTools:
    async def test_lists_catalog(self, mcp_server: Any) -> None:
        server = await mcp_server()
        tools = await list_tools(server.endpoint, timeout=5.0)
        assert [t.name for t in tools] == ["echo"]
        assert server.methods()[-1] == "tools/list"
        assert server.received[-1]["params"] == {}

    async def test_error_response_raises_tool_error(self, mcp_server: Any) -> None:
        def responder(message: dict[str, Any]) -> list[Any]:
            if message.get("method") == "tools/list":
                return [{"jsonrpc": "2.0", "id": 2, "error": {"code": -1, "message": "nope"}}]
            return base[0].default_responder(message)

        base: list[Any] = []
        server = await mcp_server(responder=responder)
        base.append(server)
        with pytest.raises(ToolError, match="nope"):
            await list_tools(server.endpoint, timeout=5.0)
