"""Shared fixtures: a scriptable MCP server speaking newline-delimited JSON over TCP."""

from __future__ import annotations

import asyncio
import json
import socket
import threading
from collections.abc import AsyncIterator, Callable, Iterator
from typing import Any

import pytest

from dimos_bridge.protocols.models import Endpoint

Reply = dict[str, Any] | bytes
Responder = Callable[[dict[str, Any]], list[Reply]]

ECHO_TOOL: dict[str, Any] = {
    "name": "echo",
    "description": "Echo a message back.",
    "inputSchema": {
        "type": "object",
        "properties": {"msg": {"type": "string", "description": "Text to echo"}},
        "required": ["msg"],
    },
}


def echo_handler(name: str, arguments: dict[str, Any]) -> dict[str, Any]:
    """Default ``tools/call`` behavior: echo ``msg`` back as text content."""
    if name != "echo":
        return {"error": {"code": -32602, "message": f"Unknown tool: {name}"}}
    return {"result": {"content": [{"type": "text", "text": str(arguments.get("msg", ""))}]}}


class FakeMCPServer:
    """Minimal MCP server for tests.

    ``responder`` decides what to write back for each received message;
    the default one answers ``initialize``, ``tools/list`` and
    ``tools/call``.  ``chunk_size`` splits every write into small pieces.
    After ``read_limit`` messages the server stops reading altogether.
    """

    def __init__(
        self,
        tools: list[dict[str, Any]] | None = None,
        *,
        call_handler: Callable[[str, dict[str, Any]], dict[str, Any]] = echo_handler,
        responder: Responder | None = None,
        chunk_size: int = 0,
        close_immediately: bool = False,
        read_limit: int | None = None,
    ) -> None:
        self.tools = [ECHO_TOOL] if tools is None else tools
        self.call_handler = call_handler
        self.responder = responder or self.default_responder
        self.chunk_size = chunk_size
        self.close_immediately = close_immediately
        self.read_limit = read_limit
        self.received: list[dict[str, Any]] = []
        self.connections = 0
        self.disconnects = 0
        self._server: asyncio.Server | None = None
        self._writers: set[asyncio.StreamWriter] = set()
        self._release = asyncio.Event()

    @property
    def endpoint(self) -> Endpoint:
        assert self._server is not None
        port = self._server.sockets[0].getsockname()[1]
        return Endpoint(host="127.0.0.1", port=port)

    def methods(self) -> list[str]:
        return [m.get("method", "") for m in self.received]

    async def start(self) -> FakeMCPServer:
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        return self

    async def stop(self) -> None:
        if self._server is None:
            return
        self._release.set()
        self._server.close()
        for writer in list(self._writers):
            writer.close()
        await self._server.wait_closed()
        self._server = None

    def default_responder(self, message: dict[str, Any]) -> list[Reply]:
        msg_id = message.get("id")
        method = message.get("method")
        if msg_id is None:
            return []
        if method == "initialize":
            return [{
                "jsonrpc": "2.0",
                "id": msg_id,
                "result": {
                    "protocolVersion": "2024-11-05",
                    "capabilities": {"tools": {"listChanged": False}},
                    "serverInfo": {"name": "fake-mcp", "version": "0.1"},
                },
            }]
        if method == "tools/list":
            return [{"jsonrpc": "2.0", "id": msg_id, "result": {"tools": self.tools}}]
        if method == "tools/call":
            params = message.get("params", {})
            outcome = self.call_handler(params.get("name", ""), params.get("arguments", {}))
            return [{"jsonrpc": "2.0", "id": msg_id, **outcome}]
        return [{
            "jsonrpc": "2.0",
            "id": msg_id,
            "error": {"code": -32601, "message": f"Method not found: {method}"},
        }]

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        self._writers.add(writer)
        try:
            if self.close_immediately:
                return
            while True:
                if self.read_limit is not None and len(self.received) >= self.read_limit:
                    # Stop reading; the peer's writes back up until it gives up.
                    await self._release.wait()
                    break
                line = await reader.readline()
                if not line:
                    break
                message = json.loads(line)
                self.received.append(message)
                for reply in self.responder(message):
                    await self._write(writer, reply)
        except ConnectionError:
            pass
        finally:
            self._writers.discard(writer)
            writer.close()
            self.disconnects += 1

    async def _write(self, writer: asyncio.StreamWriter, reply: Reply) -> None:
        data = reply if isinstance(reply, bytes) else (json.dumps(reply) + "\n").encode()
        if not self.chunk_size:
            writer.write(data)
            await writer.drain()
            return
        for start in range(0, len(data), self.chunk_size):
            writer.write(data[start : start + self.chunk_size])
            await writer.drain()
            await asyncio.sleep(0.001)


@pytest.fixture
async def mcp_server() -> AsyncIterator[Callable[..., Any]]:
    """Factory fixture: ``server = await mcp_server(tools=[...])`` on the test's loop."""
    servers: list[FakeMCPServer] = []

    async def _start(*args: Any, **kwargs: Any) -> FakeMCPServer:
        server = await FakeMCPServer(*args, **kwargs).start()
        servers.append(server)
        return server

    yield _start

    for server in servers:
        await server.stop()


@pytest.fixture
def threaded_mcp_server() -> Iterator[Callable[..., FakeMCPServer]]:
    """Factory fixture running the fake server on its own loop in a background thread.

    Needed by synchronous callers such as ``discover()`` and the CLI.
    """
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()
    servers: list[FakeMCPServer] = []

    def _start(*args: Any, **kwargs: Any) -> FakeMCPServer:
        server = FakeMCPServer(*args, **kwargs)
        asyncio.run_coroutine_threadsafe(server.start(), loop).result(timeout=5)
        servers.append(server)
        return server

    yield _start

    for server in servers:
        asyncio.run_coroutine_threadsafe(server.stop(), loop).result(timeout=5)
    loop.call_soon_threadsafe(loop.stop)
    thread.join(timeout=5)
    loop.close()


@pytest.fixture
def closed_endpoint() -> Endpoint:
    """An endpoint on a loopback port with nothing listening."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return Endpoint(host="127.0.0.1", port=port)
