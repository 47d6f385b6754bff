"""Line-framed RPC channel over a TCP stream.

Each channel satisfies the :class:`RpcChannel` protocol, providing
``connect``, ``send``, ``receive``, and ``close`` methods.  One channel
carries exactly one session and is never reused.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Protocol, runtime_checkable

from dimos_bridge.protocols.errors import TransportError
from dimos_bridge.protocols.framing import LineDecoder, encode_message
from dimos_bridge.protocols.models import Endpoint

logger = logging.getLogger(__name__)

_READ_CHUNK = 64 * 1024

# How long a graceful close may wait for unsent data to flush.
_CLOSE_GRACE = 1.0


@runtime_checkable
class RpcChannel(Protocol):
    """Abstract duplex channel for newline-delimited JSON-RPC."""

    async def connect(self) -> None: ...
    async def send(self, data: dict[str, Any]) -> None: ...
    async def receive(self) -> dict[str, Any]: ...
    async def close(self) -> None: ...
    def abort(self) -> None: ...


class TcpChannel:
    """Talks to an RPC server over a raw TCP connection.

    Incoming bytes are run through a :class:`LineDecoder`; a single read may
    yield several messages, which are queued and handed out one per
    ``receive()`` call.
    """

    def __init__(self, endpoint: Endpoint) -> None:
        self._endpoint = endpoint
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._decoder = LineDecoder()
        self._inbox: deque[dict[str, Any]] = deque()

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    @property
    def is_open(self) -> bool:
        return self._writer is not None

    async def connect(self) -> None:
        """Open the TCP connection."""
        try:
            self._reader, self._writer = await asyncio.open_connection(
                self._endpoint.host, self._endpoint.port
            )
        except (OSError, ValueError) as exc:
            # Address resolution failures (e.g. IDNA) surface as ValueError.
            raise TransportError(self._endpoint.address, str(exc)) from exc
        logger.debug("Connected to %s", self._endpoint.address)

    async def send(self, data: dict[str, Any]) -> None:
        """Write one JSON line."""
        if self._writer is None:
            msg = "Channel not connected"
            raise RuntimeError(msg)
        try:
            self._writer.write(encode_message(data))
            await self._writer.drain()
        except OSError as exc:
            raise TransportError(self._endpoint.address, str(exc)) from exc

    async def receive(self) -> dict[str, Any]:
        """Return the next complete message, reading more bytes as needed."""
        if self._reader is None:
            msg = "Channel not connected"
            raise RuntimeError(msg)
        while not self._inbox:
            try:
                chunk = await self._reader.read(_READ_CHUNK)
            except OSError as exc:
                raise TransportError(self._endpoint.address, str(exc)) from exc
            if not chunk:
                raise TransportError(self._endpoint.address, "connection closed by remote")
            self._inbox.extend(self._decoder.feed(chunk))
        return self._inbox.popleft()

    async def close(self) -> None:
        """Close the connection; safe to call more than once.

        Unsent data gets :data:`_CLOSE_GRACE` seconds to flush, after which
        the connection is aborted.
        """
        writer, self._writer, self._reader = self._writer, None, None
        if writer is None:
            return
        writer.close()
        try:
            async with asyncio.timeout(_CLOSE_GRACE):
                await writer.wait_closed()
        except asyncio.TimeoutError:
            logger.debug("Close of %s did not flush in time; aborting", self._endpoint.address)
            writer.transport.abort()
        except OSError:
            logger.debug("Error while closing channel to %s", self._endpoint.address, exc_info=True)

    def abort(self) -> None:
        """Drop the connection at once, discarding unsent data."""
        writer, self._writer, self._reader = self._writer, None, None
        if writer is not None:
            writer.transport.abort()
