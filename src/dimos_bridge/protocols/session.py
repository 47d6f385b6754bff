"""Handshake sequencer — the two-step ``initialize`` → method session.

A :class:`Session` is an explicit state machine::

    INIT --(response id=1)--> AWAITING_RESULT --(response id=2)--> DONE

:meth:`Session.advance` is the transition function.  It performs no I/O;
it returns the requests that must be written next.  :func:`drive` pumps a
session over an :class:`~dimos_bridge.protocols.channel.RpcChannel`.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from dimos_bridge import __version__
from dimos_bridge.protocols.errors import ProtocolError
from dimos_bridge.protocols.models import JsonRpcRequest, JsonRpcResponse

if TYPE_CHECKING:
    from dimos_bridge.protocols.channel import RpcChannel

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
CLIENT_NAME = "dimos-bridge"

HANDSHAKE_ID = 1
PAYLOAD_ID = 2


class Phase(str, Enum):
    INIT = "init"
    AWAITING_RESULT = "awaiting_result"
    DONE = "done"


class Session:
    """One request pair over one channel.

    Holds exactly one pending request id at a time.  Messages whose id does
    not match it (including id-less notifications and anything arriving
    after ``DONE``) are dropped without changing the phase.
    """

    def __init__(self, method: str, params: dict[str, Any] | None = None) -> None:
        self.method = method
        self.params = params or {}
        self.phase = Phase.INIT
        self.response: JsonRpcResponse | None = None

    @property
    def expected_id(self) -> int | None:
        if self.phase is Phase.INIT:
            return HANDSHAKE_ID
        if self.phase is Phase.AWAITING_RESULT:
            return PAYLOAD_ID
        return None

    @property
    def done(self) -> bool:
        return self.phase is Phase.DONE

    def initial_request(self) -> JsonRpcRequest:
        """The capability-negotiation request, sent as soon as the channel opens."""
        return JsonRpcRequest(
            id=HANDSHAKE_ID,
            method="initialize",
            params={
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": {"name": CLIENT_NAME, "version": __version__},
            },
        )

    def advance(self, message: dict[str, Any]) -> list[JsonRpcRequest]:
        """Feed one incoming message; return the requests to send next."""
        expected = self.expected_id
        if expected is None or message.get("id") != expected:
            logger.debug(
                "Dropping message id=%r in phase %s", message.get("id"), self.phase.value
            )
            return []

        try:
            response = JsonRpcResponse.model_validate(message)
        except ValidationError as exc:
            raise ProtocolError(f"Unexpected response shape: {exc}") from exc

        if self.phase is Phase.INIT:
            if response.error is not None:
                raise ProtocolError(f"initialize rejected: {response.error.message}")
            self.phase = Phase.AWAITING_RESULT
            return [
                JsonRpcRequest(method="notifications/initialized"),
                JsonRpcRequest(id=PAYLOAD_ID, method=self.method, params=self.params),
            ]

        self.response = response
        self.phase = Phase.DONE
        return []


async def drive(channel: RpcChannel, session: Session) -> JsonRpcResponse:
    """Run *session* to ``DONE`` over an already-connected *channel*."""
    await channel.send(session.initial_request().to_wire())
    while session.response is None:
        message = await channel.receive()
        for request in session.advance(message):
            await channel.send(request.to_wire())
    return session.response
