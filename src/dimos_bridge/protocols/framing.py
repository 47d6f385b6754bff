"""Newline-delimited JSON framing.

The decoder is pull-based and knows nothing about sockets: it is fed raw
bytes and hands back every complete message, keeping any trailing partial
line for the next call.  This makes framing independent of how the bytes
were chunked by the transport.
"""

from __future__ import annotations

import json
from typing import Any

from dimos_bridge.protocols.errors import ProtocolError

MAX_LINE_BYTES = 4 * 1024 * 1024


def encode_message(message: dict[str, Any]) -> bytes:
    """Serialize *message* as one UTF-8 JSON line."""
    return (json.dumps(message, separators=(",", ":")) + "\n").encode("utf-8")


def parse_line(line: bytes) -> dict[str, Any] | None:
    """Parse a single line; blank lines yield ``None``."""
    try:
        text = line.decode("utf-8").strip()
    except UnicodeDecodeError as exc:
        raise ProtocolError(f"Line is not valid UTF-8: {line[:200]!r}") from exc
    if not text:
        return None
    try:
        message = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ProtocolError(f"Malformed JSON line: {text[:200]!r}") from exc
    if not isinstance(message, dict):
        raise ProtocolError(f"Expected a JSON object, got {type(message).__name__}")
    return message


def decode_lines(buffer: bytes, data: bytes) -> tuple[list[dict[str, Any]], bytes]:
    """Split ``buffer + data`` into complete messages and the remaining buffer.

    Raises:
        ProtocolError: If a complete line is not a JSON object, or the
            pending partial line grows past :data:`MAX_LINE_BYTES`.
    """
    pending = buffer + data
    *lines, rest = pending.split(b"\n")
    if len(rest) > MAX_LINE_BYTES:
        raise ProtocolError(f"Line exceeds {MAX_LINE_BYTES} bytes without a terminator")

    messages: list[dict[str, Any]] = []
    for line in lines:
        message = parse_line(line)
        if message is not None:
            messages.append(message)
    return messages, rest


class LineDecoder:
    """Stateful wrapper around :func:`decode_lines`."""

    def __init__(self) -> None:
        self._buffer = b""

    @property
    def pending(self) -> bytes:
        """Bytes of the trailing partial line not yet terminated."""
        return self._buffer

    def feed(self, data: bytes) -> list[dict[str, Any]]:
        """Add *data* and return every message it completes."""
        messages, self._buffer = decode_lines(self._buffer, data)
        return messages
