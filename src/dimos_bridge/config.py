"""Bridge configuration — endpoint address and timeouts.

The host hands the plugin a plain mapping; the CLI can also read a YAML
file.  Missing values fall back to the ``DIMOS_MCP_HOST`` /
``DIMOS_MCP_PORT`` environment variables, then to fixed defaults.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dimos_bridge.protocols.client import CALL_TIMEOUT
from dimos_bridge.protocols.discovery import DISCOVERY_TIMEOUT
from dimos_bridge.protocols.errors import ConfigError
from dimos_bridge.protocols.models import DEFAULT_HOST, DEFAULT_PORT, Endpoint

ENV_HOST = "DIMOS_MCP_HOST"
ENV_PORT = "DIMOS_MCP_PORT"

_KEY_ALIASES = {
    "callTimeout": "call_timeout",
    "discoveryTimeout": "discovery_timeout",
    "toolPrefix": "tool_prefix",
    "mcpHost": "host",
    "mcpPort": "port",
}


class BridgeConfig(BaseModel):
    """Validated bridge settings, read once at registration time."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    call_timeout: float = Field(default=CALL_TIMEOUT, gt=0)
    discovery_timeout: float = Field(default=DISCOVERY_TIMEOUT, gt=0)
    tool_prefix: str = ""

    @property
    def endpoint(self) -> Endpoint:
        return Endpoint(host=self.host, port=self.port)

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[str, Any] | None,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> BridgeConfig:
        """Build a config from host-supplied settings.

        Keys may be snake_case or camelCase; ``None`` values count as unset.

        Raises:
            ConfigError: If a value fails validation.
        """
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        for key, value in (mapping or {}).items():
            if value is not None:
                data[_KEY_ALIASES.get(key, key)] = value

        if "host" not in data and env.get(ENV_HOST):
            data["host"] = env[ENV_HOST]
        if "port" not in data and env.get(ENV_PORT):
            data["port"] = env[ENV_PORT]

        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid bridge config: {exc}") from exc


def load_config(path: Path) -> BridgeConfig:
    """Read YAML, interpolate env vars, and validate.

    Environment variables in the form ``${VAR}`` or ``$VAR`` are expanded
    using :func:`os.path.expandvars` before YAML parsing.

    Raises:
        ConfigError: On read errors, YAML parse errors or validation failures.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc

    try:
        data: Any = yaml.safe_load(os.path.expandvars(raw))
    except yaml.YAMLError as exc:
        raise ConfigError(f"YAML parse error: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = "Bridge config YAML must be a mapping"
        raise ConfigError(msg)

    return BridgeConfig.from_mapping(data)
