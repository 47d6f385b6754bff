"""Plugin entry point. Discovers remote tools and registers them with the host."""

from __future__ import annotations

from typing import TYPE_CHECKING

from dimos_bridge.adapter import BridgedTool
from dimos_bridge.config import BridgeConfig
from dimos_bridge.protocols.discovery import discover
from dimos_bridge.protocols.errors import ConfigError, DiscoveryError
from dimos_bridge.schema import translate_schema

if TYPE_CHECKING:
    from dimos_bridge.host import PluginApi


def register(api: PluginApi) -> list[str]:
    """Register every tool the configured endpoint exposes.

    Blocks until discovery finishes.  On failure nothing is registered and
    the error is reported through ``api.logger``; the host keeps running.
    Messages to the host logger are preformatted, it need not be a
    :class:`logging.Logger`.  Returns the names of the registered tools.
    """
    try:
        config = BridgeConfig.from_mapping(api.plugin_config)
    except ConfigError as exc:
        api.logger.error(f"dimos: {exc}")
        return []

    endpoint = config.endpoint
    try:
        descriptors = discover(endpoint, config.discovery_timeout)
    except DiscoveryError as exc:
        api.logger.error(f"dimos: tool discovery failed, no tools registered: {exc}")
        return []

    registered: list[str] = []
    for descriptor in descriptors:
        tool = BridgedTool(
            descriptor,
            endpoint,
            parameters=translate_schema(descriptor.input_schema),
            call_timeout=config.call_timeout,
            prefix=config.tool_prefix,
        )
        api.register_tool(tool)
        registered.append(tool.name)

    api.logger.info(f"dimos: registered {len(registered)} tool(s) from {endpoint.address}")
    return registered
