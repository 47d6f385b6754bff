"""``dimos-bridge tools`` — list and call tools on an MCP server."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import click

from dimos_bridge.cli_commands._output import console, print_tools_json, print_tools_table
from dimos_bridge.config import BridgeConfig, load_config
from dimos_bridge.protocols.errors import BridgeError, ConfigError


def _endpoint_options(func: Any) -> Any:
    func = click.option(
        "--config",
        "config_path",
        type=click.Path(exists=True, dir_okay=False),
        default=None,
        help="YAML file with bridge settings.",
    )(func)
    func = click.option("--port", type=int, default=None, help="MCP server port.")(func)
    func = click.option("--host", default=None, help="MCP server host.")(func)
    return func


def _resolve_config(host: str | None, port: int | None, config_path: str | None) -> BridgeConfig:
    """Command-line flags win over the config file, which wins over the environment."""
    base = load_config(Path(config_path)) if config_path else BridgeConfig.from_mapping({})
    overrides = {k: v for k, v in {"host": host, "port": port}.items() if v is not None}
    return BridgeConfig.from_mapping({**base.model_dump(), **overrides})


@click.group()
def tools() -> None:
    """List and call tools."""


@tools.command("list")
@_endpoint_options
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def list_cmd(host: str | None, port: int | None, config_path: str | None, as_json: bool) -> None:
    """Discover the tools exposed by the MCP server."""
    from dimos_bridge.protocols.discovery import discover

    try:
        config = _resolve_config(host, port, config_path)
        tool_defs = discover(config.endpoint, config.discovery_timeout)
    except BridgeError as exc:
        console.print(f"[red]Discovery error:[/red] {exc}")
        sys.exit(1)

    if not tool_defs:
        console.print("[yellow]No tools discovered.[/yellow]")
        return

    if as_json:
        print_tools_json(tool_defs)
    else:
        print_tools_table(tool_defs)


@tools.command("call")
@click.argument("name")
@_endpoint_options
@click.option("--args", "raw_args", default="{}", help="Tool arguments as a JSON object.")
@click.option("--timeout", type=float, default=None, help="Call timeout in seconds.")
def call_cmd(
    name: str,
    host: str | None,
    port: int | None,
    config_path: str | None,
    raw_args: str,
    timeout: float | None,
) -> None:
    """Call tool NAME once and print its text result."""
    from dimos_bridge.protocols.client import invoke

    try:
        arguments = json.loads(raw_args)
    except json.JSONDecodeError as exc:
        console.print(f"[red]Invalid --args:[/red] {exc}")
        sys.exit(1)
    if not isinstance(arguments, dict):
        console.print("[red]Invalid --args:[/red] expected a JSON object")
        sys.exit(1)

    try:
        config = _resolve_config(host, port, config_path)
        result = asyncio.run(
            invoke(config.endpoint, name, arguments, timeout or config.call_timeout)
        )
    except ConfigError as exc:
        console.print(f"[red]Config error:[/red] {exc}")
        sys.exit(1)
    except BridgeError as exc:
        console.print(f"[red]Call error:[/red] {exc}")
        sys.exit(1)

    console.print(result.text, markup=False, highlight=False)
