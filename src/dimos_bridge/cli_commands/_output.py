"""Shared CLI output formatters."""

from __future__ import annotations

import json

from rich.console import Console
from rich.table import Table

from dimos_bridge.protocols.models import ToolDescriptor  # noqa: TC001
from dimos_bridge.schema import translate_schema

console = Console()


def print_tools_table(tools: list[ToolDescriptor]) -> None:
    """Pretty-print discovered tools with their translated parameters."""
    table = Table(title="Discovered Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Parameters")

    for tool in tools:
        table.add_row(
            tool.name,
            _truncate(tool.description),
            format_parameters(tool),
        )

    console.print(table)


def print_tools_json(tools: list[ToolDescriptor]) -> None:
    """Print tools as JSON with normalized parameter schemas."""
    data = [
        {
            "name": tool.name,
            "description": tool.description,
            "parameters": translate_schema(tool.input_schema).to_json_schema(),
        }
        for tool in tools
    ]
    console.print_json(json.dumps(data))


def format_parameters(tool: ToolDescriptor) -> str:
    """Render parameters as ``name: kind``, required ones marked with ``*``."""
    schema = translate_schema(tool.input_schema)
    if not schema.fields:
        return "-"
    return ", ".join(
        f"{name}{'*' if spec.required else ''}: {spec.kind.value}"
        for name, spec in schema.fields.items()
    )


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
