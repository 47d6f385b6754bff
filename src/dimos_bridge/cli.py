"""dimos-bridge CLI entrypoint."""

from __future__ import annotations

import logging

import click

from dimos_bridge import __version__
from dimos_bridge.utils.telemetry import configure_telemetry


@click.group()
@click.version_option(version=__version__, prog_name="dimos-bridge")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option("--trace", is_flag=True, help="Print OpenTelemetry spans to stdout.")
@click.option(
    "--otlp-endpoint",
    default=None,
    envvar="DIMOS_OTLP_ENDPOINT",
    help="Export OpenTelemetry spans via OTLP/gRPC to this endpoint.",
)
def main(verbose: bool, trace: bool, otlp_endpoint: str | None) -> None:
    """dimos-bridge — expose MCP server tools to an agent host."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if trace or otlp_endpoint:
        try:
            configure_telemetry(export_to_console=trace, otlp_endpoint=otlp_endpoint)
        except ImportError as exc:
            raise click.ClickException(str(exc)) from exc


# Register subcommands
from dimos_bridge.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
