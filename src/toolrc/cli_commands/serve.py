"""``toolrc serve`` — run the event bridge over stdin/stdout.

The external process writes ``{"event": "eval-tool-request", "data": {...}}``
lines to our stdin and reads ``eval-tool-response`` lines from our stdout.
Logs go to stderr.
"""

from __future__ import annotations

import asyncio

import click

from toolrc.cli_commands._output import err_console


@click.command()
@click.option("--timeout", type=float, default=30.0, show_default=True, help="Per-evaluation timeout in seconds.")
@click.option(
    "--startup-timeout",
    type=float,
    default=10.0,
    show_default=True,
    help="Max seconds to wait for the sandbox worker to become ready.",
)
@click.option("--otlp-endpoint", default=None, help="Export traces via OTLP/gRPC (needs toolrc[otel]).")
def serve(timeout: float, startup_timeout: float, otlp_endpoint: str | None) -> None:
    """Answer eval-tool-request events until stdin closes."""
    from toolrc.bridge.bridge import ToolEvalBridge
    from toolrc.bridge.channel import StdioEventChannel
    from toolrc.sandbox.manager import SandboxManager
    from toolrc.sandbox.models import SandboxConfig

    if otlp_endpoint:
        from toolrc.utils.telemetry import configure_telemetry

        configure_telemetry(export_to_console=False, otlp_endpoint=otlp_endpoint)

    config = SandboxConfig(eval_timeout=timeout, startup_timeout=startup_timeout)

    async def _serve() -> None:
        channel = await StdioEventChannel.from_stdio()
        sandbox = SandboxManager(config)
        bridge = ToolEvalBridge(channel, sandbox)
        bridge.start()
        try:
            await channel.run()
            await bridge.stop()
        finally:
            await sandbox.destroy()

    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        err_console.print("[yellow]Interrupted.[/yellow]")
