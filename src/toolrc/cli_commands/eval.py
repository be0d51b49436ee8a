"""``toolrc eval`` — evaluate one plugin file in a fresh sandbox."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from toolrc.cli_commands._output import console, print_result

if TYPE_CHECKING:
    from toolrc.sandbox.models import EvaluationResult


@click.command("eval")
@click.argument("plugin_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--params", "-p", default=None, help="JSON-encoded tool parameters.")
@click.option(
    "--params-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Read the JSON parameters from a file.",
)
@click.option("--timeout", type=float, default=30.0, show_default=True, help="Evaluation timeout in seconds.")
@click.option("--json", "as_json", is_flag=True, help="Output the raw result as JSON.")
@click.option("--stack", "show_stack", is_flag=True, help="Show the plugin traceback on failure.")
def eval_cmd(
    plugin_file: str,
    params: str | None,
    params_file: str | None,
    timeout: float,
    as_json: bool,
    show_stack: bool,
) -> None:
    """Evaluate the ToolPlugin defined in PLUGIN_FILE.

    Exits with status 1 when the plugin fails at any phase.
    """
    from toolrc.sandbox.manager import SandboxManager
    from toolrc.sandbox.models import SandboxConfig

    if params is not None and params_file is not None:
        console.print("[red]Use either --params or --params-file, not both.[/red]")
        sys.exit(2)

    code = Path(plugin_file).read_text(encoding="utf-8")
    if params_file is not None:
        parameters = Path(params_file).read_text(encoding="utf-8")
    else:
        parameters = params if params is not None else "{}"

    async def _evaluate() -> EvaluationResult:
        async with SandboxManager(SandboxConfig(eval_timeout=timeout)) as sandbox:
            return await sandbox.evaluate(code, parameters)

    try:
        result = asyncio.run(_evaluate())
    except Exception as exc:
        console.print(f"[red]Sandbox error:[/red] {exc}")
        sys.exit(1)

    print_result(result, as_json=as_json, show_stack=show_stack)
    if not result.success:
        sys.exit(1)
