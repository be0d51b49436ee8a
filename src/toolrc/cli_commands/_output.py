"""Shared CLI output formatters."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

if TYPE_CHECKING:
    from toolrc.sandbox.deps import DependencyBundle
    from toolrc.sandbox.models import EvaluationResult

console = Console()
err_console = Console(stderr=True)


def print_result(result: EvaluationResult, *, as_json: bool = False, show_stack: bool = False) -> None:
    """Pretty-print an evaluation result."""
    if as_json:
        console.print_json(result.model_dump_json(exclude_none=True))
        return

    if result.success:
        console.print("[green]Tool created.[/green]")
        console.print(Syntax(json.dumps(result.tool, indent=2), "json", theme="ansi_dark"))
        return

    console.print(f"[red]Evaluation failed:[/red] {result.error}")
    if show_stack and result.stack:
        console.print(Panel(result.stack.rstrip(), title="Traceback", border_style="red"))


def print_bundle(bundle: DependencyBundle) -> None:
    """List the helpers injected into plugins."""
    table = Table(title=f"Dependency bundle v{bundle.version}")
    table.add_column("Name", style="cyan")
    table.add_column("Description", no_wrap=True, overflow="ellipsis", max_width=80)

    for name in bundle.members():
        member = getattr(bundle, name)
        doc = (getattr(member, "__doc__", None) or "").strip().splitlines()
        table.add_row(name, doc[0] if doc else "")

    console.print(table)
