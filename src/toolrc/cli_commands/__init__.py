"""CLI subcommand registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all subcommands on the CLI group."""
    from toolrc.cli_commands.deps import deps_cmd
    from toolrc.cli_commands.eval import eval_cmd
    from toolrc.cli_commands.serve import serve

    cli.add_command(eval_cmd)
    cli.add_command(serve)
    cli.add_command(deps_cmd)
