"""toolrc CLI entrypoint."""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from toolrc import __version__


@click.group()
@click.version_option(version=__version__, prog_name="toolrc")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Log level (logs go to stderr).",
)
def main(log_level: str) -> None:
    """toolrc — evaluate tool plugins in a sandboxed worker."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


# Register subcommands
from toolrc.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
