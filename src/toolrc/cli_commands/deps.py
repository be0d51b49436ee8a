"""``toolrc deps`` — show what plugins receive in ``define_tool``."""

from __future__ import annotations

import click

from toolrc.cli_commands._output import print_bundle


@click.command("deps")
def deps_cmd() -> None:
    """List the dependency bundle injected into plugins."""
    from toolrc.sandbox.deps import default_bundle

    print_bundle(default_bundle())
