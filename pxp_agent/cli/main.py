"""PXP Agent CLI — Entry point.

Usage:
    pxp-agent agent start [--config PATH]
    pxp-agent modules list [--modules-dir PATH]
    pxp-agent modules invoke <module> <action> [--params JSON]
"""

from __future__ import annotations

import typer

from pxp_agent.cli.commands import agent, modules

app = typer.Typer(
    name="pxp-agent",
    help="PXP Agent — run module actions on behalf of broker requests.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

app.add_typer(agent.app, name="agent")
app.add_typer(modules.app, name="modules")


@app.callback()
def main_callback() -> None:
    pass


if __name__ == "__main__":
    app()
