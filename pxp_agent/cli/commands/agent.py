"""CLI — Agent lifecycle commands."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from pxp_agent.config import LogLevel
from pxp_agent.exceptions import ConfigurationError

app = typer.Typer(help="Run the PXP agent.")
console = Console(stderr=True)


@app.command("start")
def start(
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
    modules_dir: Annotated[
        Path | None, typer.Option("--modules-dir", help="External modules directory.")
    ] = None,
    log_level: Annotated[
        LogLevel | None, typer.Option("--log-level", help="Override the configured log level.")
    ] = None,
) -> None:
    """Connect to the broker and serve requests until the connection is lost."""
    from pxp_agent.agent import Agent
    from pxp_agent.config import Settings, override_settings
    from pxp_agent.logging import configure_logging

    try:
        settings = Settings.load(config_file=config)
        if modules_dir is not None:
            settings.modules.directory = modules_dir.expanduser()
        override_settings(settings)
        configure_logging(
            level=(log_level or settings.logging.level).value,
            format=settings.logging.format,
            log_file=str(settings.logging.file) if settings.logging.file else None,
        )
        settings.validate_broker()
        agent = Agent(settings)
        console.print(f"[bold green]Starting PXP agent for {settings.broker.url}[/bold green]")
        asyncio.run(agent.start())
    except ConfigurationError as exc:
        console.print(f"[red]Fatal error: {exc.message}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
