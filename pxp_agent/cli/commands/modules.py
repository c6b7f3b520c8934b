"""CLI — Module inspection and local invocation commands.

Both commands build the registry in-process, exactly as the agent does at
startup, so they work without a broker.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from pxp_agent.exceptions import ConfigurationError

if TYPE_CHECKING:
    from pxp_agent.modules.registry import ModuleRegistry

app = typer.Typer(help="Inspect and invoke modules without a broker.")
console = Console()

ConfigOption = Annotated[
    Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
]
ModulesDirOption = Annotated[
    Path | None, typer.Option("--modules-dir", help="External modules directory.")
]


def _registry(config: Path | None, modules_dir: Path | None) -> "ModuleRegistry":
    from pxp_agent.config import Settings
    from pxp_agent.logging import configure_logging
    from pxp_agent.modules.loader import build_registry

    settings = Settings.load(config_file=config)
    configure_logging(level="warning", format=settings.logging.format)
    directory = modules_dir.expanduser() if modules_dir else settings.modules.directory
    return build_registry(
        directory,
        timeout=settings.modules.timeout,
        discovery_timeout=settings.modules.discovery_timeout,
    )


@app.command("list")
def list_modules(
    config: ConfigOption = None,
    modules_dir: ModulesDirOption = None,
    json_output: bool = typer.Option(False, "--json", help="Output raw JSON."),
) -> None:
    """List loaded modules and the external files that failed to load."""
    try:
        registry = _registry(config, modules_dir)
    except ConfigurationError as exc:
        console.print(f"[red]Error: {exc.message}[/red]")
        raise typer.Exit(1)

    if json_output:
        payload = {
            "modules": [m.to_dict() for m in registry.all_manifests()],
            "failed": registry.list_failed(),
        }
        console.print(Syntax(json.dumps(payload, indent=2), "json"))
        return

    table = Table(title="Loaded Modules")
    table.add_column("Name", style="cyan")
    table.add_column("Version")
    table.add_column("Source")
    table.add_column("Actions")
    table.add_column("Path")

    for manifest in registry.all_manifests():
        table.add_row(
            manifest.module_id,
            manifest.version,
            manifest.source,
            ", ".join(manifest.action_names()),
            manifest.path or "-",
        )
    console.print(table)

    failed = registry.list_failed()
    if failed:
        failed_table = Table(title="Failed to Load")
        failed_table.add_column("Path", style="red")
        failed_table.add_column("Reason")
        for path, reason in failed.items():
            failed_table.add_row(path, reason)
        console.print(failed_table)


@app.command("invoke")
def invoke(
    module: str = typer.Argument(help="Module name."),
    action: str = typer.Argument(help="Action name."),
    params: str = typer.Option("{}", "--params", "-p", help="Action params as a JSON object."),
    config: ConfigOption = None,
    modules_dir: ModulesDirOption = None,
) -> None:
    """Dispatch one request through the loopback connector and print the response."""
    from pxp_agent.dispatcher import RequestDispatcher
    from pxp_agent.protocol.models import InboundMessage
    from pxp_agent.transport.loopback import LoopbackConnector

    try:
        parsed_params = json.loads(params)
    except json.JSONDecodeError as exc:
        console.print(f"[red]Invalid --params JSON: {exc}[/red]")
        raise typer.Exit(2)

    try:
        registry = _registry(config, modules_dir)
    except ConfigurationError as exc:
        console.print(f"[red]Error: {exc.message}[/red]")
        raise typer.Exit(1)

    connector = LoopbackConnector()
    message = InboundMessage(
        id=str(uuid.uuid4()),
        sender="cli",
        data={"module": module, "action": action, "params": parsed_params},
    )
    response = asyncio.run(RequestDispatcher(registry, connector).handle(message))

    console.print(Syntax(json.dumps(connector.sent[-1].data, indent=2), "json"))
    if response.is_error:
        raise typer.Exit(1)
