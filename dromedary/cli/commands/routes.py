"""``dromedary routes`` — show configured routes and whether they resolve."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from dromedary.cli.loader import find_config, load_config
from dromedary.core.endpoint import parse_endpoint
from dromedary.core.registry import ComponentRegistry
from dromedary.errors import AddressParseError, ConfigurationError

console = Console()


def _describe(uri: str, registry: ComponentRegistry, capability: str) -> str:
    try:
        endpoint = parse_endpoint(uri)
    except AddressParseError as exc:
        return f"[red]{uri} (invalid: {exc.reason})[/red]"
    component = registry.lookup(endpoint.scheme)
    if component is None:
        return f"[red]{uri} (no component)[/red]"
    if capability not in component.capabilities:
        return f"[yellow]{uri} (no {capability})[/yellow]"
    return f"[green]{uri}[/green]"


def routes_cmd(
    config: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to the config file (default: dromedary.config.py).",
    ),
) -> None:
    """List routes from a config file without starting them."""
    try:
        runtime = asyncio.run(load_config(find_config(Path.cwd(), config)))
    except ConfigurationError as exc:
        console.print(f"[bold red]Invalid configuration:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    if not runtime.routes:
        console.print("[dim]No routes configured.[/dim]")
        return

    table = Table(title="Routes")
    table.add_column("#", justify="right")
    table.add_column("Route", style="cyan")
    table.add_column("Source")
    table.add_column("Filters", justify="right")
    table.add_column("Processors", justify="right")
    table.add_column("Targets")

    for index, route in enumerate(runtime.routes, start=1):
        targets = "\n".join(
            _describe(uri, runtime.components, "producer") for uri in route.targets
        )
        table.add_row(
            str(index),
            route.label,
            _describe(route.source, runtime.components, "consumer"),
            str(len(route.filters)),
            str(len(route.processors)),
            targets or "[dim]-[/dim]",
        )

    console.print(table)
    console.print(f"[dim]Components: {', '.join(sorted(runtime.components)) or '-'}[/dim]")
