"""``dromedary run`` — load a config file and run its routes until signalled.

Startup-time problems (missing file, import errors, invalid shape) exit
with code 1 before any route starts.  Once running, per-route and
per-event failures are only logged.
"""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from dromedary.cli.loader import find_config, load_config
from dromedary.cli.log_setup import configure_logging
from dromedary.config import DromedarySettings, build_context
from dromedary.core.engine import RouteEngine
from dromedary.errors import ConfigurationError

console = Console()


async def serve(
    config_file: Path,
    settings: DromedarySettings,
    *,
    stop_event: asyncio.Event | None = None,
) -> RouteEngine:
    """Start every route from *config_file* and wait until *stop_event* is set.

    SIGINT and SIGTERM set the event when the platform's loop supports
    signal handlers.  Returns the engine after it has stopped and drained.
    """
    runtime = await load_config(config_file)
    context = build_context(settings)
    engine = RouteEngine(
        runtime.components,
        runtime.routes,
        context,
        mailbox_size=settings.mailbox_size,
        max_in_flight=settings.max_in_flight,
    )

    if stop_event is None:
        stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Windows loops and non-main threads cannot install handlers.
            break

    stop = engine.start_all()
    console.print(
        Panel(
            "\n".join([
                "[bold green]Dromedary ready![/bold green]",
                "",
                f"[bold]Config:[/bold]      {config_file.name}",
                f"[bold]Components:[/bold]  {', '.join(sorted(runtime.components)) or '-'}",
                f"[bold]Routes:[/bold]      {len(runtime.routes)}",
                "",
                "[dim]Press Ctrl+C to stop.[/dim]",
            ]),
            title="[bold]Dromedary[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )

    try:
        await stop_event.wait()
    finally:
        stop()
        await engine.drain()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(signum)
            except (NotImplementedError, RuntimeError):
                break
        console.print("[bold]Dromedary stopped[/bold]")
    return engine


def run_cmd(
    config: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to the config file (default: dromedary.config.py).",
    ),
) -> None:
    """Start the routing engine from a config file."""
    settings = DromedarySettings()
    configure_logging(settings.log_level, console=console)
    try:
        config_file = find_config(Path.cwd(), config or settings.config_path)
        asyncio.run(serve(config_file, settings))
    except ConfigurationError as exc:
        console.print(f"[bold red]dromedary run failed:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc
    except KeyboardInterrupt:
        console.print("[bold]Dromedary stopped[/bold]")
