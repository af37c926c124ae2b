"""Main Typer application — imports and registers all CLI commands.

Entry point: ``dromedary`` (configured via pyproject.toml console_scripts).
"""

from __future__ import annotations

import typer

from dromedary.cli.commands.routes import routes_cmd
from dromedary.cli.commands.run import run_cmd

app = typer.Typer(
    name="dromedary",
    help="Dromedary: declarative event routing between pluggable components.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

app.command(name="run", help="Start the routing engine from a config file.")(run_cmd)
app.command(name="routes", help="List configured routes and their resolvability.")(routes_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
