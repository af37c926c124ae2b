"""Dromedary CLI — Typer-based command-line interface.

Provides the ``dromedary`` command with ``run`` (start the routing engine
from a config file) and ``routes`` (inspect a config without starting it).

All output uses Rich for formatted terminal display.
"""
