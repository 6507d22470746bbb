#!/usr/bin/env python3
"""
Continuum Command Line Interface

This module is the entry point for the ``continuum`` CLI. It works on snapshot
files: a JSON or YAML list of memory records (or a mapping with ``memories``
and ``audit_log`` lists) loaded into an in-memory store.

Usage:
    continuum --help
    continuum [global options] [command] [options]

Examples:
    continuum policy
    continuum score memories.json mem-42
    continuum consolidate memories.json --now 2025-01-01T12:00:00Z
    continuum --config continuum.yaml consolidate memories.yaml --apply -o out.yaml

Environment Variables:
    CONTINUUM_CONFIG_PATH: Path to a YAML configuration file
    CONTINUUM_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from continuum import __version__
from continuum.cli.commands.consolidation import consolidate, score_memory, show_policy
from continuum.cli.commands.consolidation_utils import ConsolidationCLIContext
from continuum.cli.utils import setup_logging
from continuum.core.exceptions import ConfigurationError
from continuum.memory.config.loader import load_config

console = Console()
logger = logging.getLogger(__name__)

app = typer.Typer(
    name="continuum",
    help="Tiered memory consolidation driven by surprise scoring.",
    add_completion=False,
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"continuum {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    config_path: Annotated[Optional[Path], typer.Option(
        "--config",
        "-c",
        help="Path to a YAML configuration file (overrides CONTINUUM_CONFIG_PATH).",
    )] = None,
    log_level: Annotated[Optional[str], typer.Option(
        "--log-level",
        help="Logging level (defaults to CONTINUUM_LOG_LEVEL or WARNING).",
    )] = None,
    version: Annotated[bool, typer.Option(
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    )] = False,
) -> None:
    """
    Continuum CLI.
    """
    try:
        setup_logging(log_level)
    except ValueError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(code=1)

    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e.message}[/]")
        raise typer.Exit(code=1)

    ctx.obj = ConsolidationCLIContext(
        config=config,
        config_path=str(config_path) if config_path else None,
    )
    logger.debug("Initialized CLI context (config=%s)", config_path or "defaults")


app.command("policy")(show_policy)
app.command("score")(score_memory)
app.command("consolidate")(consolidate)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
