"""
Shared CLI helpers: consoles, configuration and logging bootstrap.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from dealscope.core.config import AppConfig, ConfigError, load_app_config
from dealscope.core.logging import json_dumps, setup_logging

console = Console(legacy_windows=False)
err_console = Console(stderr=True, legacy_windows=False)


def load_config_or_exit(path: Path | None) -> AppConfig:
    """Load configuration, printing the error and exiting on failure."""
    try:
        return load_app_config(path)
    except ConfigError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        if e.details:
            err_console.print(f"[dim]{e.details}[/dim]")
        raise typer.Exit(1)


def configure_logging(config: AppConfig, verbose: bool = False) -> None:
    setup_logging(
        level="DEBUG" if verbose else config.logging.level,
        log_file=config.logging.file,
        json_format=config.logging.json_format,
        rich_console=config.logging.rich_console,
    )


def read_payload(path: Path) -> str:
    """Read a JSON payload file as text; decoding is left to the normalizers."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        err_console.print(f"[red]Cannot read {path}:[/red] {e}")
        raise typer.Exit(1)


def print_json(data: Any) -> None:
    console.print_json(json_dumps(data))


CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to dealscope.yaml (default: $DEALSCOPE_CONFIG or configs/dealscope.yaml)",
)

FORMAT_OPTION = typer.Option(
    "table",
    "--format",
    "-f",
    help="Output format (table, json)",
)
