"""
Configuration commands.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from dealscope.cli.common import (
    CONFIG_OPTION,
    console,
    err_console,
    load_config_or_exit,
    print_json,
)
from dealscope.core.config import validate_config_file
from dealscope.core.config.loader import resolve_config_path

app = typer.Typer(
    help="Inspect configuration",
    no_args_is_help=True,
)


@app.command("show")
def show(
    config_path: Optional[Path] = CONFIG_OPTION,
    show_secrets: bool = typer.Option(
        False,
        "--show-secrets",
        help="Print the API token instead of masking it",
    ),
) -> None:
    """Print the effective configuration as JSON."""
    config = load_config_or_exit(config_path)
    data = config.model_dump(mode="json")
    if data["upstream"].get("api_token") and not show_secrets:
        data["upstream"]["api_token"] = "***"
    print_json(data)


@app.command("validate")
def validate(
    config_path: Optional[Path] = typer.Argument(None, help="Configuration file to validate"),
) -> None:
    """Validate a configuration file."""
    path = resolve_config_path(config_path)
    errors = validate_config_file(path)
    if errors:
        err_console.print(f"[red]Invalid configuration:[/red] {path}")
        for error in errors:
            err_console.print(f"  - {error}")
        raise typer.Exit(1)
    console.print(f"[green]OK[/green] {path}")
