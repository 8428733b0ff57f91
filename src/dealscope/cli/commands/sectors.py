"""
Sector commands.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from dealscope.cli.common import (
    CONFIG_OPTION,
    FORMAT_OPTION,
    configure_logging,
    console,
    load_config_or_exit,
    print_json,
    read_payload,
)
from dealscope.core.normalize import resolve_sectors

app = typer.Typer(
    help="Resolve sector hierarchies",
    no_args_is_help=True,
)


@app.command("resolve")
def resolve(
    file: Path = typer.Argument(
        ...,
        help="JSON file holding a sector payload",
        exists=True,
        readable=True,
    ),
    fallback: bool = typer.Option(
        True,
        "--fallback/--no-fallback",
        help="Approximate primary sectors from the keyword table",
    ),
    format: str = FORMAT_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Split a sector payload into primary and secondary sectors."""
    config = load_config_or_exit(config_path)
    configure_logging(config)

    resolved = resolve_sectors(
        read_payload(file),
        keyword_table=config.sectors.keyword_fallback,
        use_keyword_fallback=fallback and config.sectors.use_keyword_fallback,
    )

    if format == "json":
        print_json(resolved.to_dict())
        return

    table = Table(title="Sectors", show_header=True, header_style="bold magenta")
    table.add_column("Importance", style="cyan")
    table.add_column("Name")
    table.add_column("ID", justify="right")
    table.add_column("Link")

    for sector in [*resolved.primary, *resolved.secondary]:
        table.add_row(
            sector.importance.value,
            sector.name,
            str(sector.id) if sector.id is not None else "-",
            sector.href or "[dim]-[/dim]",
        )

    if resolved.primary or resolved.secondary:
        console.print(table)
    else:
        console.print("[dim]No sectors found.[/dim]")

    if resolved.approximated:
        console.print(
            "[yellow]Primary sectors were approximated from the keyword table "
            "and may not match the upstream taxonomy.[/yellow]"
        )
