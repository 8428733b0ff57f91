"""
Corporate-event commands.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Optional

import typer
from rich.table import Table

from dealscope.cli.common import (
    CONFIG_OPTION,
    FORMAT_OPTION,
    configure_logging,
    console,
    err_console,
    load_config_or_exit,
    print_json,
    read_payload,
)
from dealscope.core.config import AppConfig
from dealscope.core.normalize import CorporateEventCanonical, EntityRef, format_sectors
from dealscope.core.normalize.scalars import display_or_not_available

app = typer.Typer(
    help="Normalize corporate-event payloads",
    no_args_is_help=True,
)


def _refs_cell(refs: list[EntityRef]) -> str:
    if not refs:
        return "[dim]-[/dim]"
    parts = []
    for ref in refs:
        if ref.clickable:
            parts.append(f"{ref.name} [dim]{ref.navigation_path}[/dim]")
        else:
            parts.append(ref.name)
    return "\n".join(parts)


def _events_table(events: list[CorporateEventCanonical]) -> Table:
    table = Table(title="Corporate Events", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Date")
    table.add_column("Deal Type")
    table.add_column("Targets")
    table.add_column("Buyers")
    table.add_column("Investors")
    table.add_column("Sellers")
    table.add_column("Advisors")
    table.add_column("Investment", justify="right")
    table.add_column("EV", justify="right")
    table.add_column("Sectors")

    for event in events:
        sectors = format_sectors(event.sectors.primary)
        if event.sectors.approximated:
            sectors += " [yellow](approx.)[/yellow]"
        table.add_row(
            str(event.id) if event.id is not None else "-",
            event.announcement_display,
            display_or_not_available(event.deal_type),
            _refs_cell(event.parties.targets),
            _refs_cell(event.parties.buyers),
            _refs_cell(event.parties.investors),
            _refs_cell(event.parties.sellers),
            ", ".join(event.parties.advisors) or "[dim]-[/dim]",
            event.investment_amount.display,
            event.enterprise_value.display,
            sectors,
        )
    return table


async def _build_view(config: AppConfig, raw: str, sectors: Any, verify: bool) -> Any:
    from dealscope.core.backends import UpstreamClient
    from dealscope.core.orchestrator import EventViewBuilder

    async with UpstreamClient(config.upstream) as upstream:
        builder = EventViewBuilder(config, upstream=upstream)
        session = builder.classifier.session(page="cli")
        try:
            return await builder.build(
                raw,
                sectors=sectors,
                session=session,
                require_verification=verify,
            )
        finally:
            session.close()


@app.command("normalize")
def normalize_event(
    file: Path = typer.Argument(
        ...,
        help="JSON file holding an event or an event envelope",
        exists=True,
        readable=True,
    ),
    sectors_file: Optional[Path] = typer.Option(
        None,
        "--sectors",
        "-s",
        help="Sector payload applied to every event",
        exists=True,
        readable=True,
    ),
    classify: bool = typer.Option(
        False,
        "--classify/--no-classify",
        help="Classify ambiguous entities against the upstream",
    ),
    verify: bool = typer.Option(
        True,
        "--verify/--no-verify",
        help="Allow investor-profile verification lookups when classifying",
    ),
    format: str = FORMAT_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
) -> None:
    """Normalize a corporate-event payload into canonical events."""
    config = load_config_or_exit(config_path)
    configure_logging(config, verbose)

    raw = read_payload(file)
    sectors = read_payload(sectors_file) if sectors_file else None

    if classify:
        view = asyncio.run(_build_view(config, raw, sectors, verify))
        events = view.events
    else:
        from dealscope.core.orchestrator import EventViewBuilder
        view = None
        events = EventViewBuilder(config).normalize(raw, sectors=sectors)

    if not events:
        err_console.print("[yellow]No corporate events found in payload[/yellow]")

    if format == "json":
        if view is not None:
            print_json(view.to_dict())
        else:
            print_json([event.to_dict() for event in events])
        return

    if events:
        console.print(_events_table(events))
    if view is not None:
        stats = view.stats
        console.print(
            f"[dim]{stats.entities_classified} of {stats.entities_ambiguous} ambiguous "
            f"entities classified, {stats.investors_found} investors[/dim]"
        )
