"""
Entity commands.

Classify entity ids as company or investor and resolve search routes.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

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
)
from dealscope.core.classify import ClassificationRequest, ClassificationResult, EntityKindClassifier
from dealscope.core.config import AppConfig
from dealscope.core.normalize import entity_path, resolve_search_href

app = typer.Typer(
    help="Classify and route entities",
    no_args_is_help=True,
)


async def _classify(
    config: AppConfig,
    requests: list[ClassificationRequest],
    verify: bool,
    offline: bool,
) -> dict[int, ClassificationResult]:
    if offline:
        classifier = EntityKindClassifier(config.classifier)
        return await classifier.classify_many(requests, require_verification=False)

    from dealscope.core.backends import UpstreamClient

    async with UpstreamClient(config.upstream) as upstream:
        classifier = EntityKindClassifier(config.classifier, upstream)
        session = classifier.session(page="cli")
        try:
            return await session.classify_many(requests, require_verification=verify)
        finally:
            session.close()


@app.command("classify")
def classify(
    entity_ids: list[int] = typer.Argument(..., help="Entity ids to classify"),
    flags: Optional[list[int]] = typer.Option(
        None,
        "--flag",
        help="Entity id already known to be an investor (repeatable)",
    ),
    verify: bool = typer.Option(
        True,
        "--verify/--no-verify",
        help="Use the investor-profile verification lookup",
    ),
    offline: bool = typer.Option(
        False,
        "--offline",
        help="No network calls; classify from flags only",
    ),
    format: str = FORMAT_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Classify entities as company or investor."""
    invalid = [entity_id for entity_id in entity_ids if entity_id <= 0]
    if invalid:
        err_console.print(f"[red]Entity ids must be positive:[/red] {invalid}")
        raise typer.Exit(1)

    config = load_config_or_exit(config_path)
    configure_logging(config)

    flagged = set(flags or [])
    requests = [
        ClassificationRequest(
            entity_id=entity_id,
            fallback_flag=True if entity_id in flagged else None,
        )
        for entity_id in entity_ids
    ]

    results = asyncio.run(_classify(config, requests, verify, offline))

    if format == "json":
        print_json([results[entity_id].to_dict() for entity_id in dict.fromkeys(entity_ids)])
        return

    table = Table(title="Entity Classification", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Kind")
    table.add_column("Source")
    table.add_column("Path")

    for entity_id in dict.fromkeys(entity_ids):
        result = results[entity_id]
        style = "green" if result.is_investor else "default"
        table.add_row(
            str(entity_id),
            f"[{style}]{result.kind.value}[/{style}]",
            result.source.value,
            entity_path(result.kind, entity_id),
        )

    console.print(table)


@app.command("href")
def href(
    result_type: str = typer.Argument(..., help="Search result type (company, investor, advisor, ...)"),
    entity_id: str = typer.Argument(..., help="Result id"),
) -> None:
    """Print the navigation path for a search result."""
    path = resolve_search_href(result_type, entity_id)
    if not path:
        err_console.print(f"[red]No route for[/red] {result_type} {entity_id}")
        raise typer.Exit(1)
    console.print(path)
