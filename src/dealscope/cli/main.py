"""
DealScope CLI - Main entry point.

Inspection tooling for the entity resolution and payload normalization
layer: feed it raw upstream payloads and see the canonical result.
"""

from __future__ import annotations

from typing import Optional

import typer
from dotenv import load_dotenv
from rich.traceback import install as install_rich_traceback

from dealscope import __app_name__, __version__

from .common import console

# Load environment variables from .env (if present)
load_dotenv()

# Install rich traceback for better error display
install_rich_traceback(show_locals=False, width=120)

# Create main app
app = typer.Typer(
    name=__app_name__,
    help="Entity resolution and payload normalization for deal data",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """DealScope - canonical views over heterogeneous deal payloads."""
    pass


# =============================================================================
# Import and register subcommand modules
# =============================================================================

from .commands import config, entity, event, sectors  # noqa: E402

app.add_typer(event.app, name="event", help="Normalize corporate-event payloads")
app.add_typer(sectors.app, name="sectors", help="Resolve sector hierarchies")
app.add_typer(entity.app, name="entity", help="Classify and route entities")
app.add_typer(config.app, name="config", help="Inspect configuration")


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
