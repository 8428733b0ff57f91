"""
Logging infrastructure for DealScope.

Everything logs under the ``dealscope`` logger. Records may carry page-view
and entity context, which the file formatter writes as JSON fields and the
console handler renders as a coloured prefix.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import orjson

if TYPE_CHECKING:
    from rich.console import Console


ROOT_LOGGER = "dealscope"

# Record attributes copied into JSON lines when present
CONTEXT_FIELDS = ("page", "entity_id", "strategy", "source", "endpoint", "status_code")

LEVEL_STYLES = {
    logging.DEBUG: "dim",
    logging.INFO: "default",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "bold red",
}

PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def json_dumps(obj: Any) -> str:
    return orjson.dumps(obj, default=str).decode("utf-8")


# =============================================================================
# JSON Formatter for File Logging
# =============================================================================


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with any bound context fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(
            (field, getattr(record, field)) for field in CONTEXT_FIELDS if hasattr(record, field)
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json_dumps(payload)


# =============================================================================
# Rich Console Handler
# =============================================================================


def _context_prefix(record: logging.LogRecord) -> str:
    from rich.markup import escape

    parts = []
    page = getattr(record, "page", None)
    if page:
        parts.append(f"[cyan]{escape(f'[{page}]')}[/cyan]")
    entity_id = getattr(record, "entity_id", None)
    if entity_id is not None:
        parts.append(f"[magenta]#{entity_id}[/magenta]")
    return " ".join(parts) + " " if parts else ""


class RichConsoleHandler(logging.Handler):
    """Renders records on a Rich console, styled by level."""

    def __init__(self, console: "Console | None" = None, level: int = logging.INFO):
        super().__init__(level)
        if console is None:
            from rich.console import Console
            console = Console(stderr=True)
        self.console = console

    def emit(self, record: logging.LogRecord) -> None:
        from rich.markup import escape

        try:
            style = LEVEL_STYLES.get(record.levelno, "default")
            body = escape(self.format(record))
            self.console.print(f"{_context_prefix(record)}[{style}]{body}[/{style}]", highlight=False)
            if record.exc_info:
                self.console.print_exception()
        except Exception:
            self.handleError(record)


# =============================================================================
# Logger Configuration
# =============================================================================


def _console_handler(rich_console: bool) -> logging.Handler:
    if rich_console:
        handler: logging.Handler = RichConsoleHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    return handler


def _file_handler(log_file: Path | str, json_format: bool) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Path | str | None = None,
    json_format: bool = True,
    rich_console: bool = True,
) -> logging.Logger:
    """Configure the ``dealscope`` logger.

    Replaces any handlers from a previous call, so the CLI can reconfigure
    per command.

    Args:
        level: Console log level name
        log_file: Optional file that receives every record at DEBUG
        json_format: Write the file as JSON lines instead of plain text
        rich_console: Use the Rich handler instead of a plain stderr stream

    Returns:
        The configured ``dealscope`` logger
    """
    numeric_level = logging.getLevelName(level.upper())
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    console = _console_handler(rich_console)
    console.setLevel(numeric_level)
    logger.addHandler(console)

    if log_file:
        logger.addHandler(_file_handler(log_file, json_format))

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``dealscope`` or the ``dealscope.<name>`` child logger."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


# =============================================================================
# Contextual Logging Adapter
# =============================================================================


class ContextualLogger(logging.LoggerAdapter):
    """Adapter that stamps page-view and entity context onto every record.

    Explicit ``extra`` values passed at the call site win over bound context.
    """

    def __init__(
        self,
        logger: logging.Logger,
        page: str | None = None,
        entity_id: int | None = None,
    ):
        super().__init__(logger, {})
        self.page = page
        self.entity_id = entity_id

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        bound = {"page": self.page, "entity_id": self.entity_id}
        extra = {key: value for key, value in bound.items() if value is not None}
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(
        self,
        page: str | None = None,
        entity_id: int | None = None,
    ) -> "ContextualLogger":
        return ContextualLogger(
            self.logger,
            page=page or self.page,
            entity_id=entity_id if entity_id is not None else self.entity_id,
        )


def get_contextual_logger(
    name: str | None = None,
    page: str | None = None,
    entity_id: int | None = None,
) -> ContextualLogger:
    return ContextualLogger(get_logger(name), page=page, entity_id=entity_id)
