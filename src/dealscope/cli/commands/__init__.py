"""CLI command modules."""

from . import config, entity, event, sectors

__all__ = [
    "config",
    "entity",
    "event",
    "sectors",
]
