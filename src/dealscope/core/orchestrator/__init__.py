"""Page view orchestration."""

from .view import (
    EventView,
    EventViewBuilder,
    ViewStats,
    ambiguous_requests,
    apply_classifications,
)

__all__ = [
    "EventView",
    "EventViewBuilder",
    "ViewStats",
    "ambiguous_requests",
    "apply_classifications",
]
