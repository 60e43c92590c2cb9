"""Event store, state reducer, replay engine and comparator for agent timelines.

Submodules are imported directly (``agent_timeline.timeline.event_store`` and
so on); this package only re-exports the error taxonomy.
"""

from .errors import (
    NotFoundError,
    ProviderError,
    RateLimitError,
    ReplayFailedError,
    ReplayTimeoutError,
    ReplayTooLargeError,
    StoreUnavailableError,
    TimelineError,
    ValidationError,
)

__all__ = [
    "NotFoundError",
    "ProviderError",
    "RateLimitError",
    "ReplayFailedError",
    "ReplayTimeoutError",
    "ReplayTooLargeError",
    "StoreUnavailableError",
    "TimelineError",
    "ValidationError",
]
