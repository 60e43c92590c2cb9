"""Runtime limits of the timeline core."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TimelineConfig:
    """Limits applied by the event store and the replay engine.

    Attributes:
        default_list_limit: Page size of ``list_by_agent`` when the caller passes none.
        max_list_limit: Largest page a caller may request.
        list_from_limit: Default page size of ``list_from`` (replay and audit seeding).
        replay_max_events: Safety bound on events loaded by one replay.
        replay_pairing_window: Events scanned after a request to find its response.
        replay_timeout_seconds: Default replay timeout, None to wait indefinitely.
        stats_cache_enabled: Cache ``stats`` per agent while its record watermark is unchanged.
        stats_cache_size: Most agents whose stats are cached at once.
    """

    default_list_limit: int = 100
    max_list_limit: int = 1000
    list_from_limit: int = 1000
    replay_max_events: int = 10_000
    replay_pairing_window: int = 100
    replay_timeout_seconds: Optional[float] = 120.0
    stats_cache_enabled: bool = True
    stats_cache_size: int = 1024
