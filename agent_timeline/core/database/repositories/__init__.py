"""
Database repository layer using SQLModel.

Modules:
- base: AsyncBaseRepository interface and QueryBuilder utilities
- timeline_events: Append-only timeline event repository
"""

from .base import AsyncBaseRepository, QueryBuilder
from .timeline_events import AgentWatermark, KindAggregate, TimelineEventRepository

__all__ = [
    "AgentWatermark",
    "AsyncBaseRepository",
    "KindAggregate",
    "QueryBuilder",
    "TimelineEventRepository",
]
