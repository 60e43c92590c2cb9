"""
Timeline event repository.

This module provides data access for the append-only agent event log:
insertion, point lookup, indexed range queries, scoped retention deletes and
per-kind aggregates. Built exclusively on SQLModel over async SQLAlchemy.

Connectivity failures of the underlying database are translated into
``StoreUnavailableError`` at this boundary; every other database error
propagates unchanged.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

from sqlalchemy import delete, func
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from agent_timeline.core.logging_config import get_logger
from agent_timeline.timeline.errors import StoreUnavailableError

from ..entities.timeline_events import TimelineEventRecord
from .base import AsyncBaseRepository, QueryBuilder

logger = get_logger(__name__)


@dataclass(frozen=True)
class KindAggregate:
    """Aggregate of one agent's events of a single kind."""

    kind: str
    count: int
    total_cost: float
    oldest_timestamp: int
    newest_timestamp: int


@dataclass(frozen=True)
class AgentWatermark:
    """Row count and highest append sequence of one agent's events.

    Appends raise ``last_seq`` and cleanups lower ``count``; sequences are never
    reused, so any write to the agent changes the watermark.
    """

    count: int
    last_seq: int


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except (OperationalError, InterfaceError, OSError) as e:
        logger.error(f"Event store unavailable during {operation}: {e}")
        raise StoreUnavailableError(operation, str(e)) from e


class TimelineEventRepository(AsyncBaseRepository[TimelineEventRecord]):
    """Repository for timeline events.

    Events are append-only: ``update`` and single-row ``delete`` are not
    supported. The only destructive operation is ``delete_many``, which is
    always scoped to one agent and a timestamp cutoff.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        super().__init__(session_factory, TimelineEventRecord)

    async def create(self, record: TimelineEventRecord) -> TimelineEventRecord:
        """Persist a new event row and return it with ``seq`` populated.

        Args:
            record: Row to insert

        Returns:
            The persisted row
        """
        with _translate_errors("insert"):
            async with self.session_factory() as session:
                session.add(record)
                await session.commit()
                await session.refresh(record)
                return record

    async def insert(self, record: TimelineEventRecord) -> str:
        """Insert ``record`` and return its public id."""
        persisted = await self.create(record)
        return persisted.id

    async def get_by_id(self, event_id: str) -> Optional[TimelineEventRecord]:
        """Get an event row by its public id.

        Args:
            event_id: Event id

        Returns:
            TimelineEventRecord instance or None
        """
        with _translate_errors("get_by_id"):
            async with self.session_factory() as session:
                stmt = select(TimelineEventRecord).where(TimelineEventRecord.id == event_id)
                result = await session.execute(stmt)
                return result.scalar_one_or_none()

    async def update(self, record: TimelineEventRecord) -> TimelineEventRecord:
        """Update operation not supported for events (append-only).

        Raises:
            NotImplementedError: Events cannot be updated
        """
        raise NotImplementedError("Timeline events are append-only and cannot be updated")

    async def delete(self, event_id: str) -> bool:
        """Single event deletion is not supported (append-only).

        Raises:
            NotImplementedError: Use ``delete_many`` for retention cleanup
        """
        raise NotImplementedError("Timeline events are append-only; use delete_many for retention cleanup")

    async def query_by_index(
        self,
        agent_id: str,
        *,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        kinds: Optional[Sequence[str]] = None,
        order: str = "asc",
        limit: Optional[int] = None,
    ) -> List[TimelineEventRecord]:
        """Query one agent's events through the ``(agent_id, timestamp, seq)`` index.

        Args:
            agent_id: Owning agent
            start_time: Inclusive lower timestamp bound
            end_time: Inclusive upper timestamp bound
            kinds: Restrict to these kind tags
            order: ``"asc"`` or ``"desc"`` on ``(timestamp, seq)``
            limit: Maximum rows, None for all

        Returns:
            Ordered list of rows
        """
        stmt = select(TimelineEventRecord).where(TimelineEventRecord.agent_id == agent_id)
        stmt = QueryBuilder.apply_time_range(stmt, TimelineEventRecord.timestamp, start_time, end_time)
        stmt = QueryBuilder.apply_in(stmt, TimelineEventRecord.kind, kinds)
        if order == "desc":
            stmt = stmt.order_by(TimelineEventRecord.timestamp.desc(), TimelineEventRecord.seq.desc())
        else:
            stmt = stmt.order_by(TimelineEventRecord.timestamp.asc(), TimelineEventRecord.seq.asc())
        stmt = QueryBuilder.apply_pagination(stmt, limit)

        with _translate_errors("query_by_index"):
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())

    async def delete_many(self, agent_id: str, before: int) -> int:
        """Delete one agent's events with ``timestamp < before``.

        Args:
            agent_id: Owning agent
            before: Exclusive timestamp cutoff

        Returns:
            Number of deleted rows
        """
        stmt = delete(TimelineEventRecord).where(
            (TimelineEventRecord.agent_id == agent_id) & (TimelineEventRecord.timestamp < before)
        )
        with _translate_errors("delete_many"):
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
                return int(result.rowcount or 0)

    async def aggregate_by_kind(self, agent_id: str) -> List[KindAggregate]:
        """Count, cost and time bounds of an agent's events grouped by kind."""
        stmt = (
            select(
                TimelineEventRecord.kind,
                func.count(),
                func.coalesce(func.sum(TimelineEventRecord.cost), 0.0),
                func.min(TimelineEventRecord.timestamp),
                func.max(TimelineEventRecord.timestamp),
            )
            .where(TimelineEventRecord.agent_id == agent_id)
            .group_by(TimelineEventRecord.kind)
            .order_by(TimelineEventRecord.kind)
        )
        with _translate_errors("aggregate_by_kind"):
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return [
                    KindAggregate(
                        kind=kind,
                        count=int(count),
                        total_cost=float(total_cost),
                        oldest_timestamp=int(oldest),
                        newest_timestamp=int(newest),
                    )
                    for kind, count, total_cost, oldest, newest in result.all()
                ]

    async def watermark(self, agent_id: str) -> AgentWatermark:
        """Cheap change marker of an agent's events, used to validate cached stats."""
        stmt = select(func.count(), func.coalesce(func.max(TimelineEventRecord.seq), 0)).where(
            TimelineEventRecord.agent_id == agent_id
        )
        with _translate_errors("watermark"):
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                count, last_seq = result.one()
                return AgentWatermark(count=int(count), last_seq=int(last_seq))
