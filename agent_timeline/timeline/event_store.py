"""Event store: the durable, ordered, per-agent log of timeline events.

The store owns event identity (uuid ids) and ordering. Reads are always
ordered on ``(timestamp, seq)`` where ``seq`` is the append sequence assigned
by the record store, so events sharing a timestamp keep their append order.

Input validation happens here, before anything reaches persistence: a missing
``agent_id``, ``kind`` or ``timestamp`` or a payload that does not match its
kind raises ``ValidationError``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from agent_timeline.core import monitoring
from agent_timeline.core.database.entities.timeline_events import TimelineEventRecord
from agent_timeline.core.database.repositories.timeline_events import AgentWatermark
from agent_timeline.core.logging_config import get_logger

from .config import TimelineConfig
from .errors import ValidationError
from .interfaces import EventRecordStore
from .schemas.events import EventKind, EventStats, NewEvent, SortOrder, TimelineEvent

logger = get_logger(__name__)

REQUIRED_FIELDS = ("agent_id", "kind", "timestamp")


def _coerce_event(event: Union[NewEvent, Mapping[str, Any]]) -> NewEvent:
    if isinstance(event, NewEvent):
        return event
    if not isinstance(event, Mapping):
        raise ValidationError(f"Event must be a mapping or NewEvent, got {type(event).__name__}")

    missing = [name for name in REQUIRED_FIELDS if event.get(name) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required event fields: {', '.join(missing)}", fields=missing)

    try:
        return NewEvent.model_validate(dict(event))
    except PydanticValidationError as e:
        fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        details = "; ".join(f"{'.'.join(str(p) for p in err['loc']) or 'event'}: {err['msg']}" for err in e.errors())
        raise ValidationError(f"Invalid event: {details}", fields=fields) from e


def _to_record(event: NewEvent, event_id: str) -> TimelineEventRecord:
    return TimelineEventRecord(
        id=event_id,
        agent_id=event.agent_id,
        timestamp=event.timestamp,
        kind=event.kind.value,
        payload=event.payload_dict(),
        cost=event.cost,
    )


def _to_event(record: TimelineEventRecord) -> TimelineEvent:
    return TimelineEvent.model_validate(
        {
            "id": record.id,
            "seq": record.seq,
            "agent_id": record.agent_id,
            "timestamp": record.timestamp,
            "kind": record.kind,
            "payload": dict(record.payload or {}),
            "cost": record.cost,
        }
    )


def _kind_values(kinds: Optional[Sequence[Union[EventKind, str]]]) -> Optional[List[str]]:
    if not kinds:
        return None
    values = []
    for kind in kinds:
        try:
            values.append(EventKind(kind).value)
        except ValueError as e:
            raise ValidationError(f"Unknown event kind: '{kind}'", fields=["kinds"]) from e
    return values


class EventStore:
    """Append-only event log on top of an ``EventRecordStore``.

    ``stats`` results are cached per agent together with the agent's record
    watermark. A cached entry is only served while the watermark in the
    database is unchanged, so writes made through another store over the same
    database are seen too. At most ``stats_cache_size`` agents are kept; the
    least recently used entry is evicted first.
    """

    def __init__(self, records: EventRecordStore, config: Optional[TimelineConfig] = None) -> None:
        self.records = records
        self.config = config or TimelineConfig()
        self._stats_cache: Dict[str, Tuple[AgentWatermark, EventStats]] = {}
        self._local_writes = 0

    def _invalidate(self, agent_id: str) -> None:
        self._local_writes += 1
        self._stats_cache.pop(agent_id, None)

    def _remember(self, agent_id: str, watermark: AgentWatermark, stats: EventStats) -> None:
        self._stats_cache.pop(agent_id, None)
        while self._stats_cache and len(self._stats_cache) >= self.config.stats_cache_size:
            self._stats_cache.pop(next(iter(self._stats_cache)))
        self._stats_cache[agent_id] = (watermark, stats)

    def _check_limit(self, limit: int, maximum: int) -> int:
        if limit < 1 or limit > maximum:
            raise ValidationError(f"limit must be between 1 and {maximum}, got {limit}", fields=["limit"])
        return limit

    async def append(self, event: Union[NewEvent, Mapping[str, Any]]) -> str:
        """Validate and persist ``event``; return its new id.

        The event is visible to range queries of its agent once this returns.
        """
        new_event = _coerce_event(event)
        event_id = str(uuid4())
        stored_id = await self.records.insert(_to_record(new_event, event_id))
        self._invalidate(new_event.agent_id)

        logger.debug(
            f"Appended event {stored_id} agent={new_event.agent_id} kind={new_event.kind.value} "
            f"ts={new_event.timestamp}"
        )
        monitoring.log_event_appended(new_event.agent_id, stored_id, new_event.kind.value, new_event.cost)
        return stored_id

    async def get_by_id(self, event_id: str) -> Optional[TimelineEvent]:
        record = await self.records.get_by_id(event_id)
        return _to_event(record) if record is not None else None

    async def list_by_agent(
        self,
        agent_id: str,
        *,
        kinds: Optional[Sequence[Union[EventKind, str]]] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        limit: Optional[int] = None,
        order: Union[SortOrder, str] = SortOrder.asc,
    ) -> List[TimelineEvent]:
        """List one agent's events.

        Filters combine with AND; time bounds are inclusive. ``limit`` defaults
        to ``default_list_limit`` and may not exceed ``max_list_limit``.
        """
        if not agent_id:
            raise ValidationError("agent_id is required", fields=["agent_id"])
        if start_time is not None and end_time is not None and start_time > end_time:
            raise ValidationError(
                f"start_time {start_time} is after end_time {end_time}", fields=["start_time", "end_time"]
            )
        try:
            sort = SortOrder(order)
        except ValueError as e:
            raise ValidationError(f"Unknown order: '{order}'", fields=["order"]) from e
        page = self._check_limit(
            self.config.default_list_limit if limit is None else limit, self.config.max_list_limit
        )

        records = await self.records.query_by_index(
            agent_id,
            start_time=start_time,
            end_time=end_time,
            kinds=_kind_values(kinds),
            order=sort.value,
            limit=page,
        )
        return [_to_event(record) for record in records]

    async def list_from(self, agent_id: str, start_time: int, limit: Optional[int] = None) -> List[TimelineEvent]:
        """Events at or after ``start_time``, ascending."""
        return await self.list_by_agent(
            agent_id,
            start_time=start_time,
            limit=self.config.list_from_limit if limit is None else limit,
        )

    async def read_window(
        self,
        agent_id: str,
        *,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        kinds: Optional[Sequence[Union[EventKind, str]]] = None,
        limit: int,
    ) -> List[TimelineEvent]:
        """Ascending range read for replay seeding.

        Unlike ``list_by_agent`` the page size is bounded by the caller's own
        safety limit instead of ``max_list_limit``.
        """
        if limit < 1:
            raise ValidationError(f"limit must be positive, got {limit}", fields=["limit"])
        records = await self.records.query_by_index(
            agent_id,
            start_time=start_time,
            end_time=end_time,
            kinds=_kind_values(kinds),
            order=SortOrder.asc.value,
            limit=limit,
        )
        return [_to_event(record) for record in records]

    async def cleanup(self, agent_id: str, older_than: int) -> int:
        """Permanently delete the agent's events with ``timestamp < older_than``.

        Returns:
            Number of deleted events
        """
        if not agent_id:
            raise ValidationError("cleanup requires an agent_id", fields=["agent_id"])
        if older_than is None:
            raise ValidationError("cleanup requires an older_than cutoff", fields=["older_than"])

        deleted = await self.records.delete_many(agent_id, older_than)
        self._invalidate(agent_id)

        logger.info(f"Cleanup removed {deleted} events for agent={agent_id} older_than={older_than}")
        monitoring.log_cleanup(agent_id, older_than, deleted)
        return deleted

    async def stats(self, agent_id: str) -> EventStats:
        """Totals, per-kind counts and time bounds of an agent's events."""
        if not agent_id:
            raise ValidationError("agent_id is required", fields=["agent_id"])
        watermark: Optional[AgentWatermark] = None
        if self.config.stats_cache_enabled:
            # Read before aggregating: a write racing the aggregate changes the watermark.
            watermark = await self.records.watermark(agent_id)
            cached = self._stats_cache.get(agent_id)
            if cached is not None and cached[0] == watermark:
                self._remember(agent_id, watermark, cached[1])
                return cached[1]

        writes = self._local_writes
        aggregates = await self.records.aggregate_by_kind(agent_id)

        total_cost = 0.0
        for aggregate in aggregates:
            total_cost += aggregate.total_cost
        stats = EventStats(
            agent_id=agent_id,
            total_events=sum(a.count for a in aggregates),
            total_cost=total_cost,
            event_type_counts={a.kind: a.count for a in aggregates},
            cost_by_kind={a.kind: a.total_cost for a in aggregates},
            oldest_event_time=min((a.oldest_timestamp for a in aggregates), default=None),
            newest_event_time=max((a.newest_timestamp for a in aggregates), default=None),
        )

        if watermark is not None and self._local_writes == writes:
            self._remember(agent_id, watermark, stats)
        return stats
