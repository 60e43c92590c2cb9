"""Timeline service facade.

``TimelineService`` is the single entry point used by the HTTP layer and other
callers. It is constructed explicitly with its collaborators; there is no
process-wide instance. ``create_timeline_service`` wires the SQL-backed
implementation from a database URL.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from sqlalchemy.ext.asyncio import AsyncEngine

from agent_timeline.core.database import create_all, create_engine, create_sessionmaker
from agent_timeline.core.database.repositories import TimelineEventRepository
from agent_timeline.core.logging_config import get_logger

from .comparator import compare
from .config import TimelineConfig
from .errors import NotFoundError
from .event_store import EventStore
from .interfaces import ModelInvoker
from .invoker import PydanticAIModelInvoker
from .pricing import PricingTable
from .replay_engine import ReplayEngine
from .schemas.comparison import ComparisonResult
from .schemas.events import EventKind, EventStats, NewEvent, SortOrder, TimelineEvent
from .schemas.replay import AlternateConfig, ReplayResult, ResponseSnapshot, ScenarioOutcome
from .schemas.state import AgentState, StateDiff
from .state_diff import diff_states

logger = get_logger(__name__)


@dataclass
class TimelineService:
    """Operations exposed to dashboards, CLIs and the HTTP API."""

    store: EventStore
    replay_engine: ReplayEngine
    engine: Optional[AsyncEngine] = None

    async def append_event(self, event: Union[NewEvent, Mapping[str, Any]]) -> str:
        return await self.store.append(event)

    async def get_event(self, event_id: str) -> TimelineEvent:
        event = await self.store.get_by_id(event_id)
        if event is None:
            raise NotFoundError("Event", event_id)
        return event

    async def list_events(
        self,
        agent_id: str,
        *,
        kinds: Optional[Sequence[Union[EventKind, str]]] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        limit: Optional[int] = None,
        order: Union[SortOrder, str] = SortOrder.asc,
    ) -> List[TimelineEvent]:
        return await self.store.list_by_agent(
            agent_id, kinds=kinds, start_time=start_time, end_time=end_time, limit=limit, order=order
        )

    async def list_events_from(self, agent_id: str, start_time: int, limit: Optional[int] = None) -> List[TimelineEvent]:
        return await self.store.list_from(agent_id, start_time, limit)

    async def get_event_stats(self, agent_id: str) -> EventStats:
        return await self.store.stats(agent_id)

    async def cleanup_events(self, agent_id: str, older_than: int) -> int:
        """Irreversibly delete an agent's events older than ``older_than``.

        Whether the caller may do this is decided by the calling layer.
        """
        return await self.store.cleanup(agent_id, older_than)

    async def replay(
        self,
        agent_id: str,
        target_timestamp: int,
        alternate_config: Optional[AlternateConfig] = None,
        *,
        timeout: Optional[float] = None,
    ) -> ReplayResult:
        return await self.replay_engine.replay(agent_id, target_timestamp, alternate_config, timeout=timeout)

    async def replay_scenarios(
        self,
        agent_id: str,
        target_timestamp: int,
        configs: Sequence[AlternateConfig],
        *,
        timeout: Optional[float] = None,
    ) -> List[ScenarioOutcome]:
        return await self.replay_engine.replay_scenarios(agent_id, target_timestamp, configs, timeout=timeout)

    def compare(self, original: ResponseSnapshot, replayed: ResponseSnapshot) -> ComparisonResult:
        return compare(original, replayed)

    async def state_at(self, agent_id: str, timestamp: int) -> AgentState:
        return await self.replay_engine.state_at(agent_id, timestamp)

    async def diff_states_between(
        self,
        agent_id: str,
        from_timestamp: int,
        to_timestamp: int,
        *,
        ignore_paths: Optional[Iterable[str]] = None,
    ) -> StateDiff:
        """What changed in an agent's state between two points in time."""
        before = await self.state_at(agent_id, from_timestamp)
        after = await self.state_at(agent_id, to_timestamp)
        return diff_states(before, after, ignore_paths=ignore_paths)

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()


async def create_timeline_service(
    database_url: str,
    *,
    config: Optional[TimelineConfig] = None,
    invoker: Optional[ModelInvoker] = None,
    pricing: Optional[PricingTable] = None,
    create_tables: bool = True,
) -> TimelineService:
    """Build a SQL-backed ``TimelineService``.

    Args:
        database_url: SQLAlchemy URL; Postgres URLs are normalized to asyncpg
        config: Store and replay limits
        invoker: Model invoker for re-execution; defaults to Pydantic AI
        pricing: Price table for the default invoker
        create_tables: Create missing tables on startup

    Returns:
        A ready service owning its engine
    """
    engine = create_engine(database_url)
    if create_tables:
        await create_all(engine)
    repository = TimelineEventRepository(create_sessionmaker(engine))
    store = EventStore(repository, config)
    replay_engine = ReplayEngine(store, invoker or PydanticAIModelInvoker(pricing), store.config)
    logger.info(f"Timeline service ready (replay_max_events={store.config.replay_max_events})")
    return TimelineService(store=store, replay_engine=replay_engine, engine=engine)
