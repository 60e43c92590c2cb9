"""
Timeline Event Endpoints.

This module exposes the event store: appending events, listing an agent's
timeline, point lookups, aggregate stats, point-in-time state and retention
cleanup.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Query, status

from agent_timeline.core.logging_config import get_logger
from agent_timeline.server.schemas import AppendEventResponse, CleanupResponse
from agent_timeline.server.services.deps import TimelineServiceDep
from agent_timeline.timeline.schemas import AgentState, EventKind, EventStats, SortOrder, StateDiff, TimelineEvent

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/",
    response_model=AppendEventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Append Event",
    description="Validate and append one event to an agent's timeline.",
)
async def append_event(service: TimelineServiceDep, event: Dict[str, Any] = Body(...)):
    """
    Append an event.

    The body is ``{agent_id, timestamp, kind, payload, cost}``; the payload is
    validated against the fields of its kind. Returns the new event id.
    """
    event_id = await service.append_event(event)
    return AppendEventResponse(id=event_id)


@router.get(
    "/",
    response_model=List[TimelineEvent],
    summary="List Events",
    description="List an agent's events filtered by kind and time range.",
)
async def list_events(
    service: TimelineServiceDep,
    agent_id: str = Query(..., description="Owning agent."),
    kind: Optional[List[EventKind]] = Query(None, description="Kinds to include (repeatable)."),
    start_time: Optional[int] = Query(None, description="Inclusive lower bound (ms epoch)."),
    end_time: Optional[int] = Query(None, description="Inclusive upper bound (ms epoch)."),
    limit: Optional[int] = Query(None, description="Maximum number of events."),
    order: SortOrder = Query(SortOrder.asc, description="Timestamp order."),
):
    """
    List events.

    Events are ordered by timestamp, then by append order for equal timestamps.
    """
    return await service.list_events(
        agent_id, kinds=kind, start_time=start_time, end_time=end_time, limit=limit, order=order
    )


@router.delete(
    "/",
    response_model=CleanupResponse,
    summary="Cleanup Events",
    description="Permanently delete an agent's events older than a cutoff.",
)
async def cleanup_events(
    service: TimelineServiceDep,
    agent_id: str = Query(..., min_length=1, description="Agent whose history is deleted."),
    older_than: int = Query(..., description="Events with a timestamp strictly below this are removed."),
):
    """
    Retention cleanup.

    This is irreversible and always scoped to one agent.
    """
    deleted = await service.cleanup_events(agent_id, older_than)
    logger.info(f"Cleanup via API removed {deleted} events for agent={agent_id}")
    return CleanupResponse(agent_id=agent_id, older_than=older_than, deleted_count=deleted)


@router.get(
    "/stats/{agent_id}",
    response_model=EventStats,
    summary="Event Stats",
    description="Totals, per-kind counts and time bounds of an agent's timeline.",
)
async def get_event_stats(service: TimelineServiceDep, agent_id: str):
    return await service.get_event_stats(agent_id)


@router.get(
    "/state/{agent_id}",
    response_model=AgentState,
    summary="State At",
    description="Reconstruct an agent's state as of a timestamp.",
)
async def get_state(
    service: TimelineServiceDep,
    agent_id: str,
    as_of: int = Query(..., description="Point in time (ms epoch), inclusive."),
):
    return await service.state_at(agent_id, as_of)


@router.get(
    "/state/{agent_id}/diff",
    response_model=StateDiff,
    summary="State Diff",
    description="Path-level difference of an agent's state between two timestamps.",
)
async def get_state_diff(
    service: TimelineServiceDep,
    agent_id: str,
    from_timestamp: int = Query(..., alias="from"),
    to_timestamp: int = Query(..., alias="to"),
):
    return await service.diff_states_between(agent_id, from_timestamp, to_timestamp, ignore_paths={"as_of"})


@router.get(
    "/{event_id}",
    response_model=TimelineEvent,
    summary="Get Event",
    description="Fetch one event by id.",
)
async def get_event(service: TimelineServiceDep, event_id: str):
    return await service.get_event(event_id)
