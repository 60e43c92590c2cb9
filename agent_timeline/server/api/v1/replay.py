"""
Replay Endpoints.

This module exposes the replay engine and the comparator: replaying a
timestamp with an optional alternate model, comparing several alternates at
once, and comparing two arbitrary responses.
"""

from fastapi import APIRouter

from agent_timeline.core.logging_config import get_logger
from agent_timeline.server.schemas import (
    CompareRequest,
    CompareResponse,
    ReplayRequest,
    ReplayResponse,
    ScenarioReplayRequest,
    ScenarioReplayResponse,
)
from agent_timeline.server.services.deps import TimelineServiceDep
from agent_timeline.timeline.comparator import batch_compare, compare_replay, format_comparison

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/",
    response_model=ReplayResponse,
    summary="Replay",
    description="Reconstruct an agent at a timestamp and optionally re-execute its model call.",
)
async def replay(service: TimelineServiceDep, request: ReplayRequest):
    """
    Run one replay.

    Without ``alternate_config`` only the stored response is returned. With it,
    the located request is sent once to the alternate model; failures are
    returned as a structured ``ReplayFailedError`` that still carries the
    stored response.
    """
    result = await service.replay(
        request.agent_id,
        request.target_timestamp,
        request.alternate_config,
        timeout=request.timeout_seconds,
    )
    comparison = None
    if request.compare and result.original_response is not None and result.replayed_response is not None:
        comparison = compare_replay(result)
    return ReplayResponse(result=result, comparison=comparison)


@router.post(
    "/scenarios",
    response_model=ScenarioReplayResponse,
    summary="Replay Scenarios",
    description="Replay one timestamp under several alternate configurations concurrently.",
)
async def replay_scenarios(service: TimelineServiceDep, request: ScenarioReplayRequest):
    outcomes = await service.replay_scenarios(
        request.agent_id,
        request.target_timestamp,
        request.configs,
        timeout=request.timeout_seconds,
    )
    pairs = [
        (outcome.result.original_response, outcome.result.replayed_response)
        for outcome in outcomes
        if outcome.result is not None
        and outcome.result.original_response is not None
        and outcome.result.replayed_response is not None
    ]
    logger.debug(f"Scenario replay for agent={request.agent_id}: {len(pairs)}/{len(outcomes)} comparable")
    return ScenarioReplayResponse(outcomes=outcomes, batch=batch_compare(pairs))


@router.post(
    "/compare",
    response_model=CompareResponse,
    summary="Compare Responses",
    description="Cost, token and text comparison of two responses.",
)
async def compare_responses(service: TimelineServiceDep, request: CompareRequest):
    comparison = service.compare(request.original, request.replayed)
    return CompareResponse(comparison=comparison, report=format_comparison(comparison))
