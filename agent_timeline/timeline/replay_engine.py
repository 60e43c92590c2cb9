"""Replay engine: reconstruct an agent at a past timestamp and optionally re-run its model call.

Each replay walks a small state machine::

    seeding -> reconstructing -> (original_only | re_executing) -> completed | failed

- ``seeding`` loads the agent's events up to the target, bounded by
  ``replay_max_events``; a larger window raises ``ReplayTooLargeError``.
- ``reconstructing`` folds them with the reducer and locates the latest
  ``LLMRequest`` at or before the target together with its stored response.
- ``re_executing`` sends the transcript that preceded that request, plus the
  request itself, to the ``ModelInvoker`` under the alternate configuration.

Any error moves the replay to ``failed`` and is raised as ``ReplayFailedError``
carrying the stage and cause. Once the stored response is known it is kept on
the error, and once a model call was dispatched the incurred cost is reported
as ``"unknown"``. The model call is attempted once; retrying is the caller's
decision. Stored events are only ever read.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from agent_timeline.core import monitoring
from agent_timeline.core.logging_config import get_logger

from .config import TimelineConfig
from .errors import NotFoundError, ReplayFailedError, ReplayTimeoutError, ReplayTooLargeError, ValidationError
from .event_store import EventStore
from .interfaces import ModelInvoker
from .reducer import reduce
from .schemas.events import EventKind, LLMRequestPayload, LLMResponsePayload, TimelineEvent
from .schemas.replay import AlternateConfig, ReplayResult, ReplayStage, ResponseSnapshot, ScenarioOutcome
from .schemas.state import AgentState, TranscriptEntry, TranscriptRole

logger = get_logger(__name__)


@dataclass
class _ReplayRun:
    agent_id: str
    target_timestamp: int
    alternate_config: Optional[AlternateConfig]
    stage: ReplayStage = ReplayStage.seeding
    original_response: Optional[ResponseSnapshot] = None
    dispatched: bool = False

    def enter(self, stage: ReplayStage) -> None:
        logger.debug(f"Replay agent={self.agent_id} ts={self.target_timestamp}: {self.stage.value} -> {stage.value}")
        self.stage = stage


def latest_request(events: Sequence[TimelineEvent]) -> Optional[TimelineEvent]:
    """Last ``LLMRequest`` of an ascending event sequence."""
    for event in reversed(events):
        if event.kind == EventKind.llm_request:
            return event
    return None


def pair_response(request: TimelineEvent, candidates: Sequence[TimelineEvent]) -> Optional[TimelineEvent]:
    """Find the stored response to ``request`` among ascending ``candidates``.

    A response naming the request through ``request_id`` wins. Otherwise the
    first unlabeled response after the request, before any later request, is
    taken.
    """
    seen_request = False
    superseded = False
    fallback: Optional[TimelineEvent] = None
    for event in candidates:
        if event.id == request.id:
            seen_request = True
            continue
        if not seen_request:
            continue
        payload = event.payload
        if isinstance(payload, LLMResponsePayload):
            if payload.request_id == request.id:
                return event
            if payload.request_id is None and fallback is None and not superseded:
                fallback = event
        elif isinstance(payload, LLMRequestPayload):
            superseded = True
    return fallback


def response_snapshot(event: TimelineEvent) -> ResponseSnapshot:
    payload = event.payload
    if not isinstance(payload, LLMResponsePayload):
        raise ValidationError(f"Event {event.id} is not an LLMResponse", fields=["kind"])
    return ResponseSnapshot(
        content=payload.content,
        cost=event.cost,
        prompt_tokens=payload.prompt_tokens,
        completion_tokens=payload.completion_tokens,
        model=payload.model,
        provider=payload.provider,
        event_id=event.id,
    )


def context_for(state: AgentState, request: TimelineEvent) -> List[TranscriptEntry]:
    """Transcript up to and including ``request``, the context a re-execution answers."""
    for index, entry in enumerate(state.transcript):
        if entry.event_id == request.id:
            return list(state.transcript[: index + 1])
    payload = request.payload
    if not isinstance(payload, LLMRequestPayload):
        raise ValidationError(f"Event {request.id} is not an LLMRequest", fields=["kind"])
    earlier = [entry for entry in state.transcript if entry.timestamp <= request.timestamp]
    return earlier + [
        TranscriptEntry(
            role=TranscriptRole.user,
            content=payload.prompt,
            event_id=request.id,
            timestamp=request.timestamp,
            model=payload.model,
        )
    ]


class ReplayEngine:
    """Runs replays against an ``EventStore`` and an optional ``ModelInvoker``."""

    def __init__(
        self,
        store: EventStore,
        invoker: Optional[ModelInvoker] = None,
        config: Optional[TimelineConfig] = None,
    ) -> None:
        self.store = store
        self.invoker = invoker
        self.config = config or store.config

    async def _seed(self, agent_id: str, target_timestamp: int) -> List[TimelineEvent]:
        bound = self.config.replay_max_events
        events = await self.store.read_window(agent_id, end_time=target_timestamp, limit=bound + 1)
        if len(events) > bound:
            raise ReplayTooLargeError(agent_id, target_timestamp, bound)
        return events

    async def state_at(self, agent_id: str, target_timestamp: int) -> AgentState:
        """Agent state as of ``target_timestamp`` (seeding and reconstructing only)."""
        if not agent_id:
            raise ValidationError("agent_id is required", fields=["agent_id"])
        events = await self._seed(agent_id, target_timestamp)
        return reduce(events, target_timestamp)

    async def replay(
        self,
        agent_id: str,
        target_timestamp: int,
        alternate_config: Optional[AlternateConfig] = None,
        *,
        timeout: Optional[float] = None,
    ) -> ReplayResult:
        """Replay ``agent_id`` at ``target_timestamp``.

        Args:
            agent_id: Agent whose timeline is replayed
            target_timestamp: Point in time (ms epoch) to reconstruct, inclusive
            alternate_config: Re-execute the located request under this configuration
            timeout: Seconds before the replay is abandoned; defaults to
                ``replay_timeout_seconds``

        Returns:
            ReplayResult with the stored response and, when re-executed, the new one

        Raises:
            ValidationError: the request itself is malformed
            ReplayFailedError: any stage failed or the timeout expired
        """
        if not agent_id:
            raise ValidationError("agent_id is required", fields=["agent_id"])
        if alternate_config is not None and self.invoker is None:
            raise ValidationError("Re-execution requested but no model invoker is configured")

        limit = timeout if timeout is not None else self.config.replay_timeout_seconds
        run = _ReplayRun(agent_id=agent_id, target_timestamp=target_timestamp, alternate_config=alternate_config)
        logger.info(
            f"Replay started agent={agent_id} ts={target_timestamp} "
            f"alternate={alternate_config.label if alternate_config else None}"
        )
        monitoring.log_replay_started(
            agent_id, target_timestamp, alternate_config.model if alternate_config else None
        )
        started = time.perf_counter()

        try:
            if limit:
                result = await asyncio.wait_for(self._execute(run), timeout=limit)
            else:
                result = await self._execute(run)
        except asyncio.TimeoutError as e:
            raise self._fail(run, ReplayTimeoutError(limit), started) from e
        except asyncio.CancelledError:
            logger.warning(
                f"Replay cancelled agent={agent_id} ts={target_timestamp} during {run.stage.value}"
                + ("; model call cost unknown" if run.dispatched else "")
            )
            raise
        except Exception as e:
            raise self._fail(run, e, started) from e

        duration_ms = (time.perf_counter() - started) * 1000
        logger.info(f"Replay completed agent={agent_id} ts={target_timestamp} in {duration_ms:.1f}ms")
        monitoring.log_replay_completed(agent_id, ReplayStage.completed.value, duration_ms, result.cost_delta)
        return result

    def _fail(self, run: _ReplayRun, cause: BaseException, started: float) -> ReplayFailedError:
        failed_stage = run.stage
        run.enter(ReplayStage.failed)
        error = ReplayFailedError(
            failed_stage.value,
            cause,
            original_response=run.original_response,
            incurred_cost="unknown" if run.dispatched else None,
        )
        logger.error(f"Replay failed agent={run.agent_id} ts={run.target_timestamp}: {error.message}")
        monitoring.log_error(
            error.cause_kind,
            error.message,
            {"agent_id": run.agent_id, "stage": failed_stage.value},
        )
        monitoring.log_replay_completed(
            run.agent_id, ReplayStage.failed.value, (time.perf_counter() - started) * 1000
        )
        return error

    async def _execute(self, run: _ReplayRun) -> ReplayResult:
        events = await self._seed(run.agent_id, run.target_timestamp)

        run.enter(ReplayStage.reconstructing)
        state = reduce(events, run.target_timestamp)
        request = latest_request(events)
        if request is not None:
            candidates = await self.store.read_window(
                run.agent_id,
                start_time=request.timestamp,
                kinds=[EventKind.llm_request, EventKind.llm_response],
                limit=self.config.replay_pairing_window,
            )
            response = pair_response(request, candidates)
            if response is not None:
                run.original_response = response_snapshot(response)

        alternate = run.alternate_config
        if alternate is None:
            run.enter(ReplayStage.original_only)
            run.enter(ReplayStage.completed)
            return ReplayResult(
                source_agent_id=run.agent_id,
                replayed_from_timestamp=run.target_timestamp,
                stage=ReplayStage.completed,
                request_event_id=request.id if request else None,
                original_response=run.original_response,
                state=state,
            )

        run.enter(ReplayStage.re_executing)
        if request is None:
            raise NotFoundError("LLMRequest", f"{run.agent_id}@{run.target_timestamp}")
        request_payload = request.payload
        if not isinstance(request_payload, LLMRequestPayload):
            raise ValidationError(f"Event {request.id} is not an LLMRequest", fields=["kind"])
        effective = alternate.model_copy(
            update={"system_prompt": alternate.system_prompt or request_payload.system_prompt or state.system_prompt}
        )

        run.dispatched = True
        try:
            invocation = await self.invoker.invoke(context_for(state, request), effective)
        except ValidationError:
            # Rejected before any model call.
            run.dispatched = False
            raise
        replayed = invocation.to_snapshot()

        original = run.original_response
        run.enter(ReplayStage.completed)
        return ReplayResult(
            source_agent_id=run.agent_id,
            replayed_from_timestamp=run.target_timestamp,
            stage=ReplayStage.completed,
            request_event_id=request.id,
            original_response=original,
            replayed_response=replayed,
            cost_delta=original.cost - replayed.cost if original is not None else None,
            alternate_config=alternate,
            state=state,
        )

    async def replay_scenarios(
        self,
        agent_id: str,
        target_timestamp: int,
        configs: Sequence[AlternateConfig],
        *,
        timeout: Optional[float] = None,
    ) -> List[ScenarioOutcome]:
        """Replay one timestamp under several configurations concurrently.

        Returns one outcome per config, in input order; a failed scenario carries
        its structured error instead of a result.
        """
        if not configs:
            raise ValidationError("At least one alternate configuration is required", fields=["configs"])

        async def _one(config: AlternateConfig) -> ScenarioOutcome:
            try:
                result = await self.replay(agent_id, target_timestamp, config, timeout=timeout)
            except ReplayFailedError as e:
                return ScenarioOutcome(config=config, error=e.to_dict())
            return ScenarioOutcome(config=config, result=result)

        return list(await asyncio.gather(*(_one(config) for config in configs)))
