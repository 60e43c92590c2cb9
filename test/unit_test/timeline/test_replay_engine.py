"""Unit tests for the replay engine state machine."""

import asyncio
from typing import Sequence

import pytest

from agent_timeline.timeline.comparator import compare_replay
from agent_timeline.timeline.config import TimelineConfig
from agent_timeline.timeline.errors import (
    NotFoundError,
    ProviderError,
    RateLimitError,
    ReplayFailedError,
    ReplayTimeoutError,
    ReplayTooLargeError,
    ValidationError,
)
from agent_timeline.timeline.event_store import EventStore
from agent_timeline.timeline.reducer import reduce
from agent_timeline.timeline.invoker import PydanticAIModelInvoker
from agent_timeline.timeline.replay_engine import (
    ReplayEngine,
    context_for,
    latest_request,
    pair_response,
    response_snapshot,
)
from agent_timeline.timeline.schemas import (
    AlternateConfig,
    InvocationResult,
    ReplayStage,
    TimelineEvent,
    TokenUsage,
    TranscriptEntry,
    TranscriptRole,
)

ALTERNATE = AlternateConfig(model="claude-sonnet-4-5", provider="anthropic")


async def _seed_conversation(store, events):
    """One finished exchange followed by a second request and its response."""
    ids = {}
    ids["request_1"] = await store.append(events.request(1000, prompt="Find revenue", system_prompt="You are an analyst"))
    ids["response_1"] = await store.append(events.response(1100, content="Revenue was $10M", cost=0.05))
    ids["tool"] = await store.append(events.tool_call(1200))
    ids["request_2"] = await store.append(events.request(1300, prompt="Now profit?"))
    ids["response_2"] = await store.append(events.response(1400, content="Profit was $2M", cost=0.03))
    return ids


class TestReplayWithoutAlternate:
    async def test_returns_stored_response(self, replay_engine, store, events, fake_invoker):
        ids = await _seed_conversation(store, events)

        result = await replay_engine.replay("agent-1", 1150)

        assert result.stage == ReplayStage.completed
        assert result.request_event_id == ids["request_1"]
        assert result.original_response.content == "Revenue was $10M"
        assert result.original_response.event_id == ids["response_1"]
        assert result.replayed_response is None
        assert result.cost_delta is None
        assert result.state.event_count == 2
        assert fake_invoker.calls == []

    async def test_response_after_target_is_still_paired(self, replay_engine, store, events):
        ids = await _seed_conversation(store, events)

        result = await replay_engine.replay("agent-1", 1300)

        assert result.request_event_id == ids["request_2"]
        assert result.original_response.event_id == ids["response_2"]
        assert result.state.transcript[-1].content == "Now profit?"

    async def test_no_events(self, replay_engine):
        result = await replay_engine.replay("agent-1", 5000)

        assert result.stage == ReplayStage.completed
        assert result.request_event_id is None
        assert result.original_response is None
        assert result.state.event_count == 0

    async def test_replay_does_not_modify_events(self, replay_engine, store, events):
        await _seed_conversation(store, events)
        before = [e.model_dump() for e in await store.list_by_agent("agent-1")]

        await replay_engine.replay("agent-1", 1500, ALTERNATE)

        assert [e.model_dump() for e in await store.list_by_agent("agent-1")] == before

    async def test_same_target_gives_identical_state(self, replay_engine, store, events):
        await _seed_conversation(store, events)

        first = await replay_engine.replay("agent-1", 1250)
        second = await replay_engine.replay("agent-1", 1250)

        assert first.state.model_dump_json() == second.state.model_dump_json()


class TestReplayWithAlternate:
    async def test_re_executes_with_context_up_to_request(self, replay_engine, store, events, fake_invoker):
        ids = await _seed_conversation(store, events)

        result = await replay_engine.replay("agent-1", 1350, ALTERNATE)

        assert len(fake_invoker.calls) == 1
        transcript, config = fake_invoker.calls[0]
        assert [(e.role, e.content) for e in transcript] == [
            (TranscriptRole.user, "Find revenue"),
            (TranscriptRole.assistant, "Revenue was $10M"),
            (TranscriptRole.user, "Now profit?"),
        ]
        assert config.model == "claude-sonnet-4-5"
        assert config.system_prompt == "You are an analyst"

        assert result.request_event_id == ids["request_2"]
        assert result.original_response.cost == pytest.approx(0.03)
        assert result.replayed_response.content == fake_invoker.content
        assert result.cost_delta == pytest.approx(0.03 - fake_invoker.cost)
        assert result.alternate_config == ALTERNATE

    async def test_alternate_system_prompt_wins(self, replay_engine, store, events, fake_invoker):
        await _seed_conversation(store, events)
        config = ALTERNATE.model_copy(update={"system_prompt": "Answer in French"})

        await replay_engine.replay("agent-1", 1050, config)

        assert fake_invoker.calls[0][1].system_prompt == "Answer in French"

    async def test_cost_delta_and_savings(self, replay_engine, store, events, fake_invoker):
        await store.append(events.event("LLMRequest", 100, {"prompt": "hi", "model": "gpt-4o"}, agent_id="a1"))
        await store.append(
            events.event("LLMResponse", 110, {"content": "hello", "model": "gpt-4o"}, cost=0.002, agent_id="a1")
        )
        await store.append(events.event("ToolCall", 120, {"tool_name": "search"}, agent_id="a1"))
        fake_invoker.cost = 0.0005

        result = await replay_engine.replay("a1", 115, AlternateConfig(model="gpt-4o-mini"))
        comparison = compare_replay(result)

        assert result.cost_delta == pytest.approx(0.0015)
        assert comparison.cost_savings == pytest.approx(0.0015)
        assert comparison.cost_savings_percent == pytest.approx(75.0)

    async def test_without_stored_response(self, replay_engine, store, events):
        await store.append(events.request(1000))

        result = await replay_engine.replay("agent-1", 1000, ALTERNATE)

        assert result.original_response is None
        assert result.replayed_response is not None
        assert result.cost_delta is None

    async def test_requires_invoker(self, store):
        engine = ReplayEngine(store)

        with pytest.raises(ValidationError):
            await engine.replay("agent-1", 1000, ALTERNATE)

    async def test_requires_agent_id(self, replay_engine):
        with pytest.raises(ValidationError):
            await replay_engine.replay("", 1000)


class TestReplayFailures:
    async def test_no_request_before_target(self, replay_engine, store, events, fake_invoker):
        await store.append(events.decision(500))
        await store.append(events.request(1000))

        with pytest.raises(ReplayFailedError) as exc_info:
            await replay_engine.replay("agent-1", 800, ALTERNATE)

        error = exc_info.value
        assert error.stage == ReplayStage.re_executing.value
        assert isinstance(error.cause, NotFoundError)
        assert error.incurred_cost is None
        assert fake_invoker.calls == []

    async def test_provider_error_keeps_original_response(self, replay_engine, store, events, fake_invoker):
        await _seed_conversation(store, events)
        fake_invoker.error = RateLimitError("claude-sonnet-4-5", "slow down", status_code=429)

        with pytest.raises(ReplayFailedError) as exc_info:
            await replay_engine.replay("agent-1", 1500, ALTERNATE)

        error = exc_info.value
        assert error.stage == "re_executing"
        assert error.cause_kind == "RateLimitError"
        assert error.incurred_cost == "unknown"
        assert error.original_response.content == "Profit was $2M"
        data = error.to_dict()
        assert data["kind"] == "ReplayFailedError"
        assert data["cause"]["kind"] == "RateLimitError"
        assert data["original_response"]["content"] == "Profit was $2M"

    async def test_config_rejected_by_invoker_incurs_no_cost(self, store, events):
        await _seed_conversation(store, events)
        engine = ReplayEngine(store, PydanticAIModelInvoker())

        with pytest.raises(ReplayFailedError) as exc_info:
            await engine.replay("agent-1", 1500, AlternateConfig(model="mystery-model"))

        error = exc_info.value
        assert error.stage == "re_executing"
        assert isinstance(error.cause, ValidationError)
        assert error.incurred_cost is None
        assert error.original_response.content == "Profit was $2M"

    async def test_timeout(self, replay_engine, store, events, fake_invoker):
        await _seed_conversation(store, events)
        fake_invoker.delay = 1.0

        with pytest.raises(ReplayFailedError) as exc_info:
            await replay_engine.replay("agent-1", 1500, ALTERNATE, timeout=0.05)

        assert isinstance(exc_info.value.cause, ReplayTimeoutError)
        assert exc_info.value.stage == "re_executing"
        assert exc_info.value.incurred_cost == "unknown"

    async def test_default_timeout_from_config(self, store, events, fake_invoker):
        await _seed_conversation(store, events)
        fake_invoker.delay = 1.0
        engine = ReplayEngine(store, fake_invoker, TimelineConfig(replay_timeout_seconds=0.05))

        with pytest.raises(ReplayFailedError) as exc_info:
            await engine.replay("agent-1", 1500, ALTERNATE)

        assert exc_info.value.cause_kind == "ReplayTimeoutError"

    async def test_too_many_events(self, repository, events, fake_invoker):
        store = EventStore(repository)
        for ts in range(5):
            await store.append(events.decision(ts))
        engine = ReplayEngine(store, fake_invoker, TimelineConfig(replay_max_events=3))

        with pytest.raises(ReplayFailedError) as exc_info:
            await engine.replay("agent-1", 100)

        assert exc_info.value.stage == "seeding"
        assert isinstance(exc_info.value.cause, ReplayTooLargeError)
        assert exc_info.value.original_response is None

    async def test_bound_is_inclusive(self, repository, events, fake_invoker):
        store = EventStore(repository)
        for ts in range(3):
            await store.append(events.decision(ts))
        engine = ReplayEngine(store, fake_invoker, TimelineConfig(replay_max_events=3))

        result = await engine.replay("agent-1", 100)

        assert result.state.event_count == 3

    async def test_cancellation_propagates(self, replay_engine, store, events, fake_invoker):
        await _seed_conversation(store, events)
        fake_invoker.delay = 5.0

        task = asyncio.create_task(replay_engine.replay("agent-1", 1500, ALTERNATE, timeout=None))
        for _ in range(200):
            if fake_invoker.calls:
                break
            await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task


class TestStateAt:
    async def test_state_at(self, replay_engine, store, events):
        await _seed_conversation(store, events)

        state = await replay_engine.state_at("agent-1", 1200)

        assert state.event_count == 3
        assert len(state.tool_calls) == 1
        assert state.cumulative_cost == pytest.approx(0.05)

    async def test_state_at_too_large_raises_directly(self, repository, events):
        store = EventStore(repository)
        for ts in range(3):
            await store.append(events.decision(ts))
        engine = ReplayEngine(store, config=TimelineConfig(replay_max_events=2))

        with pytest.raises(ReplayTooLargeError):
            await engine.state_at("agent-1", 100)


class _PerModelInvoker:
    """Fails for one model and answers for every other."""

    def __init__(self, failing_model: str) -> None:
        self.failing_model = failing_model

    async def invoke(self, transcript: Sequence[TranscriptEntry], config: AlternateConfig) -> InvocationResult:
        if config.model == self.failing_model:
            raise ProviderError(config.model, "bad gateway", status_code=502)
        return InvocationResult(
            content=f"answer from {config.model}",
            usage=TokenUsage(prompt_tokens=10, completion_tokens=5),
            cost=0.001,
            model=config.model,
        )


class TestReplayScenarios:
    async def test_outcomes_follow_config_order(self, store, events):
        await _seed_conversation(store, events)
        engine = ReplayEngine(store, _PerModelInvoker("gpt-4o"))
        configs = [AlternateConfig(model="gpt-4o-mini"), AlternateConfig(model="gpt-4o"), ALTERNATE]

        outcomes = await engine.replay_scenarios("agent-1", 1500, configs)

        assert [o.config.model for o in outcomes] == ["gpt-4o-mini", "gpt-4o", "claude-sonnet-4-5"]
        assert [o.succeeded for o in outcomes] == [True, False, True]
        assert outcomes[0].result.replayed_response.content == "answer from gpt-4o-mini"
        assert outcomes[1].error["kind"] == "ReplayFailedError"
        assert outcomes[1].error["cause"]["kind"] == "ProviderError"

    async def test_requires_configs(self, replay_engine):
        with pytest.raises(ValidationError):
            await replay_engine.replay_scenarios("agent-1", 1000, [])


def _event(event_id: str, timestamp: int, kind: str, payload: dict) -> TimelineEvent:
    return TimelineEvent.model_validate(
        {"id": event_id, "agent_id": "a", "timestamp": timestamp, "kind": kind, "payload": payload}
    )


class TestPairing:
    def test_latest_request(self):
        events = [
            _event("r1", 1, "LLMRequest", {"prompt": "a", "model": "m"}),
            _event("r2", 2, "LLMRequest", {"prompt": "b", "model": "m"}),
            _event("t", 3, "ToolCall", {"tool_name": "x"}),
        ]

        assert latest_request(events).id == "r2"
        assert latest_request(events[2:]) is None

    def test_labeled_response_wins(self):
        request = _event("r1", 1, "LLMRequest", {"prompt": "a", "model": "m"})
        candidates = [
            request,
            _event("x", 2, "LLMResponse", {"content": "unlabeled", "model": "m"}),
            _event("y", 3, "LLMResponse", {"content": "labeled", "model": "m", "request_id": "r1"}),
        ]

        assert pair_response(request, candidates).id == "y"

    def test_response_to_another_request_is_skipped(self):
        request = _event("r1", 1, "LLMRequest", {"prompt": "a", "model": "m"})
        candidates = [
            request,
            _event("x", 2, "LLMResponse", {"content": "for r0", "model": "m", "request_id": "r0"}),
            _event("y", 3, "LLMResponse", {"content": "mine", "model": "m"}),
        ]

        assert pair_response(request, candidates).id == "y"

    def test_unlabeled_response_after_next_request_is_not_paired(self):
        request = _event("r1", 1, "LLMRequest", {"prompt": "a", "model": "m"})
        candidates = [
            request,
            _event("r2", 2, "LLMRequest", {"prompt": "b", "model": "m"}),
            _event("x", 3, "LLMResponse", {"content": "for r2", "model": "m"}),
        ]

        assert pair_response(request, candidates) is None

    async def test_parallel_requests_pair_by_label(self, replay_engine, store, events):
        first = await store.append(events.request(1000, prompt="first"))
        second = await store.append(events.request(1010, prompt="second"))
        await store.append(events.response(1020, content="answer to second", request_id=second))
        await store.append(events.response(1030, content="answer to first", request_id=first))

        result = await replay_engine.replay("agent-1", 1010)

        assert result.request_event_id == second
        assert result.original_response.content == "answer to second"

    def test_context_for_request_outside_transcript(self):
        request = _event("r9", 50, "LLMRequest", {"prompt": "late", "model": "m"})

        state = reduce([_event("r1", 10, "LLMRequest", {"prompt": "early", "model": "m"})], 40)

        context = context_for(state, request)

        assert [e.content for e in context] == ["early", "late"]

    def test_snapshot_and_context_reject_other_kinds(self):
        tool = _event("t", 3, "ToolCall", {"tool_name": "x"})
        state = reduce([], 40)

        with pytest.raises(ValidationError):
            response_snapshot(tool)
        with pytest.raises(ValidationError):
            context_for(state, tool)
