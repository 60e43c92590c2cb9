"""State reducer: fold an ordered event sequence into an ``AgentState``.

``reduce`` is pure. It reads no clock, draws no randomness and keeps no state
between calls, so the same ordered input always yields an equal state that
serializes to identical bytes.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from .errors import ValidationError
from .schemas.events import (
    AgentDecisionPayload,
    ErrorPayload,
    LLMRequestPayload,
    LLMResponsePayload,
    MemoryOpPayload,
    MemoryOpType,
    TimelineEvent,
    ToolCallPayload,
)
from .schemas.state import (
    AgentState,
    DecisionRecord,
    ErrorRecord,
    ModelUsage,
    ToolCallRecord,
    TranscriptEntry,
    TranscriptRole,
)


def _usage_key(payload: LLMResponsePayload) -> str:
    return f"{payload.provider}/{payload.model}" if payload.provider else payload.model


def reduce(events: Iterable[TimelineEvent], as_of: int) -> AgentState:
    """Fold ``events`` with ``timestamp <= as_of`` into the agent state as of ``as_of``.

    Args:
        events: One agent's events in ``(timestamp, seq)`` order
        as_of: Target timestamp (ms epoch), inclusive

    Returns:
        The reconstructed AgentState

    Raises:
        ValidationError: events belong to several agents or are not in timestamp order
    """
    agent_id: Optional[str] = None
    transcript: List[TranscriptEntry] = []
    system_prompt: Optional[str] = None
    tool_calls: List[ToolCallRecord] = []
    last_decision: Optional[DecisionRecord] = None
    decision_count = 0
    memory: Dict[str, Any] = {}
    errors: List[ErrorRecord] = []
    cumulative_cost = 0.0
    prompt_tokens = 0
    completion_tokens = 0
    usage: Dict[str, ModelUsage] = {}
    event_count = 0
    last_event_id: Optional[str] = None
    previous_timestamp: Optional[int] = None

    for event in events:
        if agent_id is None:
            agent_id = event.agent_id
        elif event.agent_id != agent_id:
            raise ValidationError(f"Cannot reduce events of several agents: '{agent_id}' and '{event.agent_id}'")
        if previous_timestamp is not None and event.timestamp < previous_timestamp:
            raise ValidationError(
                f"Events are out of order: {event.id} at {event.timestamp} follows {previous_timestamp}"
            )
        previous_timestamp = event.timestamp

        if event.timestamp > as_of:
            continue

        event_count += 1
        last_event_id = event.id
        cumulative_cost += event.cost
        payload = event.payload

        if isinstance(payload, LLMRequestPayload):
            if payload.system_prompt is not None:
                system_prompt = payload.system_prompt
            transcript.append(
                TranscriptEntry(
                    role=TranscriptRole.user,
                    content=payload.prompt,
                    event_id=event.id,
                    timestamp=event.timestamp,
                    model=payload.model,
                )
            )
        elif isinstance(payload, LLMResponsePayload):
            transcript.append(
                TranscriptEntry(
                    role=TranscriptRole.assistant,
                    content=payload.content,
                    event_id=event.id,
                    timestamp=event.timestamp,
                    model=payload.model,
                )
            )
            prompt_tokens += payload.prompt_tokens
            completion_tokens += payload.completion_tokens
            key = _usage_key(payload)
            current = usage.get(key, ModelUsage())
            usage[key] = ModelUsage(
                responses=current.responses + 1,
                prompt_tokens=current.prompt_tokens + payload.prompt_tokens,
                completion_tokens=current.completion_tokens + payload.completion_tokens,
                cost=current.cost + event.cost,
            )
        elif isinstance(payload, ToolCallPayload):
            tool_calls.append(
                ToolCallRecord(
                    event_id=event.id,
                    timestamp=event.timestamp,
                    tool_name=payload.qualified_name,
                    arguments=payload.arguments,
                    result=payload.result,
                    error=payload.error,
                    decision_event_id=last_decision.event_id if last_decision else None,
                )
            )
        elif isinstance(payload, AgentDecisionPayload):
            decision_count += 1
            last_decision = DecisionRecord(
                event_id=event.id,
                timestamp=event.timestamp,
                decision=payload.decision,
                rationale=payload.rationale,
                confidence=payload.confidence,
            )
        elif isinstance(payload, MemoryOpPayload):
            if payload.op == MemoryOpType.add:
                memory[payload.key] = payload.value
            else:
                memory.pop(payload.key, None)
        elif isinstance(payload, ErrorPayload):
            errors.append(
                ErrorRecord(
                    event_id=event.id,
                    timestamp=event.timestamp,
                    message=payload.message,
                    recoverable=payload.recoverable,
                )
            )

    return AgentState(
        agent_id=agent_id,
        as_of=as_of,
        transcript=transcript,
        system_prompt=system_prompt,
        tool_calls=tool_calls,
        last_decision=last_decision,
        decision_count=decision_count,
        memory=memory,
        errors=errors,
        cumulative_cost=cumulative_cost,
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        usage_by_model=usage,
        event_count=event_count,
        last_event_id=last_event_id,
    )
