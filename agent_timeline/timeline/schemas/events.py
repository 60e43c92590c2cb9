"""Typed timeline events.

An event is one traceable agent action. ``kind`` selects the payload model:
each payload class carries a literal ``kind`` tag and together they form a
discriminated union, so a payload is always validated against exactly the
fields of its kind.

``NewEvent`` is what the agent runtime appends; ``TimelineEvent`` is what the
store hands back, with the store-assigned ``id`` and ``seq``.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import Field, model_validator

from .base import FrozenSchema


class EventKind(str, Enum):
    llm_request = "LLMRequest"
    llm_response = "LLMResponse"
    tool_call = "ToolCall"
    agent_decision = "AgentDecision"
    memory_op = "MemoryOp"
    error = "Error"


class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


class MemoryOpType(str, Enum):
    add = "add"
    remove = "remove"


class LLMRequestPayload(FrozenSchema):
    kind: Literal["LLMRequest"] = "LLMRequest"
    prompt: str
    model: str = Field(min_length=1)
    provider: Optional[str] = None
    system_prompt: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, gt=0)


class LLMResponsePayload(FrozenSchema):
    kind: Literal["LLMResponse"] = "LLMResponse"
    content: str
    model: str = Field(min_length=1)
    provider: Optional[str] = None
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    latency_ms: Optional[float] = Field(default=None, ge=0.0)
    request_id: Optional[str] = Field(default=None, description="Id of the paired LLMRequest event")

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class ToolCallPayload(FrozenSchema):
    kind: Literal["ToolCall"] = "ToolCall"
    tool_name: str = Field(min_length=1)
    server: Optional[str] = Field(default=None, description="Tool server the tool was resolved from")
    arguments: Dict[str, Any] = Field(default_factory=dict)
    result: Any = None
    error: Optional[str] = None
    user_approved: Optional[bool] = None

    @property
    def qualified_name(self) -> str:
        """Namespaced ``server.tool`` key, or the bare tool name when no server is known."""
        if self.server:
            return f"{self.server}.{self.tool_name}"
        return self.tool_name


class AgentDecisionPayload(FrozenSchema):
    kind: Literal["AgentDecision"] = "AgentDecision"
    decision: str = Field(min_length=1)
    rationale: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class MemoryOpPayload(FrozenSchema):
    kind: Literal["MemoryOp"] = "MemoryOp"
    op: MemoryOpType
    key: str = Field(min_length=1)
    value: Any = None
    importance: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class ErrorPayload(FrozenSchema):
    kind: Literal["Error"] = "Error"
    message: str
    stack: Optional[str] = None
    recoverable: bool = True


EventPayload = Annotated[
    Union[
        LLMRequestPayload,
        LLMResponsePayload,
        ToolCallPayload,
        AgentDecisionPayload,
        MemoryOpPayload,
        ErrorPayload,
    ],
    Field(discriminator="kind"),
]


class NewEvent(FrozenSchema):
    """An event as submitted by the agent runtime, before the store assigns its identity."""

    agent_id: str = Field(min_length=1)
    timestamp: int = Field(ge=0, description="Milliseconds since epoch")
    kind: EventKind
    payload: EventPayload
    cost: float = Field(default=0.0, ge=0.0, description="Cost in USD")

    @model_validator(mode="before")
    @classmethod
    def _tag_payload(cls, data: Any) -> Any:
        # Callers send the kind once at the top level; the union needs it on the payload.
        if not isinstance(data, dict) or "kind" not in data:
            return data
        kind = data["kind"]
        kind_value = kind.value if isinstance(kind, EventKind) else kind
        payload = data.get("payload")
        if payload is None:
            return {**data, "payload": {"kind": kind_value}}
        if isinstance(payload, dict) and "kind" not in payload:
            return {**data, "payload": {**payload, "kind": kind_value}}
        return data

    @model_validator(mode="after")
    def _check_kind(self) -> "NewEvent":
        if self.payload.kind != self.kind.value:
            raise ValueError(f"payload kind '{self.payload.kind}' does not match event kind '{self.kind.value}'")
        return self

    def payload_dict(self) -> Dict[str, Any]:
        """Payload as stored: JSON-safe and without the redundant kind tag."""
        return self.payload.model_dump(mode="json", exclude={"kind"})


class TimelineEvent(NewEvent):
    """A persisted event."""

    id: str
    seq: Optional[int] = Field(default=None, description="Store-assigned append sequence")

    def as_new_event(self) -> NewEvent:
        return NewEvent.model_validate(self.model_dump(exclude={"id", "seq"}))


def describe_event(event: NewEvent) -> str:
    """One-line, human readable label of an event for timeline views."""
    payload = event.payload
    if isinstance(payload, LLMRequestPayload):
        return f"LLM request: {payload.model}"
    if isinstance(payload, LLMResponsePayload):
        return f"LLM response: {payload.total_tokens} tokens, ${event.cost:.4f}"
    if isinstance(payload, ToolCallPayload):
        return f"Tool call: {payload.qualified_name}"
    if isinstance(payload, AgentDecisionPayload):
        return f"Decision: {payload.decision}"
    if isinstance(payload, MemoryOpPayload):
        return f"Memory {payload.op.value}: {payload.key}"
    return f"Error: {payload.message}"


class EventStats(FrozenSchema):
    """Aggregate view of one agent's timeline."""

    agent_id: str
    total_events: int = 0
    total_cost: float = 0.0
    event_type_counts: Dict[str, int] = Field(default_factory=dict)
    cost_by_kind: Dict[str, float] = Field(default_factory=dict)
    oldest_event_time: Optional[int] = None
    newest_event_time: Optional[int] = None
