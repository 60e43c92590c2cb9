"""Derived agent state schemas.

``AgentState`` is a projection of an agent's events up to a timestamp. It is
rebuilt on demand by the reducer and never persisted.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from .base import FrozenSchema


class TranscriptRole(str, Enum):
    user = "user"
    assistant = "assistant"


class TranscriptEntry(FrozenSchema):
    role: TranscriptRole
    content: str
    event_id: str
    timestamp: int
    model: Optional[str] = None


class ToolCallRecord(FrozenSchema):
    event_id: str
    timestamp: int
    tool_name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    result: Any = None
    error: Optional[str] = None
    decision_event_id: Optional[str] = Field(
        default=None, description="Nearest preceding AgentDecision, if any"
    )


class DecisionRecord(FrozenSchema):
    event_id: str
    timestamp: int
    decision: str
    rationale: Optional[str] = None
    confidence: Optional[float] = None


class ErrorRecord(FrozenSchema):
    event_id: str
    timestamp: int
    message: str
    recoverable: bool = True


class ModelUsage(FrozenSchema):
    responses: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    cost: float = 0.0


class AgentState(FrozenSchema):
    """Point-in-time snapshot of an agent, folded from its events."""

    agent_id: Optional[str] = None
    as_of: int
    transcript: List[TranscriptEntry] = Field(default_factory=list)
    system_prompt: Optional[str] = None
    tool_calls: List[ToolCallRecord] = Field(default_factory=list)
    last_decision: Optional[DecisionRecord] = None
    decision_count: int = 0
    memory: Dict[str, Any] = Field(default_factory=dict)
    errors: List[ErrorRecord] = Field(default_factory=list)
    cumulative_cost: float = 0.0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    usage_by_model: Dict[str, ModelUsage] = Field(default_factory=dict)
    event_count: int = 0
    last_event_id: Optional[str] = None

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class ChangeType(str, Enum):
    added = "added"
    removed = "removed"
    changed = "changed"


class StateChange(FrozenSchema):
    path: str
    change_type: ChangeType
    original: Any = None
    replayed: Any = None


class StateDiffSummary(FrozenSchema):
    added: int = 0
    removed: int = 0
    changed: int = 0
    unchanged: int = 0


class StateDiff(FrozenSchema):
    changes: List[StateChange] = Field(default_factory=list)
    summary: StateDiffSummary = Field(default_factory=StateDiffSummary)

    @property
    def is_identical(self) -> bool:
        return not self.changes
