"""Timeline schemas: events, derived state, replay results and comparisons."""

from .base import BaseSchema, FrozenSchema
from .comparison import BatchComparison, ComparisonResult, DiffChunk, DiffOp, TextDiff
from .events import (
    AgentDecisionPayload,
    ErrorPayload,
    EventKind,
    EventStats,
    EventPayload,
    LLMRequestPayload,
    LLMResponsePayload,
    MemoryOpPayload,
    MemoryOpType,
    NewEvent,
    SortOrder,
    TimelineEvent,
    ToolCallPayload,
    describe_event,
)
from .replay import (
    AlternateConfig,
    InvocationResult,
    ReplayResult,
    ReplayStage,
    ResponseSnapshot,
    ScenarioOutcome,
    TokenUsage,
)
from .state import (
    AgentState,
    ChangeType,
    DecisionRecord,
    ErrorRecord,
    ModelUsage,
    StateChange,
    StateDiff,
    StateDiffSummary,
    ToolCallRecord,
    TranscriptEntry,
    TranscriptRole,
)

__all__ = [
    "AgentDecisionPayload",
    "AgentState",
    "AlternateConfig",
    "BaseSchema",
    "BatchComparison",
    "ChangeType",
    "ComparisonResult",
    "DecisionRecord",
    "DiffChunk",
    "DiffOp",
    "ErrorPayload",
    "ErrorRecord",
    "EventKind",
    "EventStats",
    "EventPayload",
    "FrozenSchema",
    "InvocationResult",
    "LLMRequestPayload",
    "LLMResponsePayload",
    "MemoryOpPayload",
    "MemoryOpType",
    "ModelUsage",
    "NewEvent",
    "ReplayResult",
    "ReplayStage",
    "ResponseSnapshot",
    "ScenarioOutcome",
    "SortOrder",
    "StateChange",
    "StateDiff",
    "StateDiffSummary",
    "TextDiff",
    "TimelineEvent",
    "TokenUsage",
    "ToolCallPayload",
    "ToolCallRecord",
    "TranscriptEntry",
    "TranscriptRole",
    "describe_event",
]
