"""Replay request and result schemas."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field

from .base import BaseSchema, FrozenSchema
from .state import AgentState


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReplayStage(str, Enum):
    seeding = "seeding"
    reconstructing = "reconstructing"
    original_only = "original_only"
    re_executing = "re_executing"
    completed = "completed"
    failed = "failed"


class AlternateConfig(BaseSchema):
    """Model configuration a recorded request is re-executed under."""

    model: str = Field(min_length=1)
    provider: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, gt=0)
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    system_prompt: Optional[str] = Field(
        default=None, description="Overrides the system prompt recorded with the request"
    )

    @property
    def label(self) -> str:
        return f"{self.provider}/{self.model}" if self.provider else self.model


class ResponseSnapshot(FrozenSchema):
    """Content, usage and cost of one model response."""

    content: str
    cost: float = 0.0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    model: str
    provider: Optional[str] = None
    event_id: Optional[str] = Field(default=None, description="Source event for recorded responses")

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class ReplayResult(FrozenSchema):
    source_agent_id: str
    replayed_from_timestamp: int
    stage: ReplayStage = ReplayStage.completed
    request_event_id: Optional[str] = None
    original_response: Optional[ResponseSnapshot] = None
    replayed_response: Optional[ResponseSnapshot] = None
    cost_delta: Optional[float] = Field(default=None, description="Original cost minus replayed cost")
    alternate_config: Optional[AlternateConfig] = None
    state: AgentState
    created_at: datetime = Field(default_factory=_utc_now)


class ScenarioOutcome(FrozenSchema):
    """Result of one alternate configuration in a multi-scenario replay."""

    config: AlternateConfig
    result: Optional[ReplayResult] = None
    error: Optional[Dict[str, Any]] = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None


class TokenUsage(FrozenSchema):
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)


class InvocationResult(FrozenSchema):
    """What the model invocation layer returns for one call."""

    content: str
    usage: TokenUsage = Field(default_factory=TokenUsage)
    cost: float = Field(default=0.0, ge=0.0)
    model: str
    provider: Optional[str] = None

    def to_snapshot(self) -> ResponseSnapshot:
        return ResponseSnapshot(
            content=self.content,
            cost=self.cost,
            prompt_tokens=self.usage.prompt_tokens,
            completion_tokens=self.usage.completion_tokens,
            model=self.model,
            provider=self.provider,
        )
