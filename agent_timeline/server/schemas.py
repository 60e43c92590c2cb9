"""Request and response models of the HTTP API."""

from typing import List, Optional

from pydantic import Field

from agent_timeline.timeline.schemas import (
    AlternateConfig,
    BaseSchema,
    BatchComparison,
    ComparisonResult,
    ReplayResult,
    ResponseSnapshot,
    ScenarioOutcome,
)


class AppendEventResponse(BaseSchema):
    id: str


class CleanupResponse(BaseSchema):
    agent_id: str
    older_than: int
    deleted_count: int


class ReplayRequest(BaseSchema):
    agent_id: str = Field(min_length=1)
    target_timestamp: int = Field(ge=0, description="Point in time (ms epoch) to reconstruct")
    alternate_config: Optional[AlternateConfig] = None
    timeout_seconds: Optional[float] = Field(default=None, gt=0)
    compare: bool = Field(default=False, description="Attach a comparison when both responses are available")


class ReplayResponse(BaseSchema):
    result: ReplayResult
    comparison: Optional[ComparisonResult] = None


class ScenarioReplayRequest(BaseSchema):
    agent_id: str = Field(min_length=1)
    target_timestamp: int = Field(ge=0)
    configs: List[AlternateConfig] = Field(min_length=1)
    timeout_seconds: Optional[float] = Field(default=None, gt=0)


class ScenarioReplayResponse(BaseSchema):
    outcomes: List[ScenarioOutcome]
    batch: BatchComparison


class CompareRequest(BaseSchema):
    original: ResponseSnapshot
    replayed: ResponseSnapshot


class CompareResponse(BaseSchema):
    comparison: ComparisonResult
    report: str
