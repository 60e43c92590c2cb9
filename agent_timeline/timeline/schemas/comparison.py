"""Comparison schemas for original vs replayed responses."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import Field

from .base import FrozenSchema


class DiffOp(str, Enum):
    equal = "equal"
    insert = "insert"
    delete = "delete"
    replace = "replace"


class DiffChunk(FrozenSchema):
    op: DiffOp
    original: str = ""
    replayed: str = ""


class TextDiff(FrozenSchema):
    chunks: List[DiffChunk] = Field(default_factory=list)
    unified: str = ""
    similarity: float = Field(ge=0.0, le=1.0)

    @property
    def identical(self) -> bool:
        return all(chunk.op == DiffOp.equal for chunk in self.chunks)


class ComparisonResult(FrozenSchema):
    original_model: str
    replayed_model: str
    original_cost: float
    replayed_cost: float
    cost_savings: float = Field(description="Original cost minus replayed cost; negative when the replay cost more")
    cost_savings_percent: Optional[float] = Field(
        default=None, description="None when the original cost is zero"
    )
    original_cost_per_thousand_tokens: Optional[float] = None
    replayed_cost_per_thousand_tokens: Optional[float] = None
    prompt_token_delta: int = 0
    completion_token_delta: int = 0
    token_delta: int = 0
    diff: TextDiff
    recommendations: List[str] = Field(default_factory=list)


class BatchComparison(FrozenSchema):
    comparisons: List[ComparisonResult] = Field(default_factory=list)
    total_original_cost: float = 0.0
    total_replayed_cost: float = 0.0
    total_savings: float = 0.0
    average_savings_percent: Optional[float] = None
    best_index: Optional[int] = Field(default=None, description="Comparison with the highest savings")
    worst_index: Optional[int] = Field(default=None, description="Comparison with the lowest savings")
