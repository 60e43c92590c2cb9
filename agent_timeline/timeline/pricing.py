"""Model pricing used to cost re-executed model calls.

Prices are USD per million tokens. Lookup tolerates provider prefixes
(``anthropic:claude-sonnet-4-5``) and dated suffixes
(``claude-sonnet-4-5-20250929``) by falling back to the longest known model
name the requested name starts with.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional


@dataclass(frozen=True)
class ModelPricing:
    input_per_million: float
    output_per_million: float

    def cost(self, prompt_tokens: int, completion_tokens: int) -> float:
        return (prompt_tokens / 1_000_000) * self.input_per_million + (
            completion_tokens / 1_000_000
        ) * self.output_per_million


DEFAULT_PRICING = ModelPricing(input_per_million=1.0, output_per_million=3.0)

MODEL_PRICING: Dict[str, ModelPricing] = {
    "claude-opus-4": ModelPricing(15.0, 75.0),
    "claude-sonnet-4-5": ModelPricing(3.0, 15.0),
    "claude-haiku-4-5": ModelPricing(0.25, 1.25),
    "gpt-4o": ModelPricing(2.5, 10.0),
    "gpt-4o-mini": ModelPricing(0.15, 0.6),
    "gemini-2.0-flash-exp": ModelPricing(0.0, 0.0),
}


def _bare_name(model: str) -> str:
    # "openai:gpt-4o" and "openai/gpt-4o" both name gpt-4o
    for separator in (":", "/"):
        if separator in model:
            model = model.split(separator, 1)[1]
    return model.strip().lower()


@dataclass
class PricingTable:
    """Price lookup with overridable entries."""

    prices: Dict[str, ModelPricing] = field(default_factory=lambda: dict(MODEL_PRICING))
    default: ModelPricing = DEFAULT_PRICING

    @classmethod
    def with_overrides(cls, overrides: Optional[Mapping[str, Mapping[str, float]]] = None) -> "PricingTable":
        table = cls()
        for model, entry in (overrides or {}).items():
            table.prices[_bare_name(model)] = ModelPricing(
                input_per_million=float(entry["input_per_million"]),
                output_per_million=float(entry["output_per_million"]),
            )
        return table

    def lookup(self, model: str) -> ModelPricing:
        name = _bare_name(model)
        if name in self.prices:
            return self.prices[name]
        candidates = [known for known in self.prices if name.startswith(known)]
        if candidates:
            return self.prices[max(candidates, key=len)]
        return self.default

    def cost_for(self, model: str, prompt_tokens: int, completion_tokens: int) -> float:
        """USD cost of a call to ``model`` with the given token usage."""
        return self.lookup(model).cost(prompt_tokens, completion_tokens)
