"""Model invocation for replays, built on Pydantic AI.

``PydanticAIModelInvoker`` turns a reconstructed transcript into Pydantic AI
message history, runs one agent call with the alternate model settings and
prices the reported token usage with the ``PricingTable``. Provider failures
are mapped onto ``ProviderError`` and ``RateLimitError``; nothing is retried.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

import httpx
from pydantic_ai import Agent
from pydantic_ai.exceptions import AgentRunError, ModelHTTPError, UserError
from pydantic_ai.messages import ModelMessage, ModelRequest, ModelResponse, TextPart, UserPromptPart
from pydantic_ai.models import Model
from pydantic_ai.settings import ModelSettings

from agent_timeline.core import monitoring
from agent_timeline.core.logging_config import get_logger

from .errors import ProviderError, RateLimitError, ValidationError
from .pricing import PricingTable
from .schemas.replay import AlternateConfig, InvocationResult, TokenUsage
from .schemas.state import TranscriptEntry, TranscriptRole

logger = get_logger(__name__)

ModelFactory = Callable[[AlternateConfig], Union[Model, str]]

_PROVIDER_PREFIXES = (
    ("claude", "anthropic"),
    ("gpt", "openai"),
    ("o1", "openai"),
    ("o3", "openai"),
    ("o4", "openai"),
    ("gemini", "google-gla"),
)


def model_identifier(config: AlternateConfig) -> str:
    """Pydantic AI ``provider:model`` string for ``config``."""
    if ":" in config.model:
        return config.model
    provider = config.provider
    if provider is None:
        provider = next((name for prefix, name in _PROVIDER_PREFIXES if config.model.startswith(prefix)), None)
    if provider is None:
        raise ValidationError(f"Cannot infer a provider for model '{config.model}'", fields=["provider"])
    if provider == "google":
        provider = "google-gla"
    return f"{provider}:{config.model}"


def build_message_history(history: Sequence[TranscriptEntry]) -> List[ModelMessage]:
    """Convert transcript entries into Pydantic AI request/response messages."""
    messages: List[ModelMessage] = []
    for entry in history:
        if entry.role == TranscriptRole.user:
            messages.append(ModelRequest(parts=[UserPromptPart(content=entry.content)]))
        else:
            messages.append(ModelResponse(parts=[TextPart(content=entry.content)], model_name=entry.model))
    return messages


def run_token_usage(result: Any) -> Tuple[int, int]:
    """Prompt and completion tokens of an agent run.

    Pydantic AI 1.x exposes ``usage()`` as a method and 2.x as a ``RunUsage``
    attribute; both carry ``input_tokens`` and ``output_tokens``.
    """
    usage = getattr(result, "usage", None)
    if callable(usage):
        usage = usage()
    return getattr(usage, "input_tokens", None) or 0, getattr(usage, "output_tokens", None) or 0


def build_model_settings(config: AlternateConfig) -> ModelSettings:
    settings = ModelSettings()
    if config.temperature is not None:
        settings["temperature"] = config.temperature
    if config.max_tokens is not None:
        settings["max_tokens"] = config.max_tokens
    if config.top_p is not None:
        settings["top_p"] = config.top_p
    return settings


class PydanticAIModelInvoker:
    """``ModelInvoker`` running a single Pydantic AI agent call per invocation."""

    def __init__(self, pricing: Optional[PricingTable] = None, model_factory: Optional[ModelFactory] = None) -> None:
        """
        Args:
            pricing: Price table used to cost the call
            model_factory: Builds the Pydantic AI model for a config; defaults to
                the ``provider:model`` identifier resolved by Pydantic AI
        """
        self.pricing = pricing or PricingTable()
        self.model_factory = model_factory or model_identifier

    async def invoke(self, transcript: Sequence[TranscriptEntry], config: AlternateConfig) -> InvocationResult:
        if not transcript or transcript[-1].role != TranscriptRole.user:
            raise ValidationError("Transcript must end with the user prompt to answer", fields=["transcript"])

        prompt = transcript[-1].content
        history = build_message_history(transcript[:-1])
        model = self.model_factory(config)
        agent = Agent(model, output_type=str, instructions=config.system_prompt)

        logger.debug(f"Invoking {config.label} with {len(history)} history messages")
        try:
            result = await agent.run(
                prompt,
                message_history=history or None,
                model_settings=build_model_settings(config),
            )
        except ModelHTTPError as e:
            logger.warning(f"Model {config.label} returned HTTP {e.status_code}: {e.message}")
            if e.status_code == 429:
                raise RateLimitError(config.model, e.message, status_code=e.status_code) from e
            raise ProviderError(config.model, e.message, status_code=e.status_code) from e
        except (AgentRunError, UserError, httpx.HTTPError) as e:
            logger.warning(f"Model {config.label} call failed: {e}")
            raise ProviderError(config.model, str(e)) from e

        prompt_tokens, completion_tokens = run_token_usage(result)
        cost = self.pricing.cost_for(config.model, prompt_tokens, completion_tokens)

        monitoring.log_llm_call(config.model, prompt_tokens + completion_tokens, cost)
        return InvocationResult(
            content=result.output,
            usage=TokenUsage(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
            cost=cost,
            model=config.model,
            provider=config.provider,
        )
