from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import httpx
import pytest
import pytest_asyncio

# Load dotenv files early so test fixtures can read secrets via os.getenv
try:  # pragma: no cover
    from dotenv import load_dotenv

    TEST_ROOT = Path(__file__).resolve().parent
    load_dotenv(TEST_ROOT / ".env", override=False)
    load_dotenv(TEST_ROOT / ".env.example", override=False)
except ImportError:
    pass

# Keep the test run away from real files and services before the package is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENABLE_FILE_LOGGING", "false")
os.environ.setdefault("LOGFIRE_ENABLED", "false")

from agent_timeline.core.database import create_all, create_engine, create_sessionmaker
from agent_timeline.core.database.repositories import TimelineEventRepository
from agent_timeline.timeline.config import TimelineConfig
from agent_timeline.timeline.event_store import EventStore
from agent_timeline.timeline.replay_engine import ReplayEngine
from agent_timeline.timeline.schemas import AlternateConfig, InvocationResult, TokenUsage, TranscriptEntry
from agent_timeline.timeline.service import TimelineService

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def _global_offline_http_guard(monkeypatch: pytest.MonkeyPatch):
    allowed_prefixes: Iterable[str] = (
        "http://mock",
        "https://mock",
        "http://localhost",
        "http://127.0.0.1",
        "http://0.0.0.0",
        "http://test",
        "/",  # Allow relative paths (used by ASGI transport)
    )

    orig_sync = httpx._client.Client.request
    orig_async = httpx._client.AsyncClient.request

    def _is_allowed(url_str: str) -> bool:
        return any(url_str.startswith(p) for p in allowed_prefixes)

    def offline_sync(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return orig_sync(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard: {url_str}")

    async def offline_async(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return await orig_async(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard (async): {url_str}")

    monkeypatch.setattr(httpx._client.Client, "request", offline_sync, raising=True)
    monkeypatch.setattr(httpx._client.AsyncClient, "request", offline_async, raising=True)


# =====================================================================
# Event builders
# =====================================================================


class EventFactory:
    """Builds raw event dicts as the agent runtime would submit them."""

    def __init__(self, agent_id: str = "agent-1") -> None:
        self.agent_id = agent_id

    def event(self, kind: str, timestamp: int, payload: Dict[str, Any], cost: float = 0.0, **overrides: Any) -> Dict[str, Any]:
        data = {
            "agent_id": self.agent_id,
            "timestamp": timestamp,
            "kind": kind,
            "payload": payload,
            "cost": cost,
        }
        data.update(overrides)
        return data

    def request(
        self,
        timestamp: int,
        prompt: str = "Summarize the report",
        model: str = "claude-opus-4",
        system_prompt: Optional[str] = None,
        **overrides: Any,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"prompt": prompt, "model": model, "provider": "anthropic"}
        if system_prompt is not None:
            payload["system_prompt"] = system_prompt
        return self.event("LLMRequest", timestamp, payload, **overrides)

    def response(
        self,
        timestamp: int,
        content: str = "The report says revenue grew.",
        model: str = "claude-opus-4",
        prompt_tokens: int = 100,
        completion_tokens: int = 50,
        cost: float = 0.05,
        request_id: Optional[str] = None,
        **overrides: Any,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "content": content,
            "model": model,
            "provider": "anthropic",
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
        }
        if request_id is not None:
            payload["request_id"] = request_id
        return self.event("LLMResponse", timestamp, payload, cost=cost, **overrides)

    def tool_call(self, timestamp: int, tool_name: str = "search", server: Optional[str] = "web", **overrides: Any) -> Dict[str, Any]:
        payload = {"tool_name": tool_name, "server": server, "arguments": {"q": "revenue"}, "result": {"hits": 3}}
        return self.event("ToolCall", timestamp, payload, **overrides)

    def decision(self, timestamp: int, decision: str = "search the web", **overrides: Any) -> Dict[str, Any]:
        return self.event("AgentDecision", timestamp, {"decision": decision, "confidence": 0.8}, **overrides)

    def memory(self, timestamp: int, key: str, value: Any = None, op: str = "add", **overrides: Any) -> Dict[str, Any]:
        return self.event("MemoryOp", timestamp, {"op": op, "key": key, "value": value}, **overrides)

    def error(self, timestamp: int, message: str = "tool timed out", **overrides: Any) -> Dict[str, Any]:
        return self.event("Error", timestamp, {"message": message, "recoverable": True}, **overrides)


@pytest.fixture
def events() -> EventFactory:
    return EventFactory()


# =====================================================================
# Model invoker double
# =====================================================================


class FakeInvoker:
    """``ModelInvoker`` returning a canned result and recording every call."""

    def __init__(
        self,
        content: str = "Revenue grew 10%.",
        prompt_tokens: int = 100,
        completion_tokens: int = 40,
        cost: float = 0.001,
        error: Optional[BaseException] = None,
        delay: float = 0.0,
    ) -> None:
        self.content = content
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        self.cost = cost
        self.error = error
        self.delay = delay
        self.calls: List[Tuple[List[TranscriptEntry], AlternateConfig]] = []

    async def invoke(self, transcript: Sequence[TranscriptEntry], config: AlternateConfig) -> InvocationResult:
        self.calls.append((list(transcript), config))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return InvocationResult(
            content=self.content,
            usage=TokenUsage(prompt_tokens=self.prompt_tokens, completion_tokens=self.completion_tokens),
            cost=self.cost,
            model=config.model,
            provider=config.provider,
        )


@pytest.fixture
def fake_invoker() -> FakeInvoker:
    return FakeInvoker()


# =====================================================================
# Storage fixtures
# =====================================================================


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory SQLite database per test."""
    db_engine = create_engine(TEST_DATABASE_URL)
    await create_all(db_engine)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture
def repository(engine) -> TimelineEventRepository:
    return TimelineEventRepository(create_sessionmaker(engine))


@pytest.fixture
def timeline_config() -> TimelineConfig:
    return TimelineConfig()


@pytest.fixture
def store(repository, timeline_config) -> EventStore:
    return EventStore(repository, timeline_config)


@pytest.fixture
def replay_engine(store, fake_invoker) -> ReplayEngine:
    return ReplayEngine(store, fake_invoker)


@pytest.fixture
def service(store, replay_engine) -> TimelineService:
    return TimelineService(store=store, replay_engine=replay_engine)
