"""Collaborator contracts of the timeline core.

The event store and the replay engine depend on these Protocols instead of a
concrete database or model SDK.

Contract guidelines
-------------------

- All methods are async.
- The record store is append-only apart from ``delete_many``, which is always
  scoped to one agent and a timestamp cutoff.
- ``query_by_index`` orders on ``(timestamp, seq)``; ``seq`` is the
  store-assigned append sequence.
- Connectivity failures surface as ``StoreUnavailableError``.
- A model invoker performs exactly one call per ``invoke`` and raises
  ``ProviderError`` or ``RateLimitError``; it never retries on its own.
- ``ValidationError`` from a model invoker means the call was never sent.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence

from agent_timeline.core.database.entities.timeline_events import TimelineEventRecord
from agent_timeline.core.database.repositories.timeline_events import AgentWatermark, KindAggregate

from .schemas.replay import AlternateConfig, InvocationResult
from .schemas.state import TranscriptEntry


class EventRecordStore(Protocol):
    """Durable storage of event records."""

    async def insert(self, record: TimelineEventRecord) -> str:
        """
        Persist a record.

        Args:
            record: Row with its public id already set.

        Returns:
            The record id, once the write is acknowledged.
        """
        ...

    async def get_by_id(self, event_id: str) -> Optional[TimelineEventRecord]:
        ...

    async def query_by_index(
        self,
        agent_id: str,
        *,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        kinds: Optional[Sequence[str]] = None,
        order: str = "asc",
        limit: Optional[int] = None,
    ) -> List[TimelineEventRecord]:
        """
        Range query over one agent's records.

        Args:
            agent_id: Owning agent.
            start_time: Inclusive lower timestamp bound.
            end_time: Inclusive upper timestamp bound.
            kinds: Kind tags to keep.
            order: ``"asc"`` or ``"desc"``.
            limit: Maximum number of records, None for all.
        """
        ...

    async def delete_many(self, agent_id: str, before: int) -> int:
        """Delete the agent's records with ``timestamp < before`` and return the count."""
        ...

    async def aggregate_by_kind(self, agent_id: str) -> List[KindAggregate]:
        ...

    async def watermark(self, agent_id: str) -> AgentWatermark:
        """Count and last append sequence of the agent's records; changes on every write."""
        ...


class ModelInvoker(Protocol):
    """Issues a single model call for a replay."""

    async def invoke(self, transcript: Sequence[TranscriptEntry], config: AlternateConfig) -> InvocationResult:
        """
        Call the model with ``transcript`` as conversation context.

        The last transcript entry is the user prompt being answered.

        Args:
            transcript: Conversation so far, oldest first.
            config: Model name and sampling settings.

        Returns:
            Content, token usage and cost of the response.

        Raises:
            ValidationError: transcript or config cannot be sent; no call was made.
            ProviderError: the provider failed the call.
            RateLimitError: the provider throttled the call.
        """
        ...
