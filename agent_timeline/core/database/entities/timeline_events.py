"""
Timeline event entity model.

This module contains the database entity for the agent timeline. Events form
an append-only log per agent; rows are only ever inserted, and removed solely
by explicit retention cleanup.

The ``seq`` primary key is the store-assigned append sequence and is the
tie-break for events that share a timestamp. The public ``id`` is a uuid and
carries no ordering meaning.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import JSON, BigInteger, Column, Index
from sqlmodel import Field

from ..base import Base


class TimelineEventRecord(Base, table=True):
    """Entity for the agent event log.

    Table: gm_timeline_events
    """

    __tablename__ = "gm_timeline_events"
    __table_args__ = (
        Index("ix_gm_timeline_events_agent_ts_seq", "agent_id", "timestamp", "seq"),
        {"sqlite_autoincrement": True},
    )

    # Identifiers
    seq: Optional[int] = Field(default=None, primary_key=True, description="Append sequence")
    id: str = Field(max_length=64, unique=True, index=True, description="Public event id")
    agent_id: str = Field(max_length=128, index=True, description="Owning agent id")

    # Event data
    timestamp: int = Field(sa_column=Column(BigInteger, nullable=False), description="Milliseconds since epoch")
    kind: str = Field(max_length=32, description="Event kind tag (LLMRequest, LLMResponse, ...)")
    payload: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
        description="Kind-specific structured payload",
    )
    cost: float = Field(default=0.0, description="Cost in USD, 0 for non-billed kinds")

    def __repr__(self) -> str:
        return f"TimelineEventRecord(id={self.id}, agent_id={self.agent_id}, kind={self.kind}, ts={self.timestamp})"
