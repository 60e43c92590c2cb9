"""
Database entity models.

Modules:
- timeline_events: Append-only event log for every agent action
"""

from . import timeline_events
from .timeline_events import TimelineEventRecord

__all__ = ["timeline_events", "TimelineEventRecord"]
