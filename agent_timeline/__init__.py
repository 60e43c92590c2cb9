"""Agent Timeline.

Time-travel debugging for AI agents: an append-only log of every action an
agent takes, and an engine that rebuilds the agent's state at any point of
that log and can re-run a recorded model call against another model.

Core subpackages
----------------

- ``agent_timeline.core``:

  - Logging and Logfire monitoring setup.
  - SQLModel entities, async engine helpers and the SQL event repository.

- ``agent_timeline.timeline``:

  - Typed events (``kind`` + ``payload`` tagged union) and derived state schemas.
  - ``EventStore`` (append, range queries, cleanup, stats).
  - ``reduce``: pure fold of events into an ``AgentState``.
  - ``ReplayEngine``: reconstruct and optionally re-execute a model call.
  - ``compare``: cost and text comparison of original vs replayed responses.

- ``agent_timeline.server``:

  - FastAPI application exposing the timeline service over HTTP.

Typical workflow
----------------

Most integrations should use ``agent_timeline.timeline.service.TimelineService``:

1. The agent runtime appends one event per traceable action.
2. A debugging session lists events or inspects ``state_at`` a timestamp.
3. ``replay`` re-runs the LLM request at a timestamp with an alternate model.
4. ``compare`` reports cost savings and the textual difference.
"""
