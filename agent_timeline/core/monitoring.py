"""
Monitoring and Tracing Configuration Module.

This module provides integration with Pydantic Logfire for monitoring and
tracing of timeline operations, including:
- Event appends and retention cleanups
- Replay runs and their stage transitions
- Model re-executions with token usage and cost
- API endpoint tracing
- Error tracking

All ``log_*`` helpers are no-ops unless ``LOGFIRE_ENABLED`` is set, so the
core never depends on a reachable Logfire backend.
"""

import logging
import os
from typing import Optional

import logfire
from fastapi import FastAPI

logger = logging.getLogger(__name__)

# Logfire configuration from environment
LOGFIRE_ENABLED = os.getenv("LOGFIRE_ENABLED", "false").lower() in ("true", "1", "yes")
LOGFIRE_TOKEN = os.getenv("LOGFIRE_TOKEN", "")
LOGFIRE_PROJECT_NAME = os.getenv("LOGFIRE_PROJECT_NAME", "agent-timeline")
LOGFIRE_ENVIRONMENT = os.getenv("LOGFIRE_ENVIRONMENT", "development")
LOGFIRE_SERVICE_NAME = os.getenv("LOGFIRE_SERVICE_NAME", "agent-timeline-server")
LOGFIRE_SERVICE_VERSION = os.getenv("LOGFIRE_SERVICE_VERSION", "0.1.0")

# Sampling configuration
LOGFIRE_SAMPLE_RATE = float(os.getenv("LOGFIRE_SAMPLE_RATE", "1.0"))
LOGFIRE_TRACE_SAMPLE_RATE = float(os.getenv("LOGFIRE_TRACE_SAMPLE_RATE", "1.0"))

# Feature flags
LOGFIRE_TRACE_PYDANTIC_AI = os.getenv("LOGFIRE_TRACE_PYDANTIC_AI", "true").lower() in ("true", "1", "yes")
LOGFIRE_TRACE_SQLALCHEMY = os.getenv("LOGFIRE_TRACE_SQLALCHEMY", "true").lower() in ("true", "1", "yes")
LOGFIRE_TRACE_FASTAPI = os.getenv("LOGFIRE_TRACE_FASTAPI", "true").lower() in ("true", "1", "yes")


def initialize_logfire(app: FastAPI | None = None) -> bool:
    """
    Initialize Pydantic Logfire for monitoring and tracing.

    This function sets up Logfire with automatic instrumentation for:
    - Pydantic AI model calls issued during replays
    - SQLAlchemy database operations against the event table
    - FastAPI endpoints

    Args:
        app: FastAPI application instance for FastAPI instrumentation (optional).

    Returns:
        True when Logfire was configured, False when it stays disabled.
    """
    if not LOGFIRE_ENABLED:
        logger.info("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        return False

    if not LOGFIRE_TOKEN:
        logger.warning(
            "Logfire is enabled but LOGFIRE_TOKEN is not set. "
            "Monitoring will not work. Set LOGFIRE_TOKEN to enable Logfire."
        )
        return False

    logfire.configure(
        token=LOGFIRE_TOKEN,
        service_name=LOGFIRE_SERVICE_NAME,
        service_version=LOGFIRE_SERVICE_VERSION,
        environment=LOGFIRE_ENVIRONMENT,
        sampling=logfire.SamplingOptions(
            head=LOGFIRE_SAMPLE_RATE,
            tail=LOGFIRE_TRACE_SAMPLE_RATE,
        ),
    )

    if LOGFIRE_TRACE_PYDANTIC_AI:
        try:
            logfire.instrument_pydantic_ai()
            logger.info("Logfire: Pydantic AI instrumentation enabled")
        except Exception as e:
            logger.warning(f"Failed to instrument Pydantic AI: {e}")

    if LOGFIRE_TRACE_SQLALCHEMY:
        try:
            logfire.instrument_sqlalchemy()
            logger.info("Logfire: SQLAlchemy instrumentation enabled")
        except Exception as e:
            logger.warning(f"Failed to instrument SQLAlchemy: {e}")

    if LOGFIRE_TRACE_FASTAPI:
        if app is not None:
            try:
                logfire.instrument_fastapi(app=app)
                logger.info("Logfire: FastAPI instrumentation enabled")
            except Exception as e:
                logger.warning(f"Failed to instrument FastAPI: {e}")
        else:
            logger.debug("FastAPI app instance not provided, skipping FastAPI instrumentation")

    logger.info(
        f"Logfire monitoring initialized: "
        f"project={LOGFIRE_PROJECT_NAME}, "
        f"environment={LOGFIRE_ENVIRONMENT}, "
        f"service={LOGFIRE_SERVICE_NAME}"
    )
    return True


def log_event_appended(agent_id: str, event_id: str, kind: str, cost: float) -> None:
    """
    Log an appended timeline event.

    Args:
        agent_id: Owner of the event
        event_id: Store-assigned event id
        kind: Event kind tag
        cost: Event cost in USD
    """
    if not LOGFIRE_ENABLED:
        return
    logfire.info("Timeline event appended", agent_id=agent_id, event_id=event_id, kind=kind, cost_usd=cost)


def log_cleanup(agent_id: str, older_than: int, deleted_count: int) -> None:
    """Log a retention cleanup."""
    if not LOGFIRE_ENABLED:
        return
    logfire.info(
        "Timeline cleanup completed",
        agent_id=agent_id,
        older_than=older_than,
        deleted_count=deleted_count,
    )


def log_replay_started(agent_id: str, target_timestamp: int, alternate_model: Optional[str] = None) -> None:
    """
    Log the start of a replay.

    Args:
        agent_id: Agent whose timeline is replayed
        target_timestamp: Point in time (ms epoch) to reconstruct
        alternate_model: Model used for re-execution, None for reconstruction only
    """
    if not LOGFIRE_ENABLED:
        return
    logfire.info(
        "Replay started",
        agent_id=agent_id,
        target_timestamp=target_timestamp,
        alternate_model=alternate_model,
    )


def log_replay_completed(agent_id: str, stage: str, duration_ms: float, cost_delta: Optional[float] = None) -> None:
    """
    Log the end of a replay.

    Args:
        agent_id: Agent whose timeline was replayed
        stage: Final stage (completed or failed)
        duration_ms: Wall time of the replay in milliseconds
        cost_delta: Original minus replayed cost, when a re-execution happened
    """
    if not LOGFIRE_ENABLED:
        return
    logfire.info(
        "Replay finished",
        agent_id=agent_id,
        stage=stage,
        duration_ms=duration_ms,
        cost_delta=cost_delta,
    )


def log_llm_call(model: str, tokens_used: int, cost_usd: Optional[float] = None) -> None:
    """
    Log an LLM model call with usage metrics.

    Args:
        model: The model name
        tokens_used: Total tokens used in the call
        cost_usd: The cost in USD (optional)
    """
    if not LOGFIRE_ENABLED:
        return
    logfire.info("LLM call completed", model=model, tokens_used=tokens_used, cost_usd=cost_usd)


def log_error(error_type: str, error_message: str, context: Optional[dict] = None) -> None:
    """
    Log an error with context for debugging.

    Args:
        error_type: Type of error
        error_message: Error message
        context: Additional context dictionary
    """
    if not LOGFIRE_ENABLED:
        return
    logfire.error("{error_type}: {error_message}", error_type=error_type, error_message=error_message, **(context or {}))
