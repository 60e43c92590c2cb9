"""Error types for the timeline package.

Every error carries a stable ``kind`` tag and a human readable message so that
callers (HTTP handlers, CLIs, dashboards) can render a structured error without
inspecting exception classes.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence


class TimelineError(Exception):
    """Base error for all timeline exceptions."""

    kind: str = "TimelineError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class ValidationError(TimelineError):
    """Raised when an event or request is malformed; nothing is persisted."""

    kind = "ValidationError"

    def __init__(self, message: str, fields: Optional[Sequence[str]] = None) -> None:
        super().__init__(message)
        self.fields = list(fields or [])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.fields:
            data["fields"] = self.fields
        return data


class NotFoundError(TimelineError):
    """Raised when an event (or an agent's timeline) does not exist."""

    kind = "NotFoundError"

    def __init__(self, resource: str, identifier: str) -> None:
        super().__init__(f"{resource} not found: '{identifier}'")
        self.resource = resource
        self.identifier = identifier


class ReplayTooLargeError(TimelineError):
    """Raised when a replay window holds more events than the safety bound."""

    kind = "ReplayTooLargeError"

    def __init__(self, agent_id: str, target_timestamp: int, limit: int) -> None:
        super().__init__(
            f"Replay of agent '{agent_id}' up to {target_timestamp} exceeds the limit of {limit} events"
        )
        self.agent_id = agent_id
        self.target_timestamp = target_timestamp
        self.limit = limit


class ProviderError(TimelineError):
    """Raised when the external model call fails."""

    kind = "ProviderError"

    def __init__(self, model: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"Model call to '{model}' failed: {message}")
        self.model = model
        self.status_code = status_code


class RateLimitError(ProviderError):
    """Raised when the model provider rejects the call for rate limiting."""

    kind = "RateLimitError"


class StoreUnavailableError(TimelineError):
    """Raised when the underlying persistence cannot be reached."""

    kind = "StoreUnavailableError"

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"Event store unavailable during {operation}: {message}")
        self.operation = operation


class ReplayTimeoutError(TimelineError):
    """Raised when a replay exceeds the caller supplied timeout."""

    kind = "ReplayTimeoutError"

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Replay did not finish within {timeout:g}s")
        self.timeout = timeout


class ReplayFailedError(TimelineError):
    """Raised when a replay ends in the failed stage.

    ``cause`` is the underlying error. ``original_response`` is kept when the
    failure happened after the stored response was located, and
    ``incurred_cost`` is ``"unknown"`` once a model call may have been billed.
    """

    kind = "ReplayFailedError"

    def __init__(
        self,
        stage: str,
        cause: BaseException,
        *,
        original_response: Any = None,
        incurred_cost: Optional[str] = None,
    ) -> None:
        cause_message = cause.message if isinstance(cause, TimelineError) else str(cause) or type(cause).__name__
        super().__init__(f"Replay failed during {stage}: {cause_message}")
        self.stage = stage
        self.cause = cause
        self.original_response = original_response
        self.incurred_cost = incurred_cost

    @property
    def cause_kind(self) -> str:
        if isinstance(self.cause, TimelineError):
            return self.cause.kind
        return type(self.cause).__name__

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["stage"] = self.stage
        data["cause"] = (
            self.cause.to_dict()
            if isinstance(self.cause, TimelineError)
            else {"kind": self.cause_kind, "message": str(self.cause)}
        )
        data["incurred_cost"] = self.incurred_cost
        if self.original_response is not None:
            dump = getattr(self.original_response, "model_dump", None)
            data["original_response"] = dump(mode="json") if dump else self.original_response
        return data
