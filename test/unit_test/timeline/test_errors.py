"""Unit tests for the timeline error taxonomy."""

import pytest

from agent_timeline.timeline.errors import (
    NotFoundError,
    ProviderError,
    RateLimitError,
    ReplayFailedError,
    ReplayTimeoutError,
    ReplayTooLargeError,
    StoreUnavailableError,
    TimelineError,
    ValidationError,
)
from agent_timeline.timeline.schemas import ResponseSnapshot


class TestErrorKinds:
    @pytest.mark.parametrize(
        "error,kind",
        [
            (ValidationError("bad"), "ValidationError"),
            (NotFoundError("Event", "evt-1"), "NotFoundError"),
            (ReplayTooLargeError("agent-1", 1000, 10), "ReplayTooLargeError"),
            (ProviderError("gpt-4o", "boom"), "ProviderError"),
            (RateLimitError("gpt-4o", "slow down", 429), "RateLimitError"),
            (StoreUnavailableError("insert", "refused"), "StoreUnavailableError"),
            (ReplayTimeoutError(5.0), "ReplayTimeoutError"),
        ],
    )
    def test_kind_tag(self, error, kind):
        assert isinstance(error, TimelineError)
        assert error.kind == kind
        assert error.to_dict()["kind"] == kind
        assert error.to_dict()["message"] == error.message

    def test_rate_limit_is_a_provider_error(self):
        assert isinstance(RateLimitError("gpt-4o", "slow down"), ProviderError)

    def test_validation_fields(self):
        error = ValidationError("missing", fields=["agent_id"])

        assert error.to_dict()["fields"] == ["agent_id"]
        assert "fields" not in ValidationError("bad").to_dict()

    def test_messages(self):
        assert NotFoundError("Event", "evt-1").message == "Event not found: 'evt-1'"
        assert ReplayTimeoutError(2.5).message == "Replay did not finish within 2.5s"


class TestReplayFailedError:
    def test_wraps_timeline_cause(self):
        cause = ProviderError("gpt-4o", "bad gateway", 502)
        snapshot = ResponseSnapshot(content="stored", cost=0.01, model="claude-opus-4")

        error = ReplayFailedError("re_executing", cause, original_response=snapshot, incurred_cost="unknown")

        assert error.cause_kind == "ProviderError"
        assert "re_executing" in error.message
        data = error.to_dict()
        assert data["stage"] == "re_executing"
        assert data["cause"]["kind"] == "ProviderError"
        assert data["incurred_cost"] == "unknown"
        assert data["original_response"]["content"] == "stored"

    def test_wraps_plain_exception(self):
        error = ReplayFailedError("reconstructing", RuntimeError("unexpected"))

        assert error.cause_kind == "RuntimeError"
        data = error.to_dict()
        assert data["cause"] == {"kind": "RuntimeError", "message": "unexpected"}
        assert data["incurred_cost"] is None
        assert "original_response" not in data
