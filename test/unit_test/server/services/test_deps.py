"""Tests for the timeline service dependency."""

from types import SimpleNamespace

import pytest

from agent_timeline.server.services.deps import get_timeline_service


def _request(state):
    return SimpleNamespace(app=SimpleNamespace(state=state))


class TestGetTimelineService:
    def test_returns_attached_service(self, service):
        assert get_timeline_service(_request(SimpleNamespace(timeline_service=service))) is service

    def test_missing_service(self):
        with pytest.raises(RuntimeError):
            get_timeline_service(_request(SimpleNamespace()))
