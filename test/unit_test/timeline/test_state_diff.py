"""Unit tests for the path-level state diff."""

from agent_timeline.timeline.schemas import AgentState, ChangeType, TranscriptEntry, TranscriptRole
from agent_timeline.timeline.state_diff import diff_states


def _state(**fields) -> AgentState:
    return AgentState(agent_id="agent-1", as_of=fields.pop("as_of", 1000), **fields)


def _entry(content: str, index: int) -> TranscriptEntry:
    return TranscriptEntry(role=TranscriptRole.user, content=content, event_id=f"evt-{index}", timestamp=index)


class TestDiffStates:
    def test_identical_states(self):
        diff = diff_states(_state(memory={"k": 1}), _state(memory={"k": 1}))

        assert diff.is_identical
        assert diff.summary.changed == 0
        assert diff.summary.unchanged > 0

    def test_changed_scalar(self):
        diff = diff_states(_state(cumulative_cost=0.1), _state(cumulative_cost=0.3))

        assert [(c.path, c.change_type) for c in diff.changes] == [("cumulative_cost", ChangeType.changed)]
        assert diff.changes[0].original == 0.1
        assert diff.changes[0].replayed == 0.3

    def test_memory_keys_added_and_removed(self):
        diff = diff_states(_state(memory={"old": 1, "same": 2}), _state(memory={"same": 2, "new": 3}))

        changes = {c.path: c for c in diff.changes}
        assert changes["memory.old"].change_type == ChangeType.removed
        assert changes["memory.old"].original == 1
        assert changes["memory.new"].change_type == ChangeType.added
        assert changes["memory.new"].replayed == 3
        assert diff.summary.added == 1
        assert diff.summary.removed == 1

    def test_list_paths_use_indexes(self):
        diff = diff_states(
            _state(transcript=[_entry("hello", 1)]),
            _state(transcript=[_entry("hi", 1), _entry("again", 2)]),
        )

        paths = {c.path: c.change_type for c in diff.changes}
        assert paths["transcript[0].content"] == ChangeType.changed
        assert paths["transcript[1]"] == ChangeType.added

    def test_ignore_paths(self):
        diff = diff_states(_state(as_of=1000), _state(as_of=2000), ignore_paths={"as_of"})

        assert diff.is_identical

    def test_ignore_nested_key(self):
        diff = diff_states(
            _state(memory={"volatile": 1}), _state(memory={"volatile": 2, "extra": 1}), ignore_paths={"memory.volatile", "memory.extra"}
        )

        assert diff.is_identical

    def test_max_depth_compares_whole_values(self):
        diff = diff_states(_state(memory={"k": {"a": 1}}), _state(memory={"k": {"a": 2}}), max_depth=1)

        assert [c.path for c in diff.changes] == ["memory"]
        assert diff.changes[0].change_type == ChangeType.changed
