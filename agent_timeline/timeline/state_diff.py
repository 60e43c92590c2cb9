"""Path-level deep diff of two agent states.

States are compared on their JSON dumps. Dicts are compared key by key and
lists index by index; paths use dots for keys and brackets for indexes, e.g.
``transcript[2].content``. Values deeper than ``max_depth`` are compared whole.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional

from .schemas.state import AgentState, ChangeType, StateChange, StateDiff, StateDiffSummary

DEFAULT_MAX_DEPTH = 10


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


class _Walker:
    def __init__(self, ignore_paths: Iterable[str], max_depth: int) -> None:
        self.ignore_paths = set(ignore_paths)
        self.max_depth = max_depth
        self.changes: List[StateChange] = []
        self.unchanged = 0

    def walk(self, original: Any, replayed: Any, path: str, depth: int) -> None:
        if path in self.ignore_paths:
            return
        if depth < self.max_depth and isinstance(original, dict) and isinstance(replayed, dict):
            for key in list(original) + [k for k in replayed if k not in original]:
                child = _join(path, str(key))
                if key not in replayed:
                    if child not in self.ignore_paths:
                        self.changes.append(StateChange(path=child, change_type=ChangeType.removed, original=original[key]))
                elif key not in original:
                    if child not in self.ignore_paths:
                        self.changes.append(StateChange(path=child, change_type=ChangeType.added, replayed=replayed[key]))
                else:
                    self.walk(original[key], replayed[key], child, depth + 1)
            return
        if depth < self.max_depth and isinstance(original, list) and isinstance(replayed, list):
            for index in range(max(len(original), len(replayed))):
                child = f"{path}[{index}]"
                if index >= len(replayed):
                    self.changes.append(StateChange(path=child, change_type=ChangeType.removed, original=original[index]))
                elif index >= len(original):
                    self.changes.append(StateChange(path=child, change_type=ChangeType.added, replayed=replayed[index]))
                else:
                    self.walk(original[index], replayed[index], child, depth + 1)
            return
        if original == replayed:
            self.unchanged += 1
        else:
            self.changes.append(StateChange(path=path, change_type=ChangeType.changed, original=original, replayed=replayed))


def diff_states(
    original: AgentState,
    replayed: AgentState,
    *,
    ignore_paths: Optional[Iterable[str]] = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> StateDiff:
    """Every added, removed and changed path between two states.

    Args:
        original: Baseline state
        replayed: State compared against the baseline
        ignore_paths: Exact paths to skip, e.g. ``{"as_of"}``
        max_depth: Nesting depth below which values are compared whole
    """
    walker = _Walker(ignore_paths or (), max_depth)
    walker.walk(original.model_dump(mode="json"), replayed.model_dump(mode="json"), "", 0)
    counts = {change_type: 0 for change_type in ChangeType}
    for change in walker.changes:
        counts[change.change_type] += 1
    return StateDiff(
        changes=walker.changes,
        summary=StateDiffSummary(
            added=counts[ChangeType.added],
            removed=counts[ChangeType.removed],
            changed=counts[ChangeType.changed],
            unchanged=walker.unchanged,
        ),
    )
