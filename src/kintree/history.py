"""Bounded undo/redo history of whole-store snapshots."""

import logging
from collections import deque
from dataclasses import dataclass, field

from kintree.config import settings
from kintree.models import DESCRIPTIVE_FIELDS, Person
from kintree.store import RelationshipStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistorySnapshot:
    """A private copy of the store taken before a mutation."""

    store: RelationshipStore
    label: str = ""

    @classmethod
    def capture(cls, store: RelationshipStore, label: str = "") -> "HistorySnapshot":
        return cls(store=store.copy(), label=label)

    def restore(self) -> RelationshipStore:
        # hand out a copy so the snapshot itself is never mutated
        return self.store.copy()


class HistoryManager:
    """
    Two bounded stacks of snapshots.

    ``push`` records the state before a mutation and clears the redo stack.
    The oldest undo entry is evicted once ``max_depth`` is reached.
    """

    def __init__(self, max_depth: int | None = None):
        if max_depth is None:
            max_depth = settings.history.max_depth
        if max_depth < 1:
            raise ValueError(f"History depth must be at least 1, got {max_depth}")
        self.max_depth = max_depth
        self._past: deque[HistorySnapshot] = deque(maxlen=max_depth)
        self._future: deque[HistorySnapshot] = deque(maxlen=max_depth)

    def push(self, store: RelationshipStore, label: str = "") -> HistorySnapshot:
        snapshot = HistorySnapshot.capture(store, label)
        self._past.append(snapshot)
        self._future.clear()
        logger.debug("History push %r (%d undo entries)", label, len(self._past))
        return snapshot

    def undo(self, current: RelationshipStore) -> RelationshipStore:
        """Return the previous state, or ``current`` when there is nothing to undo."""
        if not self._past:
            return current
        snapshot = self._past.pop()
        self._future.appendleft(HistorySnapshot.capture(current, snapshot.label))
        logger.debug("Undo %r", snapshot.label)
        return snapshot.restore()

    def redo(self, current: RelationshipStore) -> RelationshipStore:
        """Return the next state, or ``current`` when there is nothing to redo."""
        if not self._future:
            return current
        snapshot = self._future.popleft()
        self._past.append(HistorySnapshot.capture(current, snapshot.label))
        logger.debug("Redo %r", snapshot.label)
        return snapshot.restore()

    def can_undo(self) -> bool:
        return bool(self._past)

    def can_redo(self) -> bool:
        return bool(self._future)

    @property
    def undo_label(self) -> str | None:
        return self._past[-1].label if self._past else None

    @property
    def redo_label(self) -> str | None:
        return self._future[0].label if self._future else None

    def clear(self) -> None:
        self._past.clear()
        self._future.clear()


# ============================================================================
# Comparison
# ============================================================================


@dataclass
class StoreDiff:
    added: list[Person] = field(default_factory=list)
    removed: list[Person] = field(default_factory=list)
    modified: list[tuple[Person, list[str]]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.modified)


def diff_stores(before: RelationshipStore, after: RelationshipStore) -> StoreDiff:
    """
    Compare two stores person by person.

    Args:
        before: The earlier state
        after: The later state

    Returns:
        People only in ``after``, people only in ``before``, and people in both
        whose fields differ, with the names of the changed fields.
    """
    diff = StoreDiff()
    fields = DESCRIPTIVE_FIELDS + ("parents", "children", "spouses")

    for person in after:
        old = before.find(person.id)
        if old is None:
            diff.added.append(person)
            continue
        changed = [f for f in fields if getattr(old, f) != getattr(person, f)]
        if changed:
            diff.modified.append((person, changed))

    diff.removed = [p for p in before if p.id not in after]
    return diff
