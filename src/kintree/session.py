"""Editing session: one store, one history, and the layout kept in step with them."""

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from kintree.errors import ValidationError, ValidationReason
from kintree.history import HistoryManager
from kintree.layout import LayoutOptions, compute_layout
from kintree.models import (
    ConsistencyWarning,
    LayoutResult,
    Person,
    RelationType,
    ViewMode,
    WarningKind,
)
from kintree.store import RelationshipStore
from kintree.validation import (
    check_relationship,
    detect_duplicates,
    fix_reciprocity,
    validate_add,
    validate_store,
)

logger = logging.getLogger(__name__)


@dataclass
class EditResult:
    """The person an edit produced plus any non-blocking warnings about it."""

    person: Person
    warnings: list[ConsistencyWarning] = field(default_factory=list)


def _new_person(data: Person | Mapping[str, Any]) -> Person:
    if isinstance(data, Person):
        return data
    record = dict(data)
    if record.get("birth_year") is None:
        raise ValidationError("birth_year is required", ValidationReason.INVALID_FIELD)
    record.setdefault("id", None)
    record["id"] = record["id"] or f"person_{uuid.uuid4().hex[:12]}"
    record["name"] = record.get("name") or "New Person"
    return Person.from_dict(record)


def _duplicate_warnings(person: Person, store: RelationshipStore) -> list[ConsistencyWarning]:
    return [
        ConsistencyWarning(
            WarningKind.POTENTIAL_DUPLICATE,
            person.id,
            f"{person.name} ({person.birth_year}) may duplicate {m.name} ({m.birth_year})",
            related_id=m.id,
        )
        for m in detect_duplicates(person, store)
    ]


class FamilyTreeSession:
    """
    Drives edits against a relationship store.

    Each mutation is validated and applied to a working copy. Only when it
    succeeds is the pre-edit state pushed to history and the copy swapped in,
    after which the layout is recomputed.
    """

    def __init__(
        self,
        store: RelationshipStore | None = None,
        root_id: str | None = None,
        options: LayoutOptions | None = None,
        max_history: int | None = None,
    ):
        self._store = store if store is not None else RelationshipStore()
        self._history = HistoryManager(max_history)
        self.options = options or LayoutOptions()
        self._root_id = root_id
        self._layout = LayoutResult()
        self._ensure_root()
        self._refresh()

    @property
    def store(self) -> RelationshipStore:
        """The live store. Edit it through the session so history stays valid."""
        return self._store

    @property
    def root_id(self) -> str | None:
        return self._root_id

    @property
    def layout(self) -> LayoutResult:
        return self._layout

    @property
    def history(self) -> HistoryManager:
        return self._history

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_root(self) -> None:
        if self._root_id is None or self._root_id not in self._store:
            ids = self._store.ids()
            self._root_id = ids[0] if ids else None

    def _refresh(self) -> None:
        self._layout = compute_layout(self._store, self._root_id, self.options)

    def _commit(self, working: RelationshipStore, label: str) -> None:
        self._history.push(self._store, label)
        self._store = working
        self._ensure_root()
        self._refresh()
        logger.info("%s (%d people)", label, len(working))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_person(self, data: Person | Mapping[str, Any]) -> EditResult:
        """Add a person, linking any references they list."""
        person = _new_person(data)
        working = self._store.copy()
        stored = working.add_person(person)
        warnings = _duplicate_warnings(stored, self._store)
        self._commit(working, f"Added {stored.name}")
        return EditResult(working.get(stored.id), warnings)

    def add_relative(
        self,
        target_id: str,
        relation_type: RelationType | str,
        data: Person | Mapping[str, Any],
    ) -> EditResult:
        """
        Add a new person as ``relation_type`` of ``target_id``.

        A new child also gets the target's first spouse as a parent. A new
        parent is married to the target's existing parent. A new sibling
        shares the target's parents.
        """
        relation_type = RelationType(relation_type)
        record = data.to_dict() if isinstance(data, Person) else dict(data)
        validate_add(self._store, target_id, relation_type, record)

        person = replace(_new_person(record), parents=[], children=[], spouses=[])
        working = self._store.copy()
        working.add_person(person)
        target = working.get(target_id)

        if relation_type == RelationType.CHILD:
            working.connect(person.id, target_id, RelationType.CHILD)
            if target.spouses:
                working.connect(person.id, target.spouses[0], RelationType.CHILD)
        elif relation_type == RelationType.PARENT:
            existing = list(target.parents)
            working.connect(person.id, target_id, RelationType.PARENT)
            for other_id in existing:
                working.connect(person.id, other_id, RelationType.SPOUSE)
        else:
            working.connect(person.id, target_id, relation_type)

        stored = working.get(person.id)
        warnings = check_relationship(stored, target, relation_type)
        warnings += _duplicate_warnings(stored, self._store)
        self._commit(working, f"Added {relation_type.value} {stored.name} to {target.name}")
        return EditResult(stored, warnings)

    def update_person(self, person_id: str, **changes: Any) -> EditResult:
        """Change descriptive fields and recheck ages against close relatives."""
        working = self._store.copy()
        updated = working.update_person(person_id, **changes)
        warnings = []
        if "birth_year" in changes or "death_year" in changes:
            for relation_type, ids in (
                (RelationType.CHILD, updated.parents),
                (RelationType.PARENT, updated.children),
                (RelationType.SPOUSE, updated.spouses),
            ):
                for other_id in ids:
                    other = working.find(other_id)
                    if other is not None:
                        warnings += check_relationship(updated, other, relation_type)
        self._commit(working, f"Updated {updated.name}")
        return EditResult(updated, warnings)

    def delete_person(self, person_id: str) -> Person:
        working = self._store.copy()
        removed = working.delete_person(person_id)
        self._commit(working, f"Deleted {removed.name}")
        return removed

    def connect(
        self, first_id: str, second_id: str, relation_type: RelationType | str
    ) -> EditResult:
        """Link two existing people; no history entry when already linked."""
        relation_type = RelationType(relation_type)
        working = self._store.copy()
        changed = working.connect(first_id, second_id, relation_type)
        first = working.get(first_id)
        warnings = check_relationship(first, working.get(second_id), relation_type)
        if changed:
            self._commit(working, f"Connected {first_id} as {relation_type.value} of {second_id}")
            return EditResult(first, warnings)
        return EditResult(self._store.get(first_id), warnings)

    def disconnect(self, first_id: str, second_id: str, relation_type: RelationType | str) -> bool:
        relation_type = RelationType(relation_type)
        working = self._store.copy()
        changed = working.disconnect(first_id, second_id, relation_type)
        if changed:
            self._commit(
                working, f"Disconnected {first_id} as {relation_type.value} of {second_id}"
            )
        return changed

    def fix_reciprocity(self) -> list[ConsistencyWarning]:
        working = self._store.copy()
        repairs = fix_reciprocity(working)
        if repairs:
            self._commit(working, f"Repaired {len(repairs)} references")
        return repairs

    def load(self, data: Mapping[str, Any], root_id: str | None = None) -> None:
        """Replace the store with imported data. Undoable like any edit."""
        working = RelationshipStore.from_dict(data)
        if root_id is not None:
            self._root_id = root_id
        self._commit(working, f"Loaded {len(working)} people")

    def export(self) -> dict[str, Any]:
        return self._store.to_dict()

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def can_undo(self) -> bool:
        return self._history.can_undo()

    def can_redo(self) -> bool:
        return self._history.can_redo()

    def undo(self) -> bool:
        if not self._history.can_undo():
            return False
        self._store = self._history.undo(self._store)
        self._ensure_root()
        self._refresh()
        return True

    def redo(self) -> bool:
        if not self._history.can_redo():
            return False
        self._store = self._history.redo(self._store)
        self._ensure_root()
        self._refresh()
        return True

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------

    def set_root(self, person_id: str) -> None:
        self._store.get(person_id)
        self._root_id = person_id
        self._refresh()

    def configure(self, **changes: Any) -> LayoutOptions:
        """Change layout options. Unknown option names raise TypeError."""
        self.options = replace(self.options, **changes)
        self._refresh()
        return self.options

    def focus_on(self, person_id: str | None) -> None:
        """Show the focus window around ``person_id``, or the full tree for None."""
        if person_id is None:
            self.configure(view_mode=ViewMode.FULL, focus_person_id=None)
            return
        self._store.get(person_id)
        self.configure(view_mode=ViewMode.FOCUS, focus_person_id=person_id)

    def validate(self) -> list[ConsistencyWarning]:
        return validate_store(self._store)
