"""In-memory relationship store: people keyed by id, references held as ids."""

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import replace
from typing import Any

from kintree.errors import KinTreeError, PersonNotFoundError, ValidationError, ValidationReason
from kintree.models import (
    DESCRIPTIVE_FIELDS,
    ParentRelationship,
    Person,
    RelationType,
    Relationship,
    SiblingRelationship,
    SpouseRelationship,
    relationship_from_dict,
)
from kintree.validation import validate_connection

logger = logging.getLogger(__name__)


def _clone(person: Person) -> Person:
    return replace(
        person,
        parents=list(person.parents),
        children=list(person.children),
        spouses=list(person.spouses),
    )


class RelationshipStore:
    """
    Arena of people keyed by id.

    Every reference between people (parents, children, spouses) is an id
    lookup into the arena. Mutations validate first and then update both
    sides of a relationship, so a rejected edit leaves the store untouched.

    Queries return the stored ``Person`` objects. Change their relation
    lists through ``connect``/``disconnect`` only.
    """

    def __init__(self, people: Iterable[Person] = ()):
        self._people: dict[str, Person] = {}
        for person in people:
            self._people[person.id] = person

    def __len__(self) -> int:
        return len(self._people)

    def __contains__(self, person_id: object) -> bool:
        return person_id in self._people

    def __iter__(self) -> Iterator[Person]:
        return iter(list(self._people.values()))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RelationshipStore):
            return NotImplemented
        return self.people_dict() == other.people_dict()

    def __repr__(self) -> str:
        return f"RelationshipStore({len(self._people)} people)"

    def ids(self) -> list[str]:
        return list(self._people)

    def copy(self) -> "RelationshipStore":
        return RelationshipStore(_clone(p) for p in self._people.values())

    def subset(self, person_ids: Iterable[str]) -> "RelationshipStore":
        """Copy of the given people with references restricted to the subset."""
        keep = [pid for pid in dict.fromkeys(person_ids) if pid in self._people]
        included = set(keep)
        people = []
        for pid in keep:
            person = self._people[pid]
            people.append(
                replace(
                    person,
                    parents=[i for i in person.parents if i in included],
                    children=[i for i in person.children if i in included],
                    spouses=[i for i in person.spouses if i in included],
                )
            )
        return RelationshipStore(people)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, person_id: str) -> Person:
        try:
            return self._people[person_id]
        except KeyError:
            raise PersonNotFoundError(person_id) from None

    def find(self, person_id: str) -> Person | None:
        return self._people.get(person_id)

    def _resolve(self, ids: Iterable[str]) -> list[Person]:
        return [self._people[i] for i in ids if i in self._people]

    def get_parents(self, person_id: str) -> list[Person]:
        return self._resolve(self.get(person_id).parents)

    def get_children(self, person_id: str) -> list[Person]:
        return self._resolve(self.get(person_id).children)

    def get_spouses(self, person_id: str) -> list[Person]:
        return self._resolve(self.get(person_id).spouses)

    def get_siblings(self, person_id: str) -> list[Person]:
        """People sharing at least one parent with ``person_id``."""
        person = self.get(person_id)
        seen: set[str] = {person_id}
        siblings = []
        for parent in self._resolve(person.parents):
            for child_id in parent.children:
                if child_id not in seen and child_id in self._people:
                    seen.add(child_id)
                    siblings.append(self._people[child_id])
        return siblings

    def relationships(self, include_siblings: bool = False) -> list[Relationship]:
        """Normalised edge list derived from the embedded references."""
        edges: list[Relationship] = []
        parent_pairs: set[tuple[str, str]] = set()
        spouse_pairs: set[frozenset[str]] = set()

        for person in self._people.values():
            pairs = [(person.id, c) for c in person.children]
            pairs += [(p, person.id) for p in person.parents]
            for pair in pairs:
                if pair not in parent_pairs:
                    parent_pairs.add(pair)
                    edges.append(ParentRelationship(parent_id=pair[0], child_id=pair[1]))

            for spouse_id in person.spouses:
                key = frozenset((person.id, spouse_id))
                if key not in spouse_pairs:
                    spouse_pairs.add(key)
                    edges.append(SpouseRelationship(person1_id=person.id, person2_id=spouse_id))

        if include_siblings:
            for person in self._people.values():
                for sibling in self.get_siblings(person.id):
                    if person.id < sibling.id:
                        edges.append(
                            SiblingRelationship(person1_id=person.id, person2_id=sibling.id)
                        )

        return edges

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_person(self, person: Person) -> Person:
        """
        Add a person. References listed on ``person`` are linked with
        ``connect``; if any link is rejected the whole add is rolled back.
        """
        if person.id in self._people:
            raise ValidationError(
                f"Person ID {person.id} already exists",
                ValidationReason.DUPLICATE_ID,
                person_id=person.id,
            )

        links = [(pid, RelationType.CHILD) for pid in person.parents]
        links += [(cid, RelationType.PARENT) for cid in person.children]
        links += [(sid, RelationType.SPOUSE) for sid in person.spouses]

        stored = replace(person, parents=[], children=[], spouses=[])
        self._people[stored.id] = stored
        try:
            for other_id, rel_type in links:
                self.connect(stored.id, other_id, rel_type)
        except KinTreeError:
            self.delete_person(stored.id)
            raise

        logger.debug("Added person %s (%s)", stored.id, stored.name)
        return stored

    def update_person(self, person_id: str, **changes: Any) -> Person:
        """Edit descriptive fields. Relation lists change via connect/disconnect."""
        person = self.get(person_id)
        unknown = sorted(set(changes) - set(DESCRIPTIVE_FIELDS))
        if unknown:
            raise ValidationError(
                f"Cannot update fields {unknown} of {person_id}",
                ValidationReason.INVALID_FIELD,
                person_id=person_id,
            )
        updated = replace(_clone(person), **changes)
        self._people[person_id] = updated
        return updated

    def delete_person(self, person_id: str) -> Person:
        """Remove a person and every reference to them."""
        person = self.get(person_id)
        for other in self._people.values():
            if person_id in other.parents:
                other.parents = [i for i in other.parents if i != person_id]
            if person_id in other.children:
                other.children = [i for i in other.children if i != person_id]
            if person_id in other.spouses:
                other.spouses = [i for i in other.spouses if i != person_id]
        del self._people[person_id]
        logger.debug("Deleted person %s", person_id)
        return person

    def connect(self, first_id: str, second_id: str, rel_type: RelationType | str) -> bool:
        """
        Link two people. ``rel_type`` is what ``first_id`` is to ``second_id``
        (``parent``: first is parent of second). A sibling link makes the
        parentless side adopt the other side's parents.

        Returns:
            True if any reference was added, False if already connected.
        """
        rel_type = RelationType(rel_type)
        validate_connection(self, first_id, second_id, rel_type)

        if rel_type == RelationType.PARENT:
            return self._link_parent(first_id, second_id)
        if rel_type == RelationType.CHILD:
            return self._link_parent(second_id, first_id)
        if rel_type == RelationType.SPOUSE:
            return self._link_spouse(first_id, second_id)

        first = self._people[first_id]
        anchor, other = (first_id, second_id) if first.parents else (second_id, first_id)
        changed = False
        for parent_id in list(self._people[anchor].parents):
            changed = self._link_parent(parent_id, other) or changed
        return changed

    def disconnect(self, first_id: str, second_id: str, rel_type: RelationType | str) -> bool:
        """
        Remove a link. Disconnecting siblings detaches ``second_id`` from
        the parents the two share.

        Returns:
            True if any reference was removed.
        """
        rel_type = RelationType(rel_type)
        first = self.get(first_id)
        second = self.get(second_id)

        if rel_type == RelationType.PARENT:
            return self._unlink_parent(first_id, second_id)
        if rel_type == RelationType.CHILD:
            return self._unlink_parent(second_id, first_id)
        if rel_type == RelationType.SPOUSE:
            changed = first_id in second.spouses or second_id in first.spouses
            first.spouses = [i for i in first.spouses if i != second_id]
            second.spouses = [i for i in second.spouses if i != first_id]
            return changed

        shared = [pid for pid in first.parents if pid in second.parents]
        for parent_id in shared:
            self._unlink_parent(parent_id, second_id)
        return bool(shared)

    def _link_parent(self, parent_id: str, child_id: str) -> bool:
        parent = self._people[parent_id]
        child = self._people[child_id]
        changed = False
        if child_id not in parent.children:
            parent.children.append(child_id)
            changed = True
        if parent_id not in child.parents:
            child.parents.append(parent_id)
            changed = True
        return changed

    def _unlink_parent(self, parent_id: str, child_id: str) -> bool:
        parent = self._people[parent_id]
        child = self._people[child_id]
        changed = child_id in parent.children or parent_id in child.parents
        parent.children = [i for i in parent.children if i != child_id]
        child.parents = [i for i in child.parents if i != parent_id]
        return changed

    def _link_spouse(self, first_id: str, second_id: str) -> bool:
        first = self._people[first_id]
        second = self._people[second_id]
        changed = False
        if second_id not in first.spouses:
            first.spouses.append(second_id)
            changed = True
        if first_id not in second.spouses:
            second.spouses.append(first_id)
            changed = True
        return changed

    # ------------------------------------------------------------------
    # Persistence boundary
    # ------------------------------------------------------------------

    def people_dict(self) -> dict[str, dict[str, Any]]:
        return {pid: p.to_dict() for pid, p in self._people.items()}

    def to_dict(self) -> dict[str, Any]:
        """JSON-serialisable snapshot: embedded people plus the edge list."""
        return {
            "people": self.people_dict(),
            "relationships": [r.to_dict() for r in self.relationships()],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RelationshipStore":
        """
        Load a snapshot in embedded form, edge-list form, or both.

        Import is raw: no rule is enforced, so run the consistency checks
        on the result. Edges naming unknown people are skipped.
        """
        people_data = data.get("people") or {}
        records = people_data.values() if isinstance(people_data, Mapping) else people_data
        store = cls(Person.from_dict(record) for record in records)

        for edge in data.get("relationships") or []:
            store._apply_edge(relationship_from_dict(edge))
        return store

    def _apply_edge(self, edge: Relationship) -> None:
        missing = [i for i in (edge.from_id, edge.to_id) if i not in self._people]
        if missing:
            logger.warning("Skipping %s edge %s: unknown people %s", edge.type.value, edge.id, missing)
            return

        if isinstance(edge, ParentRelationship):
            self._link_parent(edge.parent_id, edge.child_id)
        elif isinstance(edge, SpouseRelationship):
            self._link_spouse(edge.person1_id, edge.person2_id)
        else:
            first = self._people[edge.person1_id]
            second = self._people[edge.person2_id]
            if first.parents:
                anchor, other = first, second
            elif second.parents:
                anchor, other = second, first
            else:
                logger.warning("Skipping sibling edge %s: neither person has parents", edge.id)
                return
            for parent_id in list(anchor.parents):
                if parent_id in self._people:
                    self._link_parent(parent_id, other.id)
