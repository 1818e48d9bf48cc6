"""Consistency checks for family tree data."""

import logging
from collections import deque
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

import networkx as nx

from kintree.config import settings
from kintree.errors import ValidationError, ValidationReason
from kintree.models import ConsistencyWarning, Person, RelationType, WarningKind

if TYPE_CHECKING:
    from kintree.store import RelationshipStore

logger = logging.getLogger(__name__)


# ============================================================================
# Blocking checks
# ============================================================================


def detect_cycle(store: "RelationshipStore", parent_id: str, child_id: str) -> bool:
    """
    Return True if making ``parent_id`` a parent of ``child_id`` would
    create circular ancestry, i.e. ``child_id`` is already an ancestor of
    ``parent_id`` (or they are the same person).
    """
    if parent_id == child_id:
        return True

    seen = {parent_id}
    queue = deque([parent_id])
    while queue:
        person = store.find(queue.popleft())
        if person is None:
            continue
        for ancestor_id in person.parents:
            if ancestor_id == child_id:
                return True
            if ancestor_id not in seen:
                seen.add(ancestor_id)
                queue.append(ancestor_id)
    return False


def _check_parent_link(store: "RelationshipStore", parent_id: str, child_id: str) -> None:
    child = store.get(child_id)
    if parent_id in child.parents:
        return
    if len(child.parents) >= 2:
        raise ValidationError(
            f"{child.name} already has two parents",
            ValidationReason.THIRD_PARENT,
            person_id=child_id,
            related_id=parent_id,
        )
    if detect_cycle(store, parent_id, child_id):
        raise ValidationError(
            f"Making {parent_id} a parent of {child_id} would create circular ancestry",
            ValidationReason.CYCLE,
            person_id=child_id,
            related_id=parent_id,
        )


def validate_connection(
    store: "RelationshipStore",
    first_id: str,
    second_id: str,
    rel_type: RelationType | str,
) -> None:
    """
    Check that ``first_id`` may become ``rel_type`` of ``second_id``.

    Raises:
        PersonNotFoundError: If either id is unknown.
        ValidationError: If the link breaks a structural rule.
    """
    rel_type = RelationType(rel_type)
    first = store.get(first_id)
    second = store.get(second_id)

    if first_id == second_id:
        raise ValidationError(
            f"{first.name} cannot be related to themselves",
            ValidationReason.SELF_REFERENCE,
            person_id=first_id,
        )

    if rel_type == RelationType.PARENT:
        _check_parent_link(store, first_id, second_id)
    elif rel_type == RelationType.CHILD:
        _check_parent_link(store, second_id, first_id)
    elif rel_type == RelationType.SIBLING:
        if first.parents:
            anchor, other = first, second
        elif second.parents:
            anchor, other = second, first
        else:
            raise ValidationError(
                f"Neither {first.name} nor {second.name} has parents to share",
                ValidationReason.SIBLING_WITHOUT_PARENTS,
                person_id=first_id,
                related_id=second_id,
            )
        adopted = [pid for pid in anchor.parents if pid not in other.parents]
        if len(other.parents) + len(adopted) > 2:
            raise ValidationError(
                f"{other.name} would end up with more than two parents",
                ValidationReason.THIRD_PARENT,
                person_id=other.id,
                related_id=anchor.id,
            )
        for parent_id in adopted:
            if detect_cycle(store, parent_id, other.id):
                raise ValidationError(
                    f"Making {parent_id} a parent of {other.id} would create circular ancestry",
                    ValidationReason.CYCLE,
                    person_id=other.id,
                    related_id=parent_id,
                )


def validate_add(
    store: "RelationshipStore",
    target_id: str,
    rel_type: RelationType | str,
    person_data: Mapping[str, Any] | None = None,
) -> None:
    """
    Check that a new person may be added as ``rel_type`` of ``target_id``
    before anything is created.
    """
    rel_type = RelationType(rel_type)
    target = store.get(target_id)

    if person_data:
        new_id = person_data.get("id")
        if new_id is not None and str(new_id) in store:
            raise ValidationError(
                f"Person ID {new_id} already exists",
                ValidationReason.DUPLICATE_ID,
                person_id=str(new_id),
            )
        birth = person_data.get("birth_year")
        death = person_data.get("death_year")
        if birth is not None and death is not None and int(death) < int(birth):
            raise ValidationError(
                f"Death year {death} is before birth year {birth}",
                ValidationReason.DEATH_BEFORE_BIRTH,
            )

    if rel_type == RelationType.PARENT and len(target.parents) >= 2:
        raise ValidationError(
            f"{target.name} already has two parents",
            ValidationReason.THIRD_PARENT,
            person_id=target_id,
        )
    if rel_type == RelationType.SIBLING and not target.parents:
        raise ValidationError(
            f"{target.name} has no parents to share with a sibling",
            ValidationReason.SIBLING_WITHOUT_PARENTS,
            person_id=target_id,
        )


# ============================================================================
# Non-blocking checks
# ============================================================================


def check_relationship(
    first: Person, second: Person, rel_type: RelationType | str
) -> list[ConsistencyWarning]:
    """Age plausibility of ``first`` being ``rel_type`` of ``second``."""
    rel_type = RelationType(rel_type)
    cfg = settings.validation
    warnings: list[ConsistencyWarning] = []

    if rel_type == RelationType.CHILD:
        return check_relationship(second, first, RelationType.PARENT)

    if rel_type == RelationType.PARENT:
        parent, child = first, second
        age = child.birth_year - parent.birth_year
        if age <= 0:
            warnings.append(
                ConsistencyWarning(
                    WarningKind.AGE_INCONSISTENCY,
                    child.id,
                    f"Parent {parent.name} ({parent.birth_year}) is not older than "
                    f"child {child.name} ({child.birth_year})",
                    related_id=parent.id,
                )
            )
        elif age < cfg.min_parent_age:
            warnings.append(
                ConsistencyWarning(
                    WarningKind.AGE_INCONSISTENCY,
                    child.id,
                    f"{parent.name} was only {age} when {child.name} was born",
                    related_id=parent.id,
                )
            )
        if parent.death_year is not None and parent.death_year < child.birth_year:
            warnings.append(
                ConsistencyWarning(
                    WarningKind.PARENT_DIED_BEFORE_CHILD,
                    child.id,
                    f"{parent.name} died ({parent.death_year}) before {child.name} "
                    f"was born ({child.birth_year})",
                    related_id=parent.id,
                )
            )
        return warnings

    gap = abs(first.birth_year - second.birth_year)
    limit = cfg.spouse_age_tolerance if rel_type == RelationType.SPOUSE else cfg.max_sibling_age_gap
    if gap > limit:
        warnings.append(
            ConsistencyWarning(
                WarningKind.LARGE_AGE_GAP,
                first.id,
                f"{first.name} and {second.name} ({rel_type.value}s) are {gap} years apart",
                related_id=second.id,
            )
        )
    return warnings


def detect_duplicates(
    candidate: Person | Mapping[str, Any],
    people: Iterable[Person],
    year_window: int | None = None,
) -> list[Person]:
    """
    Find existing people that look like ``candidate``: same name ignoring
    case, or same first name and a birth year within ``year_window``.
    """
    if year_window is None:
        year_window = settings.validation.duplicate_year_window

    if isinstance(candidate, Person):
        cand_id, name, birth = candidate.id, candidate.name, candidate.birth_year
    else:
        cand_id = candidate.get("id")
        name = candidate.get("name") or ""
        birth = candidate.get("birth_year")

    name = name.strip().lower()
    tokens = name.split()
    first_name = tokens[0] if tokens else ""

    matches = []
    for existing in people:
        if cand_id is not None and existing.id == str(cand_id):
            continue
        if name and existing.name.strip().lower() == name:
            matches.append(existing)
        elif (
            birth is not None
            and first_name
            and existing.first_name == first_name
            and abs(existing.birth_year - int(birth)) <= year_window
        ):
            matches.append(existing)
    return matches


# ============================================================================
# Whole-store checks
# ============================================================================


def fix_reciprocity(store: "RelationshipStore") -> list[ConsistencyWarning]:
    """
    Add the missing side of every one-sided reference, in place.

    Only adds references. A repair that would give a child a third parent is
    skipped and logged. Running it twice changes nothing the second time.

    Returns:
        One RECIPROCITY_GAP warning per repair made.
    """
    repairs: list[ConsistencyWarning] = []

    for person in store:
        for parent_id in list(person.parents):
            parent = store.find(parent_id)
            if parent is not None and person.id not in parent.children:
                parent.children.append(person.id)
                repairs.append(
                    ConsistencyWarning(
                        WarningKind.RECIPROCITY_GAP,
                        parent.id,
                        f"Added {person.name} to the children of {parent.name}",
                        related_id=person.id,
                    )
                )

        for child_id in list(person.children):
            child = store.find(child_id)
            if child is None or person.id in child.parents:
                continue
            if len(child.parents) >= 2:
                logger.warning(
                    "Cannot add %s as parent of %s: already has two parents", person.id, child.id
                )
                continue
            child.parents.append(person.id)
            repairs.append(
                ConsistencyWarning(
                    WarningKind.RECIPROCITY_GAP,
                    child.id,
                    f"Added {person.name} to the parents of {child.name}",
                    related_id=person.id,
                )
            )

        for spouse_id in list(person.spouses):
            spouse = store.find(spouse_id)
            if spouse is not None and person.id not in spouse.spouses:
                spouse.spouses.append(person.id)
                repairs.append(
                    ConsistencyWarning(
                        WarningKind.RECIPROCITY_GAP,
                        spouse.id,
                        f"Added {person.name} to the spouses of {spouse.name}",
                        related_id=person.id,
                    )
                )

    if repairs:
        logger.info("Repaired %d one-sided references", len(repairs))
    return repairs


def validate_store(store: "RelationshipStore") -> list[ConsistencyWarning]:
    """
    Validate the whole store for:
    - References to people that do not exist
    - One-sided references
    - More than two parents
    - Circular ancestry
    - Implausible ages
    - Potential duplicates

    Returns a list of warnings. Nothing is modified.
    """
    warnings: list[ConsistencyWarning] = []
    mirrors = {"parents": "children", "children": "parents", "spouses": "spouses"}

    for person in store:
        for field_name, mirror in mirrors.items():
            for other_id in getattr(person, field_name):
                other = store.find(other_id)
                if other is None:
                    warnings.append(
                        ConsistencyWarning(
                            WarningKind.ORPHANED_REFERENCE,
                            person.id,
                            f"{person.name} lists unknown person {other_id} in {field_name}",
                            related_id=other_id,
                        )
                    )
                elif person.id not in getattr(other, mirror):
                    warnings.append(
                        ConsistencyWarning(
                            WarningKind.RECIPROCITY_GAP,
                            person.id,
                            f"{person.name} lists {other.name} in {field_name} but "
                            f"{other.name} does not list them in {mirror}",
                            related_id=other.id,
                        )
                    )

        if len(person.parents) > 2:
            warnings.append(
                ConsistencyWarning(
                    WarningKind.TOO_MANY_PARENTS,
                    person.id,
                    f"{person.name} has {len(person.parents)} parents",
                )
            )

        for parent in store.get_parents(person.id):
            warnings.extend(check_relationship(parent, person, RelationType.PARENT))

    # Circular ancestry over parent edges only
    parent_edges = [(pid, p.id) for p in store for pid in p.parents if pid in store]
    parent_edges += [(p.id, cid) for p in store for cid in p.children if cid in store]
    parent_graph = nx.DiGraph(parent_edges)
    for component in nx.strongly_connected_components(parent_graph):
        if len(component) > 1:
            members = sorted(component)
            warnings.append(
                ConsistencyWarning(
                    WarningKind.CIRCULAR_ANCESTRY,
                    members[0],
                    f"Circular ancestry between {members}",
                )
            )
    for node in parent_graph.nodes:
        if parent_graph.has_edge(node, node):
            warnings.append(
                ConsistencyWarning(WarningKind.CIRCULAR_ANCESTRY, node, f"{node} is their own parent")
            )

    people = list(store)
    for index, person in enumerate(people):
        for match in detect_duplicates(person, people[index + 1 :]):
            warnings.append(
                ConsistencyWarning(
                    WarningKind.POTENTIAL_DUPLICATE,
                    person.id,
                    f"{person.name} ({person.birth_year}) may duplicate "
                    f"{match.name} ({match.birth_year})",
                    related_id=match.id,
                )
            )

    return warnings
