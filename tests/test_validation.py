"""Test the consistency checks."""

import logging

import pytest

from conftest import assert_reciprocal, make_person
from kintree.errors import PersonNotFoundError, ValidationError, ValidationReason
from kintree.models import Gender, RelationType, WarningKind
from kintree.store import RelationshipStore
from kintree.validation import (
    check_relationship,
    detect_cycle,
    detect_duplicates,
    fix_reciprocity,
    validate_add,
    validate_store,
)


def raw_store(*records):
    """Store built without validation, like an import."""
    return RelationshipStore.from_dict({"people": list(records)})


class TestValidateAdd:
    """Tests for pre-add checks."""

    def test_third_parent(self, couple_store):
        """A child with two parents cannot get another."""
        with pytest.raises(ValidationError) as exc:
            validate_add(couple_store, "C", RelationType.PARENT)
        assert exc.value.reason == ValidationReason.THIRD_PARENT

    def test_sibling_needs_parents(self, couple_store):
        """A sibling can only be added to someone with parents."""
        with pytest.raises(ValidationError) as exc:
            validate_add(couple_store, "A", "sibling")
        assert exc.value.reason == ValidationReason.SIBLING_WITHOUT_PARENTS
        validate_add(couple_store, "C", "sibling")

    def test_missing_target(self, couple_store):
        """An unknown target raises PersonNotFoundError."""
        with pytest.raises(PersonNotFoundError):
            validate_add(couple_store, "nobody", "child")

    def test_duplicate_id_and_dates(self, couple_store):
        """Incoming data is checked for id clashes and date order."""
        with pytest.raises(ValidationError) as exc:
            validate_add(couple_store, "C", "child", {"id": "A", "birth_year": 2000})
        assert exc.value.reason == ValidationReason.DUPLICATE_ID

        with pytest.raises(ValidationError) as exc:
            validate_add(couple_store, "C", "child", {"birth_year": 2000, "death_year": 1999})
        assert exc.value.reason == ValidationReason.DEATH_BEFORE_BIRTH


class TestDetectCycle:
    """Tests for cycle detection."""

    def test_self(self, couple_store):
        """A person cannot be their own parent."""
        assert detect_cycle(couple_store, "A", "A")

    def test_descendant_as_parent(self, three_generation_store):
        """A grandchild cannot become a grandparent's parent."""
        assert detect_cycle(three_generation_store, "E", "A")
        assert detect_cycle(three_generation_store, "C", "A")

    def test_unrelated(self, three_generation_store):
        """Linking unrelated branches is fine."""
        assert not detect_cycle(three_generation_store, "G", "A")
        assert not detect_cycle(three_generation_store, "A", "E")


class TestCheckRelationship:
    """Tests for non-blocking age checks."""

    def test_young_parent(self):
        """A parent under the minimum age is flagged."""
        parent = make_person("p", 1990)
        child = make_person("c", 2000)
        warnings = check_relationship(parent, child, RelationType.PARENT)
        assert [w.kind for w in warnings] == [WarningKind.AGE_INCONSISTENCY]

    def test_parent_younger_than_child(self):
        """A parent born after the child is flagged."""
        warnings = check_relationship(make_person("c", 2000), make_person("p", 1970), "child")
        assert warnings == []
        warnings = check_relationship(make_person("p", 2001), make_person("c", 2000), "parent")
        assert warnings[0].kind == WarningKind.AGE_INCONSISTENCY

    def test_parent_died_before_child(self):
        """A parent dead before the birth is flagged."""
        parent = make_person("p", 1940, death_year=1975)
        warnings = check_relationship(parent, make_person("c", 1980), "parent")
        assert [w.kind for w in warnings] == [WarningKind.PARENT_DIED_BEFORE_CHILD]

    def test_posthumous_birth_same_year(self):
        """Dying in the child's birth year is not flagged."""
        parent = make_person("p", 1940, death_year=1980)
        assert check_relationship(parent, make_person("c", 1980), "parent") == []

    def test_spouse_gap(self):
        """Spouses far apart in age are flagged, close ones are not."""
        assert check_relationship(make_person("a", 1950), make_person("b", 1985), "spouse")
        assert not check_relationship(make_person("a", 1950), make_person("b", 1975), "spouse")

    def test_sibling_gap(self):
        """Siblings more than fifty years apart are flagged."""
        warnings = check_relationship(make_person("a", 1900), make_person("b", 1960), "sibling")
        assert warnings[0].kind == WarningKind.LARGE_AGE_GAP


class TestDetectDuplicates:
    """Tests for duplicate suggestions."""

    def test_exact_name(self, couple_store):
        """Names match ignoring case and surrounding space."""
        matches = detect_duplicates({"name": "  arthur SMITH ", "birth_year": 1900}, couple_store)
        assert [m.id for m in matches] == ["A"]

    def test_first_name_and_year(self, couple_store):
        """Same first name within the year window matches."""
        matches = detect_duplicates({"name": "Arthur Jones", "birth_year": 1952}, couple_store)
        assert [m.id for m in matches] == ["A"]
        assert detect_duplicates({"name": "Arthur Jones", "birth_year": 1960}, couple_store) == []

    def test_window_is_tunable(self, couple_store):
        """A wider window finds more."""
        candidate = {"name": "Arthur Jones", "birth_year": 1960}
        assert detect_duplicates(candidate, couple_store, year_window=10)

    def test_ignores_self(self, couple_store):
        """A person is never their own duplicate."""
        assert detect_duplicates(couple_store.get("A"), couple_store) == []


class TestFixReciprocity:
    """Tests for reference repair."""

    def test_fills_gaps(self):
        """Missing reverse references are added."""
        store = raw_store(
            {"id": "a", "name": "A", "birth_year": 1950, "children": ["c"], "spouses": ["b"]},
            {"id": "b", "name": "B", "birth_year": 1952},
            {"id": "c", "name": "C", "birth_year": 1980, "parents": ["b"]},
        )
        repairs = fix_reciprocity(store)
        assert len(repairs) == 3
        assert all(r.kind == WarningKind.RECIPROCITY_GAP for r in repairs)
        assert sorted(store.get("c").parents) == ["a", "b"]
        assert store.get("b").children == ["c"]
        assert store.get("b").spouses == ["a"]
        assert_reciprocal(store)

    def test_idempotent(self):
        """A second run finds nothing to do."""
        store = raw_store(
            {"id": "a", "name": "A", "birth_year": 1950, "children": ["c"]},
            {"id": "c", "name": "C", "birth_year": 1980},
        )
        fix_reciprocity(store)
        snapshot = store.copy()
        assert fix_reciprocity(store) == []
        assert store == snapshot

    def test_never_adds_third_parent(self, caplog):
        """A repair that would give a third parent is skipped and logged."""
        store = raw_store(
            {"id": "a", "name": "A", "birth_year": 1950, "children": ["c"]},
            {"id": "b", "name": "B", "birth_year": 1950, "children": ["c"]},
            {"id": "x", "name": "X", "birth_year": 1950, "children": ["c"]},
            {"id": "c", "name": "C", "birth_year": 1980, "parents": ["a", "b"]},
        )
        with caplog.at_level(logging.WARNING, logger="kintree.validation"):
            fix_reciprocity(store)
        assert store.get("c").parents == ["a", "b"]
        assert "already has two parents" in caplog.text

    def test_ignores_unknown_ids(self):
        """References to missing people are left for validate_store."""
        store = raw_store({"id": "a", "name": "A", "birth_year": 1950, "parents": ["ghost"]})
        assert fix_reciprocity(store) == []
        assert store.get("a").parents == ["ghost"]


class TestValidateStore:
    """Tests for whole-store validation."""

    def test_clean_store(self, three_generation_store):
        """A consistent store has no warnings."""
        assert validate_store(three_generation_store) == []

    def test_reports_problems(self):
        """Each kind of problem is reported."""
        store = raw_store(
            {"id": "a", "name": "Ann Lee", "gender": "female", "birth_year": 1950, "parents": ["c"], "children": ["c"]},
            {"id": "c", "name": "Cid Lee", "birth_year": 1945, "parents": ["a"], "children": ["a"]},
            {"id": "d", "name": "Dan Ray", "birth_year": 1980, "parents": ["a", "c", "e"]},
            {"id": "e", "name": "Eve Ray", "gender": "female", "birth_year": 1950},
            {"id": "f", "name": "ann lee", "gender": "female", "birth_year": 1990, "spouses": ["zz"]},
        )
        kinds = {w.kind for w in validate_store(store)}
        assert WarningKind.CIRCULAR_ANCESTRY in kinds
        assert WarningKind.TOO_MANY_PARENTS in kinds
        assert WarningKind.RECIPROCITY_GAP in kinds
        assert WarningKind.ORPHANED_REFERENCE in kinds
        assert WarningKind.POTENTIAL_DUPLICATE in kinds
        assert WarningKind.AGE_INCONSISTENCY in kinds

    def test_duplicates_reported_once(self):
        """A duplicate pair gives one warning."""
        store = raw_store(
            {"id": "a", "name": "Sam Hill", "gender": Gender.MALE, "birth_year": 1950},
            {"id": "b", "name": "Sam Hill", "gender": Gender.MALE, "birth_year": 1950},
        )
        warnings = validate_store(store)
        assert len(warnings) == 1
        assert warnings[0].related_id == "b"
