"""Pytest fixtures for kintree tests."""

import pytest

from kintree.models import Gender, Person
from kintree.store import RelationshipStore


def make_person(person_id, birth_year=1950, gender=Gender.MALE, name=None, **kwargs):
    """Person with sensible defaults for tests."""
    return Person(
        id=person_id,
        name=name or f"Person {person_id}",
        gender=gender,
        birth_year=birth_year,
        **kwargs,
    )


@pytest.fixture
def empty_store():
    """Store with nobody in it."""
    return RelationshipStore()


def _build_couple_store():
    """A (1950) married to B (1952), C (1980) child of both."""
    store = RelationshipStore()
    store.add_person(make_person("A", 1950, Gender.MALE, name="Arthur Smith"))
    store.add_person(make_person("B", 1952, Gender.FEMALE, name="Beatrice Smith", spouses=["A"]))
    store.add_person(make_person("C", 1980, Gender.MALE, name="Charles Smith", parents=["A", "B"]))
    return store


@pytest.fixture
def couple_store():
    """A (1950) married to B (1952), C (1980) child of both."""
    return _build_couple_store()


@pytest.fixture
def three_generation_store():
    """Couple store plus C's wife D, their children E and F, and D's parents G and H."""
    store = _build_couple_store()
    store.add_person(make_person("G", 1925, Gender.MALE, name="George Jones"))
    store.add_person(make_person("H", 1928, Gender.FEMALE, name="Helen Jones", spouses=["G"]))
    store.add_person(
        make_person("D", 1982, Gender.FEMALE, name="Diana Jones", parents=["G", "H"], spouses=["C"])
    )
    store.add_person(make_person("E", 2008, Gender.MALE, name="Edward Smith", parents=["C", "D"]))
    store.add_person(make_person("F", 2010, Gender.FEMALE, name="Fiona Smith", parents=["C", "D"]))
    return store


@pytest.fixture
def two_family_store():
    """Couple store plus an unrelated family D + E with child F."""
    store = _build_couple_store()
    store.add_person(make_person("D", 1960, Gender.MALE, name="David Brown"))
    store.add_person(make_person("E", 1961, Gender.FEMALE, name="Eva Brown", spouses=["D"]))
    store.add_person(make_person("F", 1990, Gender.FEMALE, name="Frances Brown", parents=["D", "E"]))
    return store


def assert_reciprocal(store):
    """Every reference in the store is recorded on both sides."""
    for person in store:
        for parent_id in person.parents:
            assert person.id in store.get(parent_id).children
        for child_id in person.children:
            assert person.id in store.get(child_id).parents
        for spouse_id in person.spouses:
            assert person.id in store.get(spouse_id).spouses
