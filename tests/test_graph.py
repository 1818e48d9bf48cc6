"""Test graph projection, components, focus windows and family queries."""

import pytest

from conftest import make_person
from kintree.errors import PersonNotFoundError
from kintree.graph import (
    build_graph,
    extract_focus_window,
    find_components,
    get_aunts_uncles,
    get_cousins,
    get_extended_family,
    get_grandparents,
    get_in_laws,
    get_nieces_nephews,
    get_step_siblings,
)
from kintree.models import Gender


@pytest.fixture
def big_family(three_generation_store):
    """Three generations plus C's sister K with husband L and son M."""
    store = three_generation_store
    store.add_person(make_person("K", 1984, Gender.FEMALE, name="Kate Smith", parents=["A", "B"]))
    store.add_person(make_person("L", 1983, name="Liam Green", spouses=["K"]))
    store.add_person(make_person("M", 2012, name="Max Green", parents=["K", "L"]))
    return store


class TestBuildGraph:
    """Tests for the networkx projection."""

    def test_edges(self, couple_store):
        """Parent edges point down, spouse edges go both ways."""
        G = build_graph(couple_store)
        assert G.number_of_nodes() == 3
        assert G.edges["A", "C"]["relationship_type"] == "PARENT_OF"
        assert G.edges["A", "B"]["relationship_type"] == "SPOUSE_OF"
        assert G.edges["B", "A"]["relationship_type"] == "SPOUSE_OF"
        assert not G.has_edge("C", "A")
        assert G.nodes["A"]["person_name"] == "Arthur Smith"


class TestFindComponents:
    """Tests for component discovery."""

    def test_single_component(self, three_generation_store):
        """Everyone connected by blood or marriage is one component."""
        components = find_components(three_generation_store, "A")
        assert len(components) == 1
        assert components[0][0] == "A"
        assert sorted(components[0]) == sorted(three_generation_store.ids())

    def test_root_component_first(self, two_family_store):
        """The start person's component comes first."""
        components = find_components(two_family_store, "F")
        assert [sorted(c) for c in components] == [["D", "E", "F"], ["A", "B", "C"]]

    def test_isolated_person(self, couple_store):
        """A person with no links is a component of one."""
        couple_store.add_person(make_person("Z"))
        assert find_components(couple_store)[-1] == ["Z"]


class TestFocusWindow:
    """Tests for focus window extraction."""

    def test_window_members(self, big_family):
        """The window holds immediate family and the spouse's parents and children."""
        window = extract_focus_window(big_family, "C")
        assert sorted(window.ids()) == ["A", "B", "C", "D", "E", "F", "G", "H", "K"]

    def test_references_restricted(self, big_family):
        """No reference points outside the window."""
        window = extract_focus_window(big_family, "C")
        for person in window:
            for ref in person.parents + person.children + person.spouses:
                assert ref in window
        assert window.get("K").spouses == []

    def test_source_untouched(self, big_family):
        """Extraction does not modify the source store."""
        before = big_family.copy()
        extract_focus_window(big_family, "C")
        assert big_family == before

    def test_bounded(self, big_family):
        """Window size is bounded by the person's immediate family."""
        for person_id in big_family.ids():
            bound = 1
            bound += len(big_family.get_parents(person_id))
            bound += len(big_family.get_siblings(person_id))
            bound += len(big_family.get_children(person_id))
            for spouse in big_family.get_spouses(person_id):
                bound += 1
                bound += len(big_family.get_parents(spouse.id))
                bound += len(big_family.get_children(spouse.id))
            assert len(extract_focus_window(big_family, person_id)) <= bound

    def test_missing_focus(self, big_family):
        """An unknown focus person raises PersonNotFoundError."""
        with pytest.raises(PersonNotFoundError):
            extract_focus_window(big_family, "nobody")


class TestExtendedFamily:
    """Tests for extended family queries."""

    def test_grandparents(self, big_family):
        """Grandparents are parents of parents."""
        assert [p.id for p in get_grandparents(big_family, "E")] == ["A", "B", "G", "H"]

    def test_aunts_uncles_and_cousins(self, big_family):
        """K is E's aunt and M is E's cousin."""
        assert [p.id for p in get_aunts_uncles(big_family, "E")] == ["K"]
        assert [p.id for p in get_cousins(big_family, "E")] == ["M"]

    def test_nieces_nephews(self, big_family):
        """C's children are K's nieces and nephews."""
        assert [p.id for p in get_nieces_nephews(big_family, "K")] == ["E", "F"]

    def test_in_laws(self, big_family):
        """In-laws are the spouse's parents and siblings."""
        assert [p.id for p in get_in_laws(big_family, "L")] == ["A", "B", "C"]
        assert [p.id for p in get_in_laws(big_family, "C")] == ["G", "H"]

    def test_step_siblings(self, couple_store):
        """Children of a step-parent are step-siblings."""
        couple_store.disconnect("B", "C", "parent")
        couple_store.add_person(make_person("S", 1978, parents=["B"]))
        assert [p.id for p in get_step_siblings(couple_store, "C")] == ["S"]
        assert [p.id for p in get_step_siblings(couple_store, "S")] == ["C"]

    def test_extended_family_bundle(self, big_family):
        """All groups are returned together."""
        family = get_extended_family(big_family, "E")
        assert set(family) == {
            "grandparents",
            "aunts_uncles",
            "cousins",
            "nieces_nephews",
            "in_laws",
            "step_siblings",
        }
        with pytest.raises(PersonNotFoundError):
            get_extended_family(big_family, "nobody")
