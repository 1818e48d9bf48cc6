"""NetworkX graph building and family queries over a relationship store."""

import networkx as nx

from kintree.models import Person
from kintree.store import RelationshipStore


def build_graph(store: RelationshipStore) -> nx.DiGraph:
    """
    Build a NetworkX directed graph from the store.

    Parent edges point parent -> child with ``relationship_type="PARENT_OF"``.
    Spouse edges are added in both directions with ``"SPOUSE_OF"``.
    References to unknown people are left out.
    """
    G = nx.DiGraph()

    for person in store:
        G.add_node(
            person.id,
            person_name=person.name,
            gender=person.gender.value,
            birth_year=person.birth_year,
            death_year=person.death_year,
        )

    for person in store:
        for child_id in person.children:
            if child_id in store:
                G.add_edge(person.id, child_id, relationship_type="PARENT_OF")
        for parent_id in person.parents:
            if parent_id in store:
                G.add_edge(parent_id, person.id, relationship_type="PARENT_OF")
        for spouse_id in person.spouses:
            if spouse_id in store:
                G.add_edge(person.id, spouse_id, relationship_type="SPOUSE_OF")

    return G


def find_components(store: RelationshipStore, start_id: str | None = None) -> list[list[str]]:
    """
    Split the store into connected components over parent, child and spouse
    links.

    Args:
        store: The relationship store
        start_id: Person whose component comes first (usually the layout root)

    Returns:
        Member ids per component in BFS order. Components after the first
        follow store insertion order.
    """
    undirected = build_graph(store).to_undirected()
    seeds = store.ids()
    if start_id is not None and start_id in undirected:
        seeds = [start_id] + seeds

    visited: set[str] = set()
    components = []
    for seed in seeds:
        if seed in visited:
            continue
        members = [seed] + [v for _, v in nx.bfs_edges(undirected, seed)]
        visited.update(members)
        components.append(members)
    return components


def extract_focus_window(store: RelationshipStore, focus_id: str) -> RelationshipStore:
    """
    Extract the immediate family around one person.

    The window holds the focus person, their parents, siblings, children and
    spouses, plus each spouse's parents and children. References are
    restricted to the window.

    Raises:
        PersonNotFoundError: If ``focus_id`` is not in the store.
    """
    focus = store.get(focus_id)

    ids = [focus_id]
    ids += [p.id for p in store.get_parents(focus_id)]
    ids += [p.id for p in store.get_siblings(focus_id)]
    ids += [p.id for p in store.get_children(focus_id)]
    for spouse in store.get_spouses(focus.id):
        ids.append(spouse.id)
        ids += [p.id for p in store.get_parents(spouse.id)]
        ids += [p.id for p in store.get_children(spouse.id)]

    return store.subset(ids)


# ============================================================================
# Extended family
# ============================================================================


def _unique(people: list[Person], exclude: set[str]) -> list[Person]:
    seen = set(exclude)
    result = []
    for person in people:
        if person.id not in seen:
            seen.add(person.id)
            result.append(person)
    return result


def get_grandparents(store: RelationshipStore, person_id: str) -> list[Person]:
    found = [gp for p in store.get_parents(person_id) for gp in store.get_parents(p.id)]
    return _unique(found, {person_id})


def get_aunts_uncles(store: RelationshipStore, person_id: str) -> list[Person]:
    parents = store.get_parents(person_id)
    found = [s for p in parents for s in store.get_siblings(p.id)]
    return _unique(found, {person_id} | {p.id for p in parents})


def get_cousins(store: RelationshipStore, person_id: str) -> list[Person]:
    found = [c for a in get_aunts_uncles(store, person_id) for c in store.get_children(a.id)]
    siblings = {s.id for s in store.get_siblings(person_id)}
    return _unique(found, {person_id} | siblings)


def get_nieces_nephews(store: RelationshipStore, person_id: str) -> list[Person]:
    found = [c for s in store.get_siblings(person_id) for c in store.get_children(s.id)]
    own = {c.id for c in store.get_children(person_id)}
    return _unique(found, {person_id} | own)


def get_in_laws(store: RelationshipStore, person_id: str) -> list[Person]:
    """Parents and siblings of each spouse."""
    found = []
    for spouse in store.get_spouses(person_id):
        found += store.get_parents(spouse.id)
        found += store.get_siblings(spouse.id)
    return _unique(found, {person_id})


def get_step_siblings(store: RelationshipStore, person_id: str) -> list[Person]:
    """Children of a parent's spouse who share no parent with the person."""
    parents = store.get_parents(person_id)
    parent_ids = {p.id for p in parents}
    step_parents = [s for p in parents for s in store.get_spouses(p.id) if s.id not in parent_ids]
    siblings = {s.id for s in store.get_siblings(person_id)}
    found = [c for sp in step_parents for c in store.get_children(sp.id)]
    return _unique(found, {person_id} | siblings)


def get_extended_family(store: RelationshipStore, person_id: str) -> dict[str, list[Person]]:
    """All extended-family groups for one person, keyed by group name."""
    store.get(person_id)
    return {
        "grandparents": get_grandparents(store, person_id),
        "aunts_uncles": get_aunts_uncles(store, person_id),
        "cousins": get_cousins(store, person_id),
        "nieces_nephews": get_nieces_nephews(store, person_id),
        "in_laws": get_in_laws(store, person_id),
        "step_siblings": get_step_siblings(store, person_id),
    }
