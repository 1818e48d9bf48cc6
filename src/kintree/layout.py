"""Tree/forest layout: positions every person of a store as a TreeNode."""

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field

from kintree.config import settings
from kintree.graph import extract_focus_window, find_components
from kintree.models import (
    Gender,
    LayoutFallback,
    LayoutResult,
    Person,
    RelationType,
    TreeNode,
    ViewMode,
)
from kintree.store import RelationshipStore

logger = logging.getLogger(__name__)


@dataclass
class LayoutOptions:
    node_separation: float = field(default_factory=lambda: settings.layout.node_separation)
    level_separation: float = field(default_factory=lambda: settings.layout.level_separation)
    show_spouses: bool = True
    view_mode: ViewMode = ViewMode.FULL
    focus_person_id: str | None = None
    include_placeholders: bool = False
    max_people: int = field(default_factory=lambda: settings.layout.max_people)
    card_width: float = field(default_factory=lambda: settings.layout.card_width)
    card_height: float = field(default_factory=lambda: settings.layout.card_height)

    def __post_init__(self):
        self.view_mode = ViewMode(self.view_mode)


# ============================================================================
# Tidy tree (Buchheim/Walker)
# ============================================================================


@dataclass(eq=False)
class _HierarchyNode:
    id: str
    parent: "_HierarchyNode | None" = None
    depth: int = 0
    number: int = 0  # index among siblings
    width: int = 1  # slots taken: the person plus spouses drawn beside them
    children: list["_HierarchyNode"] = field(default_factory=list)
    prelim: float = 0.0
    mod: float = 0.0
    change: float = 0.0
    shift: float = 0.0
    thread: "_HierarchyNode | None" = None
    ancestor: "_HierarchyNode | None" = None
    default_ancestor: "_HierarchyNode | None" = None
    x: float = 0.0

    def __post_init__(self):
        self.ancestor = self


def _find_layout_root(store: RelationshipStore, seed_id: str, members: set[str]) -> str:
    """Walk up from the seed, lowest parent id first, while parents stay in ``members``."""
    current = seed_id
    seen = {current}
    while True:
        parents = sorted(p for p in store.get(current).parents if p in members and p not in seen)
        if not parents:
            return current
        current = parents[0]
        seen.add(current)


def _build_hierarchy(
    store: RelationshipStore, root_id: str, members: set[str]
) -> tuple[_HierarchyNode, list[_HierarchyNode]]:
    """
    Depth-first along child links restricted to ``members``.

    Returns:
        The root and every hierarchy node in pre-order.
    """
    root = _HierarchyNode(root_id)
    order = [root]
    visited = {root_id}
    stack = [(root, iter(store.get(root_id).children))]

    while stack:
        node, pending = stack[-1]
        for child_id in pending:
            if child_id in members and child_id not in visited:
                visited.add(child_id)
                child = _HierarchyNode(
                    child_id, parent=node, depth=node.depth + 1, number=len(node.children)
                )
                node.children.append(child)
                order.append(child)
                stack.append((child, iter(store.get(child_id).children)))
                break
        else:
            stack.pop()

    return root, order


def _separation(left: _HierarchyNode, right: _HierarchyNode, node_separation: float) -> float:
    if left.parent is right.parent:
        factor = settings.layout.sibling_separation
    else:
        factor = settings.layout.cousin_separation
    return (factor + (left.width - 1) / 2 + (right.width - 1) / 2) * node_separation


def _next_left(v: _HierarchyNode) -> _HierarchyNode | None:
    return v.children[0] if v.children else v.thread


def _next_right(v: _HierarchyNode) -> _HierarchyNode | None:
    return v.children[-1] if v.children else v.thread


def _left_sibling(v: _HierarchyNode) -> _HierarchyNode | None:
    if v.parent is None or v.number == 0:
        return None
    return v.parent.children[v.number - 1]


def _move_subtree(wm: _HierarchyNode, wp: _HierarchyNode, shift: float) -> None:
    change = shift / (wp.number - wm.number)
    wp.change -= change
    wp.shift += shift
    wm.change += change
    wp.prelim += shift
    wp.mod += shift


def _execute_shifts(v: _HierarchyNode) -> None:
    shift = 0.0
    change = 0.0
    for w in reversed(v.children):
        w.prelim += shift
        w.mod += shift
        change += w.change
        shift += w.shift + change


def _next_ancestor(vim: _HierarchyNode, v: _HierarchyNode, default: _HierarchyNode) -> _HierarchyNode:
    return vim.ancestor if vim.ancestor.parent is v.parent else default


def _apportion(
    v: _HierarchyNode,
    left: _HierarchyNode | None,
    ancestor: _HierarchyNode,
    node_separation: float,
) -> _HierarchyNode:
    if left is None:
        return ancestor

    vip = vop = v
    vim = left
    vom = v.parent.children[0]
    sip, sop, sim, som = vip.mod, vop.mod, vim.mod, vom.mod

    vim = _next_right(vim)
    vip = _next_left(vip)
    while vim is not None and vip is not None:
        vom = _next_left(vom)
        vop = _next_right(vop)
        vop.ancestor = v
        shift = vim.prelim + sim - vip.prelim - sip + _separation(vim, vip, node_separation)
        if shift > 0:
            _move_subtree(_next_ancestor(vim, v, ancestor), v, shift)
            sip += shift
            sop += shift
        sim += vim.mod
        sip += vip.mod
        som += vom.mod
        sop += vop.mod
        vim = _next_right(vim)
        vip = _next_left(vip)

    if vim is not None and _next_right(vop) is None:
        vop.thread = vim
        vop.mod += sim - sop
    if vip is not None and _next_left(vom) is None:
        vom.thread = vip
        vom.mod += sip - som
        ancestor = v
    return ancestor


def _first_walk(v: _HierarchyNode, node_separation: float) -> None:
    left = _left_sibling(v)
    if v.children:
        _execute_shifts(v)
        midpoint = (v.children[0].prelim + v.children[-1].prelim) / 2
        if left is not None:
            v.prelim = left.prelim + _separation(left, v, node_separation)
            v.mod = v.prelim - midpoint
        else:
            v.prelim = midpoint
    elif left is not None:
        v.prelim = left.prelim + _separation(left, v, node_separation)

    if v.parent is not None:
        default = v.parent.default_ancestor or v.parent.children[0]
        v.parent.default_ancestor = _apportion(v, left, default, node_separation)


def _tidy(root: _HierarchyNode, node_separation: float) -> None:
    """Assign ``x`` to every node, root at 0."""
    for v in _post_order(root):
        _first_walk(v, node_separation)

    stack = [(root, -root.prelim)]
    while stack:
        node, modsum = stack.pop()
        node.x = node.prelim + modsum
        for child in node.children:
            stack.append((child, modsum + node.mod))


def _post_order(root: _HierarchyNode) -> list[_HierarchyNode]:
    result = []
    stack = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            result.append(node)
            continue
        stack.append((node, True))
        for child in reversed(node.children):
            stack.append((child, False))
    return result


# ============================================================================
# Branch placement
# ============================================================================


def _claim_spouses(
    store: RelationshipStore, order: list[_HierarchyNode], claimable: set[str]
) -> dict[str, list[str]]:
    """Spouses drawn beside each hierarchy node, first claim wins."""
    claims: dict[str, list[str]] = {}
    taken: set[str] = set()
    for node in order:
        for spouse_id in store.get(node.id).spouses:
            if spouse_id in claimable and spouse_id not in taken:
                taken.add(spouse_id)
                claims.setdefault(node.id, []).append(spouse_id)
    return claims


def _level_offset(
    store: RelationshipStore,
    order: list[_HierarchyNode],
    claims: dict[str, list[str]],
    levels: dict[str, int],
) -> int:
    """Level of a branch root, anchored to the first relative already placed."""
    if not levels:
        return 0
    for node in order:
        person = store.get(node.id)
        candidates = [person] + [store.get(s) for s in claims.get(node.id, ())]
        for member in candidates:
            for spouse_id in member.spouses:
                if spouse_id in levels:
                    return levels[spouse_id] - node.depth
            for child_id in member.children:
                if child_id in levels:
                    return levels[child_id] - 1 - node.depth
            for parent_id in member.parents:
                if parent_id in levels:
                    return levels[parent_id] + 1 - node.depth
    return 0


def _tree_node(
    person: Person, x: float, level: int, component: int, options: LayoutOptions, **flags
) -> TreeNode:
    return TreeNode(
        id=person.id,
        name=person.name,
        gender=person.gender,
        birth_year=person.birth_year,
        death_year=person.death_year,
        x=x,
        y=level * options.level_separation,
        level=level,
        component=component,
        width=options.card_width,
        height=options.card_height,
        **flags,
    )


def _place_branch(
    store: RelationshipStore,
    order: list[_HierarchyNode],
    claims: dict[str, list[str]],
    offset: int,
    component: int,
    options: LayoutOptions,
) -> list[TreeNode]:
    sep = options.node_separation
    spouse_step = sep * settings.layout.spouse_offset
    nodes = []
    for node in order:
        level = node.depth + offset
        spouse_ids = claims.get(node.id, [])
        # node.x is the centre of the couple; the primary sits on its left
        x = node.x - len(spouse_ids) * sep / 2
        nodes.append(_tree_node(store.get(node.id), x, level, component, options))
        for index, spouse_id in enumerate(spouse_ids):
            nodes.append(
                _tree_node(
                    store.get(spouse_id),
                    x + (index + 1) * spouse_step,
                    level,
                    component,
                    options,
                    is_spouse=True,
                )
            )
    return nodes


def _pull_spouses(branch: list[TreeNode], store: RelationshipStore, options: LayoutOptions) -> None:
    """Move married primary nodes on the same row next to each other."""
    sep = options.node_separation
    same_row = options.level_separation / 2
    primaries = {n.id: n for n in branch if not n.is_spouse and not n.is_placeholder}

    for node in primaries.values():
        for spouse_id in store.get(node.id).spouses:
            partner = primaries.get(spouse_id)
            if partner is None or spouse_id < node.id:
                continue
            if abs(node.y - partner.y) >= same_row:
                continue
            left, right = sorted((node, partner), key=lambda n: n.x)
            if right.x - left.x <= sep:
                continue
            blocked = any(
                left.x < other.x < right.x
                for other in branch
                if other is not left and other is not right and abs(other.y - left.y) < same_row
            )
            if blocked:
                continue
            middle = (left.x + right.x) / 2
            left.x = middle - sep / 2
            right.x = middle + sep / 2


def _placeholders(
    branch: list[TreeNode], store: RelationshipStore, options: LayoutOptions
) -> list[TreeNode]:
    """Placeholder nodes offering to add a missing spouse or parent."""
    extra = []
    for node in branch:
        person = store.find(node.id)
        if person is None:
            continue
        if not person.spouses:
            extra.append(
                TreeNode(
                    id=f"{person.id}-spouse-placeholder",
                    name="Add Spouse",
                    gender=Gender.FEMALE if person.gender == Gender.MALE else Gender.MALE,
                    birth_year=person.birth_year,
                    x=node.x + options.node_separation * settings.layout.spouse_offset,
                    y=node.y,
                    level=node.level,
                    component=node.component,
                    width=options.card_width,
                    height=options.card_height,
                    is_placeholder=True,
                    placeholder_type=RelationType.SPOUSE,
                    target_id=person.id,
                )
            )
        if not person.parents:
            extra.append(
                TreeNode(
                    id=f"{person.id}-parent-placeholder",
                    name="Add Parent",
                    gender=Gender.MALE,
                    birth_year=person.birth_year - 30,
                    x=node.x,
                    y=node.y - options.level_separation,
                    level=node.level - 1,
                    component=node.component,
                    width=options.card_width,
                    height=options.card_height,
                    is_placeholder=True,
                    placeholder_type=RelationType.PARENT,
                    target_id=person.id,
                )
            )
    return extra


def resolve_collisions(nodes: list[TreeNode], min_gap: float) -> None:
    """
    Enforce ``min_gap`` between horizontal neighbours on each row.

    Rows are grouped by rounded ``y`` and swept once left to right; a node is
    pushed right only as far as needed.
    """
    rows: dict[int, list[TreeNode]] = defaultdict(list)
    for node in nodes:
        rows[round(node.y)].append(node)

    for row in rows.values():
        row.sort(key=lambda n: n.x)
        for prev, current in zip(row, row[1:]):
            if current.x - prev.x < min_gap:
                current.x = prev.x + min_gap


def _layout_component(
    working: RelationshipStore,
    members: list[str],
    layout_root: str,
    component: int,
    full_store: RelationshipStore,
    options: LayoutOptions,
) -> list[list[TreeNode]]:
    member_set = set(members)
    levels: dict[str, int] = {}
    placed: set[str] = set()
    hidden: set[str] = set()
    branches = []

    while True:
        pending = [m for m in members if m not in placed and m not in hidden]
        if not pending:
            break
        available = member_set - placed

        root_id = _find_layout_root(working, pending[0], available)
        root, order = _build_hierarchy(working, root_id, available)
        in_tree = {n.id for n in order}
        claims = _claim_spouses(working, order, available - in_tree) if options.show_spouses else {}
        for node in order:
            node.width = 1 + len(claims.get(node.id, ()))

        _tidy(root, options.node_separation)
        offset = _level_offset(working, order, claims, levels)
        branch = _place_branch(working, order, claims, offset, component, options)
        logger.debug(
            "Component %d: branch from %s with %d nodes at level %d",
            component,
            root_id,
            len(branch),
            offset,
        )

        for node in branch:
            levels[node.id] = node.level
            placed.add(node.id)
        if not options.show_spouses:
            hidden.update(
                s for n in order for s in working.get(n.id).spouses if s in member_set and s not in placed
            )

        _pull_spouses(branch, working, options)
        if options.include_placeholders:
            branch.extend(_placeholders(branch, full_store, options))
        resolve_collisions(branch, options.node_separation)
        branches.append(branch)

    base = levels.get(layout_root, 0)
    for branch in branches:
        for node in branch:
            node.generation = node.level - base
    return branches


def _pack(branch: list[TreeNode], offset: float, options: LayoutOptions) -> float:
    """Shift a branch so its left edge sits at ``offset``; return the next offset."""
    min_x = min(n.x for n in branch)
    max_x = max(n.x for n in branch)
    shift = offset - min_x
    for node in branch:
        node.x += shift
    return max_x + shift + settings.layout.tree_gap * options.node_separation


def _attach_references(nodes: list[TreeNode], store: RelationshipStore) -> None:
    present = {n.id for n in nodes if not n.is_placeholder}
    for node in nodes:
        if node.is_placeholder:
            continue
        person = store.get(node.id)
        node.parents = [i for i in person.parents if i in present]
        node.children = [i for i in person.children if i in present]
        node.spouses = [i for i in person.spouses if i in present]


def _linear_layout(
    store: RelationshipStore, root_id: str, options: LayoutOptions
) -> LayoutResult:
    """Breadth-first single row, used when the store is too large to lay out."""
    order: list[tuple[str, int]] = []
    seen: set[str] = set()
    component = -1
    for seed in [root_id] + store.ids():
        if seed in seen:
            continue
        component += 1
        seen.add(seed)
        queue = deque([seed])
        while queue:
            person_id = queue.popleft()
            order.append((person_id, component))
            person = store.get(person_id)
            for related in person.children + person.parents + person.spouses:
                if related in store and related not in seen:
                    seen.add(related)
                    queue.append(related)

    nodes = [
        _tree_node(store.get(pid), i * options.node_separation, 0, comp, options)
        for i, (pid, comp) in enumerate(order)
    ]
    _attach_references(nodes, store)
    return LayoutResult(nodes=nodes, component_count=component + 1, fallback=LayoutFallback.OVERSIZED)


def compute_layout(
    store: RelationshipStore, root_id: str | None, options: LayoutOptions | None = None
) -> LayoutResult:
    """
    Lay out the store as a forest of positioned nodes.

    Args:
        store: The relationship store (not modified)
        root_id: Person whose component is laid out first; generations are
            counted from them
        options: Layout options, defaults from settings

    Returns:
        A LayoutResult. Empty when the store is empty or the root is unknown.
    """
    options = options or LayoutOptions()
    if not len(store) or root_id is None or root_id not in store:
        logger.debug("Nothing to lay out (root %s, %d people)", root_id, len(store))
        return LayoutResult()

    working = store
    layout_root = root_id
    fallback = None
    if options.view_mode == ViewMode.FOCUS:
        focus_id = options.focus_person_id or root_id
        if focus_id in store:
            working = extract_focus_window(store, focus_id)
            layout_root = focus_id
        else:
            logger.warning("Focus person %s not found, using the full view", focus_id)
            fallback = LayoutFallback.FOCUS_UNAVAILABLE

    if len(working) > options.max_people:
        logger.warning(
            "%d people exceed the layout limit of %d, using a linear layout",
            len(working),
            options.max_people,
        )
        return _linear_layout(working, layout_root, options)

    components = find_components(working, layout_root)
    nodes: list[TreeNode] = []
    offset = 0.0
    for index, members in enumerate(components):
        for branch in _layout_component(working, members, layout_root, index, store, options):
            offset = _pack(branch, offset, options)
            nodes.extend(branch)

    resolve_collisions(nodes, options.node_separation)
    _attach_references(nodes, working)
    logger.debug("Laid out %d nodes in %d components", len(nodes), len(components))
    return LayoutResult(nodes=nodes, component_count=len(components), fallback=fallback)
