"""Graphviz export of a computed layout."""

import pydot

from kintree.models import Gender, LayoutResult


def layout_to_dot(result: LayoutResult, scale: float = 1.0) -> pydot.Dot:
    """
    Build a pydot graph with every node pinned to its layout position.

    Render with ``neato -n`` so Graphviz keeps the positions instead of
    computing its own. Layout y grows downward, Graphviz y grows upward, so
    y is negated.

    Args:
        result: A computed layout
        scale: Multiplier from layout units to points

    Returns:
        The pydot graph; write it with ``P.write(path)`` or render with
        ``P.write(path, prog="neato", format="png")``.
    """
    P = pydot.Dot(graph_type="digraph")
    P.set("splines", "line")
    P.set("outputorder", "edgesfirst")

    for node in result.nodes:
        pos = f"{node.x * scale:.2f},{-node.y * scale:.2f}!"
        width = f"{node.width * scale / 72:.2f}"
        height = f"{node.height * scale / 72:.2f}"

        if node.is_placeholder:
            P.add_node(
                pydot.Node(
                    node.id,
                    label=node.name,
                    shape="box",
                    style="rounded,dashed",
                    color="gray",
                    fontcolor="gray",
                    fontsize="10",
                    pos=pos,
                    width=width,
                    height=height,
                )
            )
            P.add_edge(pydot.Edge(node.id, node.target_id, style="dotted", dir="none", color="gray"))
            continue

        # Build label
        death = node.death_year if node.death_year is not None else ""
        label = f"{node.name}\n{node.birth_year}-{death}"

        # Color by gender
        fillcolor = "lightblue" if node.gender == Gender.MALE else "lightpink"

        P.add_node(
            pydot.Node(
                node.id,
                label=label,
                shape="box",
                style="rounded,filled",
                fillcolor=fillcolor,
                fontsize="10",
                pos=pos,
                width=width,
                height=height,
            )
        )

    # Add edges
    for node in result.nodes:
        for child_id in node.children:
            P.add_edge(pydot.Edge(node.id, child_id, color="darkgray"))
        for spouse_id in node.spouses:
            if node.id < spouse_id:
                P.add_edge(
                    pydot.Edge(node.id, spouse_id, dir="none", style="dashed", color="darkgray")
                )

    return P
