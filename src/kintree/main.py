"""
Family tree layout tool.

Loads a family graph from JSON, checks it, lays it out, and writes the
positioned nodes as JSON and optionally as a Graphviz file.

Usage:
    kintree family.json --root p1 -o layout.json --dot family.dot
"""

import argparse
import json
import logging
from pathlib import Path

from kintree.dot import layout_to_dot
from kintree.layout import LayoutOptions, compute_layout
from kintree.models import ViewMode
from kintree.store import RelationshipStore
from kintree.validation import fix_reciprocity, validate_store


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="kintree", description="Lay out a family tree.")
    parser.add_argument("input", type=Path, help="JSON file with people and relationships")
    parser.add_argument("--root", help="Person to lay out from (default: first person)")
    parser.add_argument("--focus", help="Only show the immediate family of this person")
    parser.add_argument("--fix", action="store_true", help="Repair one-sided references first")
    parser.add_argument("--no-spouses", action="store_true", help="Hide spouses without a tree")
    parser.add_argument("--placeholders", action="store_true", help="Add 'Add Parent/Spouse' nodes")
    parser.add_argument("-o", "--output", type=Path, help="Layout JSON output path")
    parser.add_argument("--dot", type=Path, help="Also write a Graphviz file with pinned positions")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")
    return parser.parse_args(argv)


def load_store(path: Path) -> RelationshipStore:
    """Read a store from a JSON file."""
    with path.open(encoding="utf-8") as f:
        return RelationshipStore.from_dict(json.load(f))


# ============================================================================
# Main
# ============================================================================


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    print(f"Loading family graph: {args.input}")
    store = load_store(args.input)
    print(f"  Found {len(store)} people and {len(store.relationships())} relationships")
    if not len(store):
        print("Nothing to lay out")
        return 1

    if args.fix:
        print("Repairing references...")
        repairs = fix_reciprocity(store)
        print(f"  Made {len(repairs)} repairs")

    print("Validating graph...")
    warnings = validate_store(store)
    if warnings:
        print(f"  Found {len(warnings)} validation warnings:")
        for w in warnings[:10]:  # Show first 10 warnings
            print(f"    - {w.message}")
        if len(warnings) > 10:
            print(f"    ... and {len(warnings) - 10} more")
    else:
        print("  No validation issues found")

    root_id = args.root or store.ids()[0]
    if root_id not in store:
        print(f"Person ID {root_id} not found in graph")
        return 1

    options = LayoutOptions(
        show_spouses=not args.no_spouses,
        view_mode=ViewMode.FOCUS if args.focus else ViewMode.FULL,
        focus_person_id=args.focus,
        include_placeholders=args.placeholders,
    )

    print(f"Computing layout from {root_id}...")
    result = compute_layout(store, root_id, options)
    print(f"  Positioned {len(result.nodes)} nodes in {result.component_count} components")
    if result.fallback is not None:
        print(f"  Layout fallback: {result.fallback.value}")

    output_path = args.output or args.input.with_suffix(".layout.json")
    output_path.write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")
    print(f"Layout saved to {output_path}")

    if args.dot:
        layout_to_dot(result).write(str(args.dot), format="raw")
        print(f"Graph saved to {args.dot}")

    print("Done!")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
