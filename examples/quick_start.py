#!/usr/bin/env python3
"""
Quick Start Guide for JSON Layout.

Builds the bundled watchface.json, looks nodes up by id, registers a
custom node type and tears everything down again.
"""

from pathlib import Path

from json_layout import FactoryBundle, Layer, Layout, load_layout_file
from json_layout.tree import build_children

HERE = Path(__file__).parent


def print_tree(layer: Layer, indent: int = 0) -> None:
    print("  " * indent + repr(layer))
    for child in layer.children:
        print_tree(child, indent + 1)


def quick_start_example() -> None:
    """Load a layout file with the standard node types."""
    print("QUICK START - JSON Layout")
    print("=" * 45)

    layout, result = load_layout_file(HERE / "watchface.json", resources={"IMAGE_BATTERY": 1})
    with layout:
        print(f"Success: {result.success}, nodes: {result.metrics.nodes_created}")
        print_tree(result.root)

        time_layer = layout.find_node_by_id("time")
        time_layer.text = "12:01"
        print(f"Updated time text: {time_layer.text}")

        for diag in result.diagnostics:
            print(f"{diag.severity.name}: {diag.message}")


def custom_type_example() -> None:
    """Register a node type built from four plain callables."""
    print("\nCUSTOM NODE TYPE")
    print("=" * 45)

    def create_card(layout, stream, token):
        card = Layer(kind="Card")
        for key in stream.iter_members(token):
            if key == "layers":
                build_children(layout, stream, card)
            elif key == "elevation":
                card.clips = stream.next_int() == 0
        return card

    card_type = FactoryBundle(
        create_func=create_card,
        destroy_func=lambda card: card.destroy(),
        get_handle_func=lambda card: card,
        set_frame_func=lambda card, frame: card.set_frame(frame),
    )

    with Layout() as layout:
        layout.add_type("Card", card_type)
        result = layout.parse('{"type": "Card", "elevation": 2, "layers": [{"id": "body"}]}')
        print_tree(result.root)
        print(f"body parent: {layout.find_by_id('body').parent!r}")


if __name__ == "__main__":
    quick_start_example()
    custom_type_example()
