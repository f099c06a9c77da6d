"""Tree building engine for JSON layouts.

Key Components:
    Layout: Owner of a built node tree, its registries and its teardown
    LayoutTreeBuilder: Three-pass node construction over a token stream
    TypeRegistry: Type name to NodeFactory mapping with a default entry
    OwnershipStack: LIFO record of constructed nodes for teardown order
    Layer: Renderable handle returned by every factory
    TextLayer, BitmapLayer: Optional standard node types
"""

from .builder import LayoutTreeBuilder
from .layout import BuildResult, Layout, LayoutError, LayoutStateError
from .nodes import Layer
from .ownership import OwnedNode, OwnershipStack
from .registry import DEFAULT_TYPE, FactoryBundle, NodeFactory, TypeRegistry
from .standard_types import (
    BitmapAlignment,
    BitmapLayer,
    CompositingMode,
    DefaultLayerFactory,
    TextAlignment,
    TextLayer,
    TextOverflow,
    add_standard_types,
    build_children,
)

__all__ = [
    "BitmapAlignment",
    "BitmapLayer",
    "BuildResult",
    "CompositingMode",
    "DEFAULT_TYPE",
    "DefaultLayerFactory",
    "FactoryBundle",
    "Layer",
    "Layout",
    "LayoutError",
    "LayoutStateError",
    "LayoutTreeBuilder",
    "NodeFactory",
    "OwnedNode",
    "OwnershipStack",
    "TextAlignment",
    "TextLayer",
    "TextOverflow",
    "TypeRegistry",
    "add_standard_types",
    "build_children",
]
