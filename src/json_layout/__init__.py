"""JSON Layout.

Builds trees of renderable nodes from declarative JSON documents. Node
types are pluggable factories registered by name; every node built is
owned by its Layout and torn down in reverse creation order.

Progressive API Disclosure:
- Level 1: Simple functions - load_layout(), load_layout_file()
- Level 2: Configured layout - Layout class with LayoutConfig
- Level 3: Custom node types - NodeFactory / FactoryBundle registration
"""

__version__ = "0.1.0"
__author__ = "JSON Layout Team"

from .api import load_layout, load_layout_file
from .shared.config import LayoutConfig, ScalarPolicy
from .shared.graphics import Bitmap, Color, Font, Rect
from .tree import (
    BuildResult,
    FactoryBundle,
    Layer,
    Layout,
    LayoutError,
    LayoutStateError,
    NodeFactory,
)

__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Level 1: Simple loading functions
    "load_layout",
    "load_layout_file",

    # Level 2: Layout and configuration
    "Layout",
    "LayoutConfig",
    "ScalarPolicy",
    "BuildResult",
    "LayoutError",
    "LayoutStateError",

    # Level 3: Extension points and node values
    "NodeFactory",
    "FactoryBundle",
    "Layer",
    "Rect",
    "Color",
    "Font",
    "Bitmap",
]
