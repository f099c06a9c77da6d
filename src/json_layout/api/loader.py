"""One-call layout loading.

``load_layout`` creates a Layout with the standard node types and system
fonts registered, adds any extra resources, and builds the document.
"""

from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple, Union

from json_layout.shared import Font, LayoutConfig, get_logger
from json_layout.tree import BuildResult, Layout, NodeFactory

InputType = Union[str, bytes, Path]


def _prepare_layout(
    config: Optional[LayoutConfig],
    correlation_id: Optional[str],
    standard_types: bool,
    resources: Optional[Mapping[str, int]],
    fonts: Optional[Mapping[str, Font]],
    types: Optional[Mapping[str, NodeFactory]],
) -> Layout:
    layout = Layout(config, correlation_id=correlation_id, standard_types=standard_types)
    if standard_types:
        layout.add_system_fonts()
    for name, font in (fonts or {}).items():
        layout.add_font(name, font)
    for name, resource_id in (resources or {}).items():
        layout.add_resource(name, resource_id)
    for name, factory in (types or {}).items():
        layout.add_type(name, factory)
    return layout


def load_layout(
    source: InputType,
    config: Optional[LayoutConfig] = None,
    correlation_id: Optional[str] = None,
    standard_types: bool = True,
    resources: Optional[Mapping[str, int]] = None,
    fonts: Optional[Mapping[str, Font]] = None,
    types: Optional[Dict[str, NodeFactory]] = None,
) -> Tuple[Layout, BuildResult]:
    """Build a layout from JSON text, UTF-8 bytes or a file path.

    The caller owns the returned Layout and must ``destroy`` it (or use it
    as a context manager) when done.

    Args:
        source: Document text, bytes, or a ``Path`` to read
        config: Layout configuration
        correlation_id: Optional correlation ID for log records
        standard_types: Register TextLayer, BitmapLayer and system fonts
        resources: Resource name to id mapping for bitmap lookups
        fonts: Extra fonts by name
        types: Extra node factories by type name

    Returns:
        Tuple of the Layout and the BuildResult of the build

    Examples:
        >>> layout, result = load_layout('{"layers": [{"type": "TextLayer", "text": "Hi"}]}')
        >>> result.success
        True
        >>> layout.destroy()
    """
    logger = get_logger(__name__, correlation_id, "load_layout")
    layout = _prepare_layout(config, correlation_id, standard_types, resources, fonts, types)
    logger.debug("Loading layout", extra={"input_type": type(source).__name__})
    try:
        if isinstance(source, Path):
            result = layout.parse_file(source)
        else:
            result = layout.parse(source)
    except Exception:
        layout.destroy()
        raise
    return layout, result


def load_layout_file(
    path: Union[str, Path],
    config: Optional[LayoutConfig] = None,
    correlation_id: Optional[str] = None,
    standard_types: bool = True,
    resources: Optional[Mapping[str, int]] = None,
    fonts: Optional[Mapping[str, Font]] = None,
    types: Optional[Dict[str, NodeFactory]] = None,
) -> Tuple[Layout, BuildResult]:
    """Build a layout from a file; ``OSError`` from reading propagates."""
    return load_layout(
        Path(path),
        config=config,
        correlation_id=correlation_id,
        standard_types=standard_types,
        resources=resources,
        fonts=fonts,
        types=types,
    )
