"""Node types shipped with the library.

``DefaultLayerFactory`` builds the plain container every layout falls back
to. ``TextLayer`` and ``BitmapLayer`` are optional and are registered by
``add_standard_types``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Type, TypeVar

from json_layout.shared import Bitmap, Color, DiagnosticSeverity, Font, Rect
from json_layout.tokenization import Token, TokenStream, TokenType

from .nodes import Layer
from .registry import NodeFactory

if TYPE_CHECKING:
    from .layout import Layout

E = TypeVar("E", bound=Enum)

TEXT_LAYER_TYPE = "TextLayer"
BITMAP_LAYER_TYPE = "BitmapLayer"


class TextAlignment(Enum):
    LEFT = "GTextAlignmentLeft"
    CENTER = "GTextAlignmentCenter"
    RIGHT = "GTextAlignmentRight"


class TextOverflow(Enum):
    TRAILING_ELLIPSIS = "GTextOverflowModeTrailingEllipsis"
    WORD_WRAP = "GTextOverflowModeWordWrap"
    FILL = "GTextOverflowModeFill"


class BitmapAlignment(Enum):
    CENTER = "GAlignCenter"
    TOP_LEFT = "GAlignTopLeft"
    TOP = "GAlignTop"
    TOP_RIGHT = "GAlignTopRight"
    LEFT = "GAlignLeft"
    RIGHT = "GAlignRight"
    BOTTOM_LEFT = "GAlignBottomLeft"
    BOTTOM_RIGHT = "GAlignBottomRight"
    BOTTOM = "GAlignBottom"


class CompositingMode(Enum):
    ASSIGN = "GCompOpAssign"
    ASSIGN_INVERTED = "GCompOpAssignInverted"
    OR = "GCompOpOr"
    AND = "GCompOpAnd"
    CLEAR = "GCompOpClear"
    SET = "GCompOpSet"


def read_enum(
    layout: "Layout",
    stream: TokenStream,
    enum_cls: Type[E],
    component: str,
    fallback: E,
) -> E:
    """Read a string value naming a member of ``enum_cls`` by its value.

    A value that names no member, or is not a string, yields ``fallback``.
    """
    name = stream.next_string()
    if name is None:
        return fallback
    for member in enum_cls:
        if member.value == name:
            return member
    layout.report(
        DiagnosticSeverity.WARNING,
        f"Unknown {enum_cls.__name__} '{name}'",
        component,
        details={"allowed": [m.value for m in enum_cls], "fallback": fallback.value},
    )
    return fallback


def build_children(layout: "Layout", stream: TokenStream, parent: Layer) -> int:
    """Build every element of a ``layers`` array and attach it to ``parent``.

    The cursor must sit on the array value. Elements that produce no node
    are omitted. Returns the number of children attached.
    """
    token = stream.peek()
    if token.type is not TokenType.ARRAY:
        layout.report(
            DiagnosticSeverity.WARNING,
            f"'layers' must be an array, found {token.type.name.lower()}",
            "default_layer",
        )
        return 0
    stream.next()
    attached = 0
    for _ in range(token.size):
        child = layout.build_node(stream)
        if child is not None:
            parent.add_child(child)
            attached += 1
    return attached


class LayerFactoryBase(NodeFactory):
    """Shared handle and frame behavior for nodes that own one Layer."""

    def get_handle(self, node: Any) -> Layer:
        return node if isinstance(node, Layer) else node.layer

    def set_frame(self, node: Any, frame: Rect) -> None:
        self.get_handle(node).set_frame(frame)


class DefaultLayerFactory(LayerFactoryBase):
    """Plain container with optional fill, clipping and nested ``layers``."""

    def create(self, layout: "Layout", stream: TokenStream, token: Token) -> Layer:
        layer = Layer()
        for key in stream.iter_members(token):
            if key == "background":
                color = stream.next_color()
                if color is not None:
                    layer.background_color = color
            elif key == "clips":
                layer.clips = stream.next_bool()
            elif key == "layers":
                build_children(layout, stream, layer)
        return layer

    def destroy(self, node: Layer) -> None:
        node.destroy()


@dataclass(eq=False)
class TextLayer:
    """Layer that draws a single string."""

    layer: Layer
    text: Optional[str] = None
    text_color: Color = Color.BLACK
    font: Optional[Font] = None
    alignment: TextAlignment = TextAlignment.LEFT
    overflow: TextOverflow = TextOverflow.WORD_WRAP
    destroyed: bool = False

    def describe(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "text": self.text,
            "color": self.text_color.to_hex(),
            "alignment": self.alignment.value,
            "overflow": self.overflow.value,
        }
        if self.font is not None:
            result["font"] = self.font.key
        return result

    def destroy(self) -> None:
        self.text = None
        self.layer.destroy()
        self.destroyed = True


class TextLayerFactory(LayerFactoryBase):
    component = "text_layer"

    def create(self, layout: "Layout", stream: TokenStream, token: Token) -> TextLayer:
        text_layer = TextLayer(Layer(kind=TEXT_LAYER_TYPE, background_color=Color.CLEAR))
        text_layer.layer.owner = text_layer
        for key in stream.iter_members(token):
            if key == "text":
                text_layer.text = stream.next_string()
            elif key == "color":
                color = stream.next_color()
                if color is not None:
                    text_layer.text_color = color
            elif key == "background":
                color = stream.next_color()
                if color is not None:
                    text_layer.layer.background_color = color
            elif key == "alignment":
                text_layer.alignment = read_enum(
                    layout, stream, TextAlignment, self.component, TextAlignment.LEFT
                )
            elif key == "overflow":
                text_layer.overflow = read_enum(
                    layout, stream, TextOverflow, self.component, TextOverflow.TRAILING_ELLIPSIS
                )
            elif key == "font":
                self._apply_font(layout, stream.next_string(), text_layer)
        return text_layer

    def _apply_font(self, layout: "Layout", name: Optional[str], text_layer: TextLayer) -> None:
        if name is None:
            return
        font = layout.get_font(name)
        if font is None:
            layout.report(DiagnosticSeverity.WARNING, f"Unknown font '{name}'", self.component)
            return
        text_layer.font = font

    def destroy(self, node: TextLayer) -> None:
        node.destroy()


@dataclass(eq=False)
class BitmapLayer:
    """Layer that draws an image resource it owns."""

    layer: Layer
    bitmap: Optional[Bitmap] = None
    alignment: BitmapAlignment = BitmapAlignment.CENTER
    compositing: CompositingMode = CompositingMode.ASSIGN
    destroyed: bool = False

    def describe(self) -> Dict[str, Any]:
        return {
            "bitmap": self.bitmap.resource_id if self.bitmap is not None else None,
            "alignment": self.alignment.value,
            "compositing": self.compositing.value,
        }

    def destroy(self) -> None:
        if self.bitmap is not None:
            self.bitmap.release()
        self.layer.destroy()
        self.destroyed = True


class BitmapLayerFactory(LayerFactoryBase):
    component = "bitmap_layer"

    def create(self, layout: "Layout", stream: TokenStream, token: Token) -> BitmapLayer:
        bitmap_layer = BitmapLayer(Layer(kind=BITMAP_LAYER_TYPE))
        bitmap_layer.layer.owner = bitmap_layer
        for key in stream.iter_members(token):
            if key == "bitmap":
                self._load_bitmap(layout, stream.next_string(), bitmap_layer)
            elif key == "background":
                color = stream.next_color()
                if color is not None:
                    bitmap_layer.layer.background_color = color
            elif key == "alignment":
                bitmap_layer.alignment = read_enum(
                    layout, stream, BitmapAlignment, self.component, BitmapAlignment.CENTER
                )
            elif key == "compositing":
                bitmap_layer.compositing = read_enum(
                    layout, stream, CompositingMode, self.component, CompositingMode.ASSIGN
                )
        return bitmap_layer

    def _load_bitmap(self, layout: "Layout", name: Optional[str], bitmap_layer: BitmapLayer) -> None:
        if name is None:
            return
        resource_id = layout.get_resource_id(name)
        if resource_id is None:
            layout.report(DiagnosticSeverity.WARNING, f"Unknown resource '{name}'", self.component)
            return
        if bitmap_layer.bitmap is not None:
            bitmap_layer.bitmap.release()
        bitmap_layer.bitmap = Bitmap(resource_id)

    def destroy(self, node: BitmapLayer) -> None:
        node.destroy()


def add_standard_types(layout: "Layout") -> None:
    """Register the TextLayer and BitmapLayer node types on ``layout``."""
    layout.add_type(TEXT_LAYER_TYPE, TextLayerFactory())
    layout.add_type(BITMAP_LAYER_TYPE, BitmapLayerFactory())
