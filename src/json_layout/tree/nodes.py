"""Renderable layer hierarchy produced by layout building.

A Layer is the handle factories hand back to the tree builder. Parent and
child links exist for rendering order only; lifetime is governed by the
owning layout's ownership stack, never by the tree.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from json_layout.shared.graphics import Color, Rect


@dataclass(eq=False)
class Layer:
    """Rectangular node of the visual hierarchy.

    ``owner`` points back at the richer object (text, bitmap, ...) this
    layer renders for, when there is one.
    """

    frame: Rect = Rect.ZERO
    kind: str = "Layer"
    background_color: Color = Color.CLEAR
    clips: bool = True
    hidden: bool = False
    children: List["Layer"] = field(default_factory=list)
    parent: Optional["Layer"] = field(default=None, repr=False)
    owner: Optional[Any] = field(default=None, repr=False)
    destroyed: bool = False

    @property
    def bounds(self) -> Rect:
        """Frame size at the layer's own origin."""
        return Rect(0, 0, self.frame.w, self.frame.h)

    def set_frame(self, frame: Rect) -> None:
        self.frame = frame

    def add_child(self, child: "Layer") -> None:
        """Append ``child`` on top of existing children, detaching it first."""
        if not isinstance(child, Layer):
            raise TypeError("Child must be a Layer instance")
        if child is self:
            raise ValueError("A layer cannot be its own child")
        if child.parent is not None:
            child.remove_from_parent()
        child.parent = self
        self.children.append(child)

    def remove_child(self, child: "Layer") -> bool:
        if child in self.children:
            child.parent = None
            self.children.remove(child)
            return True
        return False

    def remove_from_parent(self) -> None:
        if self.parent is not None:
            self.parent.remove_child(self)

    def iter_layers(self, include_self: bool = True) -> Iterator["Layer"]:
        """Iterate over this layer and all descendants (depth-first)."""
        if include_self:
            yield self
        for child in self.children:
            yield from child.iter_layers(include_self=True)

    def get_depth(self) -> int:
        if self.parent is None:
            return 0
        return self.parent.get_depth() + 1

    def destroy(self) -> None:
        """Detach from the hierarchy and mark the layer unusable."""
        self.remove_from_parent()
        for child in self.children:
            child.parent = None
        self.children.clear()
        self.destroyed = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert the layer and its descendants to a dictionary."""
        result: Dict[str, Any] = {
            "kind": self.kind,
            "frame": self.frame.to_list(),
        }
        if not self.background_color.is_clear:
            result["background"] = self.background_color.to_hex()
        if not self.clips:
            result["clips"] = False
        describe = getattr(self.owner, "describe", None)
        if describe is not None:
            result.update(describe())
        if self.children:
            result["layers"] = [child.to_dict() for child in self.children]
        return result

    def __repr__(self) -> str:
        children = f", children={len(self.children)}" if self.children else ""
        return f"Layer({self.kind!r}, frame={self.frame.to_list()}{children})"
