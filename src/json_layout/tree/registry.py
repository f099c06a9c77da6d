"""Node type registry mapping type names to factories.

A factory turns the tokens of one JSON object into a native node and
exposes the three operations the tree builder needs afterwards: destroy
it, get its renderable layer, and assign its frame.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, List, Optional

from json_layout.shared.graphics import Rect
from json_layout.shared.store import KeyValueStore
from json_layout.tokenization import Token, TokenStream

from .nodes import Layer

if TYPE_CHECKING:
    from .layout import Layout

CreateFunc = Callable[["Layout", TokenStream, Token], Any]
DestroyFunc = Callable[[Any], None]
GetHandleFunc = Callable[[Any], Layer]
SetFrameFunc = Callable[[Any, Rect], None]

DEFAULT_TYPE = "default"


class NodeFactory(ABC):
    """Interface a node type implements to plug into the tree builder.

    ``create`` receives the stream positioned on the first key of the
    object and the object token itself. It may read any of the object's
    ``token.size`` members; the builder rewinds the stream afterwards, so
    the factory does not need to leave it anywhere in particular. Keys the
    factory does not know (including ``type``, ``id`` and ``frame``) must
    be skipped, which ``TokenStream.iter_members`` does automatically.
    """

    @abstractmethod
    def create(self, layout: "Layout", stream: TokenStream, token: Token) -> Any:
        """Build a node from the members of ``token``."""

    @abstractmethod
    def destroy(self, node: Any) -> None:
        """Release everything the node owns."""

    @abstractmethod
    def get_handle(self, node: Any) -> Layer:
        """Return the layer that represents ``node`` in the hierarchy."""

    @abstractmethod
    def set_frame(self, node: Any, frame: Rect) -> None:
        """Position ``node`` within its parent."""


@dataclass
class FactoryBundle(NodeFactory):
    """NodeFactory assembled from four plain callables."""

    create_func: CreateFunc
    destroy_func: DestroyFunc
    get_handle_func: GetHandleFunc
    set_frame_func: SetFrameFunc

    def create(self, layout: "Layout", stream: TokenStream, token: Token) -> Any:
        return self.create_func(layout, stream, token)

    def destroy(self, node: Any) -> None:
        self.destroy_func(node)

    def get_handle(self, node: Any) -> Layer:
        return self.get_handle_func(node)

    def set_frame(self, node: Any, frame: Rect) -> None:
        self.set_frame_func(node, frame)


class TypeRegistry:
    """Name to factory lookup with a mandatory ``default`` entry.

    Registrations append to the backing store; the most recent
    registration of a name is the one ``resolve`` returns.
    """

    def __init__(self, default_type: str = DEFAULT_TYPE) -> None:
        self.default_type = default_type
        self._types: KeyValueStore[NodeFactory] = KeyValueStore()

    def register(self, name: str, factory: NodeFactory) -> None:
        """Insert or replace the factory for ``name``."""
        if not name:
            raise ValueError("Type name cannot be empty")
        if not isinstance(factory, NodeFactory):
            raise TypeError("Factory must implement NodeFactory")
        self._types.remove(name)
        self._types.put(name, factory)

    def get(self, name: Optional[str]) -> Optional[NodeFactory]:
        """Return the factory registered under ``name`` without fallback."""
        if name is None:
            return None
        return self._types.get(name)

    def resolve(self, name: Optional[str]) -> NodeFactory:
        """Return the factory for ``name``, or the default factory."""
        factory = self.get(name)
        if factory is None:
            factory = self._types.get(self.default_type)
        if factory is None:
            raise LookupError(f"No '{self.default_type}' factory registered")
        return factory

    def contains(self, name: str) -> bool:
        return self._types.contains(name)

    def names(self) -> List[str]:
        return self._types.keys()

    def clear(self) -> None:
        self._types.clear()

    def __len__(self) -> int:
        return len(self._types)
