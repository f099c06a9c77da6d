"""LIFO record of constructed nodes, used only to sequence teardown."""

from dataclasses import dataclass
from typing import Any, Generic, Iterator, List, Optional, TypeVar

from .registry import NodeFactory

T = TypeVar("T")


@dataclass
class OwnedNode:
    """A constructed node together with the factory that can destroy it."""

    factory: NodeFactory
    node: Any
    type_name: Optional[str] = None
    layer: Any = None

    def destroy(self) -> None:
        self.factory.destroy(self.node)

    @property
    def handle(self) -> Any:
        """The node's layer, asked of the factory once and then cached."""
        if self.layer is None:
            self.layer = self.factory.get_handle(self.node)
        return self.layer


class OwnershipStack(Generic[T]):
    """Plain LIFO stack; entries come back in reverse push order."""

    def __init__(self) -> None:
        self._items: List[T] = []

    def push(self, item: T) -> None:
        self._items.append(item)

    def pop(self) -> Optional[T]:
        """Remove and return the newest entry, or None when empty."""
        if not self._items:
            return None
        return self._items.pop()

    def peek(self) -> Optional[T]:
        if not self._items:
            return None
        return self._items[-1]

    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        """Iterate oldest first without consuming."""
        return iter(list(self._items))
