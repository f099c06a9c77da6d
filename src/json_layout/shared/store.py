"""Insertion-ordered key-value store with association-list semantics.

The store backs the type registry, the identifier index, and the named
font/resource registries of a layout. Lookups are linear scans; duplicate
keys are kept side by side and reads return the earliest entry.
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterator, List, Optional, Tuple, TypeVar

V = TypeVar("V")

ForEachCallback = Callable[[str, Any, Any], bool]  # (key, value, context) -> continue


@dataclass
class StoreEntry(Generic[V]):
    """Single key/value pair held by a KeyValueStore."""

    key: str
    value: V


class KeyValueStore(Generic[V]):
    """Ordered association list keyed by strings.

    ``put`` always appends, so a key may appear several times. ``get``,
    ``contains`` and ``remove`` operate on the first entry with an exactly
    equal key.
    """

    def __init__(self) -> None:
        self._entries: List[StoreEntry[V]] = []

    def put(self, key: str, value: V) -> None:
        """Append an entry; existing entries with the same key are kept."""
        if not isinstance(key, str):
            raise TypeError("Store keys must be strings")
        self._entries.append(StoreEntry(key, value))

    def _find(self, key: str) -> int:
        for index, entry in enumerate(self._entries):
            if entry.key == key:
                return index
        return -1

    def get(self, key: str, default: Optional[V] = None) -> Optional[V]:
        """Return the value of the earliest entry for ``key``."""
        index = self._find(key)
        if index < 0:
            return default
        return self._entries[index].value

    def contains(self, key: str) -> bool:
        return self._find(key) >= 0

    def remove(self, key: str) -> Optional[V]:
        """Delete the earliest entry for ``key`` and return its value."""
        index = self._find(key)
        if index < 0:
            return None
        return self._entries.pop(index).value

    def foreach(self, callback: ForEachCallback, context: Any = None) -> None:
        """Visit entries in insertion order until the callback returns False."""
        for entry in list(self._entries):
            if not callback(entry.key, entry.value, context):
                break

    def items(self) -> List[Tuple[str, V]]:
        return [(entry.key, entry.value) for entry in self._entries]

    def keys(self) -> List[str]:
        return [entry.key for entry in self._entries]

    def truncate(self, length: int) -> int:
        """Drop every entry added after the first ``length``; returns how many."""
        removed = max(len(self._entries) - length, 0)
        del self._entries[length:]
        return removed

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.contains(key)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __repr__(self) -> str:
        return f"KeyValueStore({self.keys()!r})"
