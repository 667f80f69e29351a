"""Type-keyed storage for custom data attached to parser structures."""

from __future__ import annotations

from typing import Any, Callable, Iterator, TypeVar

T = TypeVar("T")


class ExtensionSet:
    """A mapping that holds at most one value per type, keyed by that type."""

    def __init__(self) -> None:
        self._items: dict[type, Any] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __contains__(self, cls: type) -> bool:
        return cls in self._items

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items.values())

    def __repr__(self) -> str:
        body = ", ".join(f"{key.__name__}: {value!r}" for key, value in self._items.items())
        return f"{type(self).__name__}({{{body}}})"

    def contains(self, cls: type) -> bool:
        """Return True if a value of type ``cls`` is stored."""
        return cls in self._items

    def get(self, cls: type[T]) -> T | None:
        """Return the stored value of type ``cls``, or None."""
        return self._items.get(cls)

    def get_or_insert(self, value: T) -> T:
        """Return the stored value of the same type as ``value``, storing ``value`` if absent."""
        return self._items.setdefault(type(value), value)

    def get_or_insert_with(self, cls: type[T], factory: Callable[[], T]) -> T:
        """Return the stored value of type ``cls``, storing ``factory()`` if absent."""
        if cls not in self._items:
            self._items[cls] = factory()
        return self._items[cls]

    def get_or_insert_default(self, cls: type[T]) -> T:
        """Return the stored value of type ``cls``, storing ``cls()`` if absent."""
        return self.get_or_insert_with(cls, cls)

    def insert(self, value: T) -> T | None:
        """Store ``value`` under its type, returning the value it replaced, if any."""
        key = type(value)
        previous = self._items.get(key)
        self._items[key] = value
        return previous

    def remove(self, cls: type[T]) -> T | None:
        """Remove and return the value of type ``cls``, or None if absent."""
        return self._items.pop(cls, None)

    def clear(self) -> None:
        """Remove every stored value."""
        self._items.clear()