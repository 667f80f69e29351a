"""Ordered rule chains and the interfaces their rules implement."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Generic, Hashable, Iterator, TypeVar

if TYPE_CHECKING:
    from markthat.node import Node

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class _Priority(IntEnum):
    BEFORE_ALL = 0
    NORMAL = 1
    AFTER_ALL = 2


@dataclass
class _RuleItem(Generic[K, V]):
    marks: list[K]
    value: V
    priority: _Priority = _Priority.NORMAL
    before: list[K] = field(default_factory=list)
    after: list[K] = field(default_factory=list)
    requires: list[K] = field(default_factory=list)


class Ruler(Generic[K, V]):
    """A set of values kept in an order derived from their constraints.

    Values come out in insertion order, except that ``before_all`` items come
    first, ``after_all`` items last, and ``before``/``after`` constraints are
    honoured. A cycle or a missing required key raises ValueError when the
    chain is next iterated.
    """

    def __init__(self) -> None:
        self._items: list[_RuleItem[K, V]] = []
        self._compiled: list[V] | None = None

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: K) -> bool:
        return self.contains(key)

    def add(self, key: K, value: V) -> RuleBuilder:
        """Add a value under ``key`` and return a builder to position it."""
        item: _RuleItem[K, V] = _RuleItem([key], value)
        self._items.append(item)
        self._invalidate()
        return RuleBuilder(self, item)

    def contains(self, key: K) -> bool:
        """Return True if any item carries ``key``."""
        return any(key in item.marks for item in self._items)

    def remove(self, key: K) -> None:
        """Remove every item that carries ``key``."""
        self._items = [item for item in self._items if key not in item.marks]
        self._invalidate()

    def __iter__(self) -> Iterator[V]:
        if self._compiled is None:
            self._compiled = self._compile()
        return iter(self._compiled)

    def _invalidate(self) -> None:
        self._compiled = None

    def _compile(self) -> list[V]:
        items = self._items
        order = sorted(range(len(items)), key=lambda idx: items[idx].priority)

        owners: dict[K, list[int]] = {}
        for idx, item in enumerate(items):
            for mark in item.marks:
                owners.setdefault(mark, []).append(idx)

        # deps[i] holds the items that must come before item i
        deps: list[set[int]] = [set() for _ in items]
        for idx, item in enumerate(items):
            for mark in item.before:
                for other in owners.get(mark, ()):
                    deps[other].add(idx)
            for mark in item.after:
                deps[idx].update(owners.get(mark, ()))
            for mark in item.requires:
                if mark not in owners:
                    raise ValueError(f"missing dependency: {item.marks[0]!r} requires {mark!r}")

        result: list[V] = []
        pending = order
        while pending:
            ready = next((idx for idx in pending if not deps[idx]), None)
            if ready is None:
                stuck = ", ".join(repr(items[idx].marks[0]) for idx in pending)
                raise ValueError(f"cyclic dependency between rules: {stuck}")
            pending.remove(ready)
            result.append(items[ready].value)
            for dep in deps:
                dep.discard(ready)
        return result


class RuleBuilder:
    """Adjusts the position of a newly added rule; every method chains."""

    def __init__(self, ruler: Ruler, item: _RuleItem) -> None:
        self._ruler = ruler
        self._item = item

    def _changed(self) -> RuleBuilder:
        self._ruler._invalidate()
        return self

    def before(self, key: Any) -> RuleBuilder:
        """Place this rule before every rule carrying ``key``."""
        self._item.before.append(key)
        return self._changed()

    def after(self, key: Any) -> RuleBuilder:
        """Place this rule after every rule carrying ``key``."""
        self._item.after.append(key)
        return self._changed()

    def before_all(self) -> RuleBuilder:
        """Move this rule to the front of the chain."""
        self._item.priority = _Priority.BEFORE_ALL
        return self._changed()

    def after_all(self) -> RuleBuilder:
        """Move this rule to the back of the chain."""
        self._item.priority = _Priority.AFTER_ALL
        return self._changed()

    def alias(self, key: Any) -> RuleBuilder:
        """Let this rule also be known by ``key``."""
        self._item.marks.append(key)
        return self._changed()

    def require(self, key: Any) -> RuleBuilder:
        """Demand that some rule carrying ``key`` is present."""
        self._item.requires.append(key)
        return self._changed()


class CoreRule(ABC):
    """A rule run once per document on the root node."""

    @classmethod
    @abstractmethod
    def run(cls, root: Node, md: Any) -> None:
        """Transform the tree under ``root``."""


class BlockRule(ABC):
    """A rule of the block chain, tried at the start of each line."""

    @classmethod
    def check(cls, state: Any) -> bool:
        """Return True if the rule would match at the current line."""
        return cls.run(state) is not None

    @classmethod
    @abstractmethod
    def run(cls, state: Any) -> tuple[Node, int] | None:
        """Return the new node and the number of lines it spans, or None."""


class InlineRule(ABC):
    """A rule of the inline chain, tried at each position in the text.

    ``MARKER`` is the character the rule starts at; ``"\\0"`` means the rule
    does not stop the text scanner at any particular character.
    """

    MARKER: str = "\0"

    @classmethod
    def check(cls, state: Any) -> int | None:
        """Return the length the rule would consume, or None if it does not match."""
        result = cls.run(state)
        return None if result is None else result[1]

    @classmethod
    @abstractmethod
    def run(cls, state: Any) -> tuple[Node, int] | None:
        """Return the new node and the length it consumes, or None."""