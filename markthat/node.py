"""Syntax tree nodes and the basic node values."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, TypeVar

from markthat.extset import ExtensionSet
from markthat.renderer import HTMLRenderer, Renderer

V = TypeVar("V", bound="NodeValue")


@dataclass(frozen=True)
class SourcePos:
    """A span of the markdown source, as start and end offsets."""

    start: int
    end: int

    def get_byte_offsets(self) -> tuple[int, int]:
        """Return the span as a ``(start, end)`` pair."""
        return self.start, self.end


class NodeValue:
    """Contents of a specific kind of node.

    ``text_equivalent`` is what :meth:`Node.collect_text` takes from a node of
    this kind that holds no text of its own (a soft line break, for example).
    """

    text_equivalent: str | None = None

    def render(self, node: Node, fmt: Renderer) -> None:
        """Emit the HTML for ``node`` through ``fmt``."""
        raise NotImplementedError(f"{node.name()} doesn't implement render")


class NodeEmpty(NodeValue):
    """Placeholder value; a node holding it cannot be rendered."""

    def __repr__(self) -> str:
        return "NodeEmpty()"


class Node:
    """A single node of the syntax tree."""

    def __init__(self, value: NodeValue | None = None) -> None:
        self.children: list[Node] = []
        self.srcmap: SourcePos | None = None
        self.ext = ExtensionSet()
        self.attrs: list[tuple[str, str]] = []
        self._value: NodeValue = NodeEmpty() if value is None else value

    def __repr__(self) -> str:
        return f"Node({self._value!r}, children={len(self.children)}, srcmap={self.srcmap!r})"

    @property
    def node_value(self) -> NodeValue:
        """The value this node holds."""
        return self._value

    @property
    def node_type(self) -> type:
        """The type of the value this node holds."""
        return type(self._value)

    def name(self) -> str:
        """Return the qualified name of the value's type."""
        cls = type(self._value)
        return f"{cls.__module__}.{cls.__qualname__}"

    def is_a(self, cls: type) -> bool:
        """Return True if the value is exactly of type ``cls``."""
        return type(self._value) is cls

    def cast(self, cls: type[V]) -> V | None:
        """Return the value if it is exactly of type ``cls``, else None."""
        return self._value if type(self._value) is cls else None  # type: ignore[return-value]

    def replace(self, value: NodeValue) -> None:
        """Swap the value, keeping children, source map, attributes and extensions."""
        self._value = value

    def render(self) -> str:
        """Render this node to HTML."""
        fmt = HTMLRenderer(xhtml=False)
        fmt.render(self)
        return fmt.output()

    def xrender(self) -> str:
        """Render this node to XHTML, closing void tags with ``/>``."""
        fmt = HTMLRenderer(xhtml=True)
        fmt.render(self)
        return fmt.output()

    def walk(self) -> Iterator[tuple[Node, int]]:
        """Yield ``(node, depth)`` for the whole tree in preorder.

        Children are read after their parent is yielded, so a caller may
        rewrite a node's children before they are visited.
        """
        stack: list[tuple[Node, int]] = [(self, 0)]
        while stack:
            node, depth = stack.pop()
            yield node, depth
            stack.extend((child, depth + 1) for child in reversed(node.children))

    def walk_post(self) -> Iterator[tuple[Node, int]]:
        """Yield ``(node, depth)`` for the whole tree in postorder."""
        stack: list[tuple[Node, int, bool]] = [(self, 0, False)]
        while stack:
            node, depth, expanded = stack.pop()
            if expanded:
                yield node, depth
            else:
                stack.append((node, depth, True))
                stack.extend((child, depth + 1, False) for child in reversed(node.children))

    def collect_text(self) -> str:
        """Join the text of every text node in the tree."""
        parts: list[str] = []
        for node, _ in self.walk():
            text = node.cast(Text)
            if text is not None:
                parts.append(text.content)
            elif node.node_value.text_equivalent is not None:
                parts.append(node.node_value.text_equivalent)
        return "".join(parts)


@dataclass
class Root(NodeValue):
    """Root node of the tree, holding the source and document-wide extensions."""

    content: str
    ext: ExtensionSet = field(default_factory=ExtensionSet)

    def render(self, node: Node, fmt: Renderer) -> None:
        fmt.contents(node.children)


@dataclass
class Text(NodeValue):
    """Plain text."""

    content: str

    def render(self, node: Node, fmt: Renderer) -> None:
        fmt.text(self.content)


@dataclass
class TextSpecial(NodeValue):
    """Escaped text, such as backslash escapes and entities."""

    content: str
    markup: str
    info: str

    def render(self, node: Node, fmt: Renderer) -> None:
        fmt.text(self.content)