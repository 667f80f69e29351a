"""HTML rendering of the syntax tree."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable, Sequence

from markthat.extset import ExtensionSet

Attrs = Sequence[tuple[str, str]]

_HTML_ESCAPES = str.maketrans({"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;"})


def escape_html(text: str) -> str:
    """Escape the characters that are special in HTML text and attribute values."""
    return text.translate(_HTML_ESCAPES)


class Renderer(ABC):
    """The API every node uses to emit its HTML."""

    ext: ExtensionSet

    @abstractmethod
    def open(self, tag: str, attrs: Attrs = ()) -> None:
        """Write an opening tag with attributes, e.g. ``<a href="url">``."""

    @abstractmethod
    def close(self, tag: str) -> None:
        """Write a closing tag, e.g. ``</a>``."""

    @abstractmethod
    def self_close(self, tag: str, attrs: Attrs = ()) -> None:
        """Write a self-closing tag with attributes, e.g. ``<img src="url">``."""

    @abstractmethod
    def contents(self, nodes: Iterable[Any]) -> None:
        """Render each of the given nodes."""

    @abstractmethod
    def cr(self) -> None:
        """Write a line break unless the output already ends with one."""

    @abstractmethod
    def text(self, text: str) -> None:
        """Write text with HTML escaping."""

    @abstractmethod
    def text_raw(self, text: str) -> None:
        """Write text without escaping."""


class HTMLRenderer(Renderer):
    """Default HTML renderer; with ``xhtml`` set, self-closing tags end in ``/>``."""

    def __init__(self, xhtml: bool = False) -> None:
        self.xhtml = xhtml
        self.ext = ExtensionSet()
        self._result = ""

    def render(self, node: Any) -> None:
        """Render a node by handing it to its value's render method."""
        node.node_value.render(node, self)

    def _write_attrs(self, attrs: Attrs) -> None:
        grouped: dict[str, list[str]] = {}
        for name, value in attrs:
            grouped.setdefault(name, []).append(value)

        for name, values in grouped.items():
            if name == "class":
                values = [" ".join(values)]
            elif name == "style":
                values = [";".join(values)]
            for value in values:
                self._result += f' {escape_html(name)}="{escape_html(value)}"'

    def open(self, tag: str, attrs: Attrs = ()) -> None:
        self._result += f"<{tag}"
        self._write_attrs(attrs)
        self._result += ">"

    def close(self, tag: str) -> None:
        self._result += f"</{tag}>"

    def self_close(self, tag: str, attrs: Attrs = ()) -> None:
        self._result += f"<{tag}"
        self._write_attrs(attrs)
        self._result += " />" if self.xhtml else ">"

    def contents(self, nodes: Iterable[Any]) -> None:
        for node in nodes:
            self.render(node)

    def cr(self) -> None:
        if self._result and not self._result.endswith("\n"):
            self._result += "\n"

    def text(self, text: str) -> None:
        self._result += escape_html(text)

    def text_raw(self, text: str) -> None:
        self._result += text

    def output(self) -> str:
        """Return the rendered HTML, with U+0000 replaced by U+FFFD."""
        return self._result.replace("\0", "\uFFFD")