"""Inline structures shaped like ``[label](<href> "title")``, with an optional prefix.

CommonMark has two of them: links, ``[text](<href> "title")``, and images,
``![alt](<src> "title")``. Both the inline form and the reference forms
(``[text][label]``, ``[label][]`` and ``[label]``) are recognised; references
are looked up in a :class:`ReferenceMap` stored in the document's extensions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from html.entities import html5
from typing import TYPE_CHECKING, Callable

from markthat.inline_state import InlineState
from markthat.node import Node
from markthat.rules import InlineRule

if TYPE_CHECKING:
    from markthat.main import MarkdownThat

Factory = Callable[[str | None, str | None], Node]

_NO_PREFIX = "\0"
_MAX_PAREN_LEVEL = 32
_LINK_WHITESPACE = " \t\n"

_UNESCAPE_RE = re.compile(
    r"\\([!\"#$%&'()*+,\-./:;<=>?@\[\\\]^_`{|}~])"
    r"|&(#[0-9]{1,7}|#[xX][0-9a-fA-F]{1,6}|[A-Za-z][A-Za-z0-9]{1,31});"
)


def _decode_entity(match: re.Match[str]) -> str:
    escaped = match.group(1)
    if escaped is not None:
        return escaped

    entity = match.group(2)
    if entity.startswith("#"):
        digits = entity[1:]
        code = int(digits[1:], 16) if digits[:1] in ("x", "X") else int(digits)
        if code == 0 or 0xD800 <= code <= 0xDFFF or code > 0x10FFFF:
            return "\uFFFD"
        return chr(code)
    return html5.get(entity + ";", match.group(0))


def _unescape_all(text: str) -> str:
    """Resolve backslash escapes and character references."""
    if "\\" not in text and "&" not in text:
        return text
    return _UNESCAPE_RE.sub(_decode_entity, text)


def _skip_whitespace(src: str, pos: int, end: int) -> int:
    while pos < end and src[pos] in _LINK_WHITESPACE:
        pos += 1
    return pos


class ReferenceMap:
    """Link reference definitions, looked up by case-insensitive label."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[str, str | None]] = {}

    @staticmethod
    def normalize(label: str) -> str:
        """Collapse inner whitespace, trim and case-fold a label."""
        return " ".join(label.split()).casefold()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, label: str) -> bool:
        return self.normalize(label) in self._entries

    def insert(self, label: str, destination: str, title: str | None = None) -> None:
        """Define a reference; the first definition of a label wins."""
        self._entries.setdefault(self.normalize(label), (destination, title))

    def get(self, label: str) -> tuple[str, str | None] | None:
        """Return ``(destination, title)`` for the label, or None."""
        return self._entries.get(self.normalize(label))


@dataclass(frozen=True)
class ParseLinkFragmentResult:
    """A parsed piece of a link: where it ends, how many line breaks it holds, its text."""

    pos: int
    lines: int
    text: str


@dataclass(frozen=True)
class _ParseLinkResult:
    label_start: int
    label_end: int
    href: str | None
    title: str | None
    end: int


@dataclass
class _LinkConfig:
    factories: dict[str, Factory] = field(default_factory=dict)


@dataclass
class _LinkLabelScanCache:
    ends: dict[tuple[int, bool], int | None] = field(default_factory=dict)


def parse_link_destination(text: str, start: int, end: int) -> ParseLinkFragmentResult | None:
    """Parse the ``<href>`` part of a link, in angle brackets or bare."""
    if start < end and text[start] == "<":
        pos = start + 1
        while pos < end:
            char = text[pos]
            if char in "\n<":
                return None
            if char == ">":
                return ParseLinkFragmentResult(pos + 1, 0, _unescape_all(text[start + 1 : pos]))
            if char == "\\":
                if pos + 1 >= end:
                    return None
                pos += 2
            else:
                pos += 1
        return None

    level = 0
    pos = start
    while pos < end:
        char = text[pos]
        # space and ASCII control characters end the destination
        if char <= " " or char == "\x7f":
            break
        if char == "\\":
            if pos + 1 >= end or text[pos + 1] == " ":
                break
            pos += 2
        elif char == "(":
            level += 1
            if level > _MAX_PAREN_LEVEL:
                return None
            pos += 1
        elif char == ")":
            if level == 0:
                break
            level -= 1
            pos += 1
        else:
            pos += 1

    if level != 0:
        return None
    return ParseLinkFragmentResult(pos, 0, _unescape_all(text[start:pos]))


def parse_link_title(text: str, start: int, end: int) -> ParseLinkFragmentResult | None:
    """Parse the ``"title"`` part of a link; ``'title'`` and ``(title)`` work too."""
    if start >= end:
        return None
    marker = {'"': '"', "'": "'", "(": ")"}.get(text[start])
    if marker is None:
        return None

    pos = start + 1
    lines = 0
    while pos < end:
        char = text[pos]
        if char == marker:
            return ParseLinkFragmentResult(pos + 1, lines, _unescape_all(text[start + 1 : pos]))
        if char == "(" and marker == ")":
            return None
        if char == "\n":
            lines += 1
            pos += 1
        elif char == "\\":
            if pos + 1 >= end:
                return None
            pos += 2
        else:
            pos += 1
    return None


def _parse_link_label(state: InlineState, start: int, enable_nested: bool) -> int | None:
    """Return the position of the ``]`` closing the label opened at ``start``."""
    cache = state.inline_ext.get_or_insert_default(_LinkLabelScanCache)
    key = (start, enable_nested)
    if key in cache.ends:
        return cache.ends[key]

    old_pos = state.pos
    found = False
    level = 1
    state.pos = start + 1

    while state.pos < state.pos_max:
        char = state.src[state.pos]
        if char == "]":
            level -= 1
            if level == 0:
                found = True
                break

        prev_pos = state.pos
        state.md.inline.skip_token(state)
        if char == "[":
            if prev_pos == state.pos - 1:
                # a bare "[" that no token consumed opens a deeper level
                level += 1
                cache = state.inline_ext.get_or_insert_default(_LinkLabelScanCache)
                cached_key = (prev_pos, enable_nested)
                if cached_key in cache.ends:
                    cached = cache.ends[cached_key]
                    if cached is None:
                        break
                    state.pos = cached
            elif not enable_nested:
                break

    label_end = state.pos if found else None
    state.pos = old_pos

    cache = state.inline_ext.get_or_insert_default(_LinkLabelScanCache)
    cache.ends[key] = label_end
    return label_end


def _parse_link(state: InlineState, start: int, enable_nested: bool) -> _ParseLinkResult | None:
    """Parse ``[label](<href> "title")`` or a reference, with ``[`` at ``start``."""
    label_end = _parse_link_label(state, start, enable_nested)
    if label_end is None:
        return None

    src, end = state.src, state.pos_max
    label_start = start + 1
    pos = label_end + 1
    href: str | None = None
    title: str | None = None

    if pos < end and src[pos] == "(":
        pos = _skip_whitespace(src, pos + 1, end)

        destination = parse_link_destination(src, pos, end)
        if destination is not None:
            formatter = state.md.link_formatter
            candidate = formatter.normalize_link(destination.text)
            if formatter.validate_link(candidate):
                pos = destination.pos
                href = candidate

            pos = _skip_whitespace(src, pos, end)
            parsed_title = parse_link_title(src, pos, end)
            if parsed_title is not None:
                title = parsed_title.text
                pos = _skip_whitespace(src, parsed_title.pos, end)

        if pos < end and src[pos] == ")":
            return _ParseLinkResult(label_start, label_end, href, title, pos + 1)

    # reference link
    pos = label_end + 1
    ref_label: str | None = None
    if pos < end and src[pos] == "[":
        ref_end = _parse_link_label(state, pos, False)
        if ref_end is not None:
            ref_label = src[pos + 1 : ref_end]
            pos = ref_end + 1

    references = state.root_ext.get(ReferenceMap)
    if references is None:
        return None

    # collapsed ("[label][]") and shortcut ("[label]") references use the label itself
    label = ref_label if ref_label else src[label_start:label_end]
    entry = references.get(label)
    if entry is None:
        return None

    destination_text, ref_title = entry
    return _ParseLinkResult(label_start, label_end, destination_text, ref_title, pos)


class _LinkScanner(InlineRule):
    MARKER = "["
    PREFIX = _NO_PREFIX
    ENABLE_NESTED = True

    @classmethod
    def _label_offset(cls, state: InlineState) -> int | None:
        src, pos, end = state.src, state.pos, state.pos_max
        if cls.PREFIX == _NO_PREFIX:
            return 0 if src[pos] == "[" else None
        if pos + 1 < end and src[pos] == cls.PREFIX and src[pos + 1] == "[":
            return 1
        return None

    @classmethod
    def check(cls, state: InlineState) -> int | None:
        offset = cls._label_offset(state)
        if offset is None:
            return None
        result = _parse_link(state, state.pos + offset, cls.ENABLE_NESTED)
        return None if result is None else result.end - state.pos

    @classmethod
    def run(cls, state: InlineState) -> tuple[Node, int] | None:
        offset = cls._label_offset(state)
        if offset is None:
            return None

        start = state.pos
        result = _parse_link(state, start + offset, cls.ENABLE_NESTED)
        if result is None:
            return None

        factory = state.md.ext.get(_LinkConfig).factories[cls.PREFIX]
        old_node = state.node
        old_max = state.pos_max
        state.node = factory(result.href, result.title)

        state.link_level += 1
        state.pos = result.label_start
        state.pos_max = result.label_end
        try:
            state.md.inline.tokenize(state)
        finally:
            state.pos = start
            state.pos_max = old_max
            state.link_level -= 1
            node, state.node = state.node, old_node

        return node, result.end - state.pos


class LinkScannerEnd(InlineRule):
    """Makes the text scanner stop at ``]``; it never matches anything itself."""

    MARKER = "]"

    @classmethod
    def check(cls, state: InlineState) -> int | None:
        return None

    @classmethod
    def run(cls, state: InlineState) -> tuple[Node, int] | None:
        return None


_SCANNERS: dict[tuple[str, bool], type[_LinkScanner]] = {}


def _scanner_for(prefix: str, enable_nested: bool) -> type[_LinkScanner]:
    key = (prefix, enable_nested)
    scanner = _SCANNERS.get(key)
    if scanner is None:
        scanner = type(
            f"LinkScanner_{ord(prefix):04x}_{int(enable_nested)}",
            (_LinkScanner,),
            {
                "MARKER": "[" if prefix == _NO_PREFIX else prefix,
                "PREFIX": prefix,
                "ENABLE_NESTED": enable_nested,
                "__doc__": "Link-like structure"
                + ("" if prefix == _NO_PREFIX else f" prefixed by {prefix!r}")
                + ".",
            },
        )
        _SCANNERS[key] = scanner
    return scanner


def _install(md: MarkdownThat, prefix: str, enable_nested: bool, factory: Factory) -> None:
    md.ext.get_or_insert_default(_LinkConfig).factories[prefix] = factory
    scanner = _scanner_for(prefix, enable_nested)
    if not md.inline.has_rule(scanner):
        md.inline.add_rule(scanner)
    if not md.inline.has_rule(LinkScannerEnd):
        md.inline.add_rule(LinkScannerEnd)


def add(md: MarkdownThat, enable_nested: bool, factory: Factory) -> None:
    """Add a ``[label](href "title")`` structure with no prefix.

    ``factory`` receives the href and title (either may be None) and returns
    the node; the parsed label becomes its children.
    """
    _install(md, _NO_PREFIX, enable_nested, factory)


def add_prefix(md: MarkdownThat, prefix: str, enable_nested: bool, factory: Factory) -> None:
    """Add a ``<prefix>[label](href "title")`` structure, like ``![alt](src)``."""
    if len(prefix) != 1 or prefix == _NO_PREFIX:
        raise ValueError(f"prefix must be a single non-NUL character, got {prefix!r}")
    _install(md, prefix, enable_nested, factory)