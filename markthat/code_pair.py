"""Inline structures delimited by runs of a marker, like code spans.

With ``%`` as the marker, ``%foo%`` and ``%%%foo%%%`` give the same node.
The rules follow CommonMark code spans: a marker run of a different length
inside the structure is kept as text (``%%foo%bar%%`` holds ``foo%bar``),
and one space is trimmed from each side when both sides have one
(``% %%foo %`` holds ``%%foo``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from markthat.inline_state import InlineState
from markthat.node import Node, Text
from markthat.rules import InlineRule

if TYPE_CHECKING:
    from markthat.main import MarkdownThat

Factory = Callable[[int], Node]


@dataclass
class _MarkerCache:
    """Where closers of each length were last seen, for one marker."""

    scanned: bool = False
    last_start: dict[int, int] = field(default_factory=dict)


@dataclass
class _CodePairCache:
    by_marker: dict[str, _MarkerCache] = field(default_factory=dict)


@dataclass
class _CodePairConfig:
    factories: dict[str, Factory] = field(default_factory=dict)


def _run_end(src: str, pos: int, end: int, marker: str) -> int:
    while pos < end and src[pos] == marker:
        pos += 1
    return pos


class _CodePairScanner(InlineRule):
    MARKER = "\0"

    @classmethod
    def run(cls, state: InlineState) -> tuple[Node, int] | None:
        marker = cls.MARKER
        src, start, end = state.src, state.pos, state.pos_max
        if src[start] != marker:
            return None
        if state.trailing_text_get().endswith(marker):
            return None

        pos = _run_end(src, start + 1, end, marker)
        opener_len = pos - start

        cache = state.inline_ext.get_or_insert_default(_CodePairCache)
        seen = cache.by_marker.setdefault(marker, _MarkerCache())
        if seen.scanned and seen.last_start.get(opener_len, 0) <= start:
            # no closer of this length is left in the rest of the text
            return None

        match_end = pos
        while (match_start := src.find(marker, match_end, end)) != -1:
            match_end = _run_end(src, match_start + 1, end, marker)
            closer_len = match_end - match_start

            if closer_len == opener_len:
                content = src[pos:match_start].replace("\n", " ")
                content_start, content_end = pos, match_start
                if content.startswith(" ") and content.endswith(" ") and len(content) > 2:
                    content = content[1:-1]
                    content_start += 1
                    content_end -= 1

                factory = state.md.ext.get(_CodePairConfig).factories[marker]
                node = factory(opener_len)
                inner = Node(Text(content))
                inner.srcmap = state.get_map(content_start, content_end)
                node.children.append(inner)
                return node, match_end - start

            # a closer of another length: remember it as a bound for later openers
            seen.last_start[closer_len] = match_start

        seen.scanned = True
        return None


_SCANNERS: dict[str, type[_CodePairScanner]] = {}


def _scanner_for(marker: str) -> type[_CodePairScanner]:
    scanner = _SCANNERS.get(marker)
    if scanner is None:
        scanner = type(
            f"CodePairScanner_{ord(marker):04x}",
            (_CodePairScanner,),
            {"MARKER": marker, "__doc__": f"Code-span-like structure delimited by {marker!r}."},
        )
        _SCANNERS[marker] = scanner
    return scanner


def add_with(md: MarkdownThat, marker: str, factory: Factory) -> None:
    """Add a structure delimited by runs of ``marker``.

    ``factory`` receives the length of the marker run and returns the node;
    the text inside is added to it as a single child.
    """
    if len(marker) != 1 or marker == "\0":
        raise ValueError(f"marker must be a single non-NUL character, got {marker!r}")

    md.ext.get_or_insert_default(_CodePairConfig).factories[marker] = factory

    scanner = _scanner_for(marker)
    if not md.inline.has_rule(scanner):
        md.inline.add_rule(scanner)