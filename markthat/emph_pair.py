"""Inline structures delimited by fixed-length marker pairs, like emphasis.

Covers ``*em*``, ``**strong**``, ``~~strike~~``, ``^sup^`` and the like.
Each marker character can have a structure for run lengths 1, 2 and 3.
These structures bind more loosely than the other inline rules.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from markthat.inline import InlineParserRule
from markthat.inline_state import InlineState
from markthat.node import Node, NodeValue, SourcePos, Text
from markthat.rules import CoreRule, InlineRule

if TYPE_CHECKING:
    from markthat.main import MarkdownThat

Factory = Callable[[], Node]


@dataclass
class EmphMarker(NodeValue):
    """A run of markers waiting to be matched; replaced by a node or text later."""

    marker: str
    length: int
    remaining: int
    open: bool
    close: bool


@dataclass
class _PairConfig:
    inserted: bool = False
    fns: list[Factory | None] = field(default_factory=lambda: [None, None, None])


@dataclass
class _PairConfigs:
    by_marker: dict[str, _PairConfig] = field(default_factory=dict)


@dataclass
class _OpenersBottom:
    """Lower bounds of opener search per marker, kept so matching stays linear."""

    by_marker: dict[str, list[int]] = field(default_factory=dict)


def _is_odd_match(opener: EmphMarker, closer: EmphMarker) -> bool:
    # If either delimiter can both open and close, the sum of the run lengths
    # must not be a multiple of 3 unless both lengths are.
    return (
        (opener.close or closer.open)
        and (opener.length + closer.length) % 3 == 0
        and (opener.length % 3 != 0 or closer.length % 3 != 0)
    )


def _matched_factory(fns: list[Factory | None], max_len: int) -> tuple[int, Factory] | None:
    for marker_len in range(max_len, 0, -1):
        factory = fns[marker_len - 1]
        if factory is not None:
            return marker_len, factory
    return None


def _match_delimiters(state: InlineState, closer_token: Node) -> Node:
    """Find openers for the closer just scanned and wrap what lies between."""
    children = state.node.children
    if not children:
        return closer_token

    closer = dataclasses.replace(closer_token.cast(EmphMarker))
    if not closer.close:
        return closer_token

    bottoms = state.node.ext.get_or_insert_default(_OpenersBottom)
    bottom = bottoms.by_marker.setdefault(closer.marker, [0] * 6)
    parameter = int(closer.open) * 3 + closer.length % 3
    fns = state.md.ext.get(_PairConfigs).by_marker[closer.marker].fns

    idx = len(children) - 1
    new_bottom = idx
    while idx > bottom[parameter]:
        idx -= 1
        found = children[idx].cast(EmphMarker)
        if found is None:
            continue

        opener = dataclasses.replace(found)
        if opener.open and opener.marker == closer.marker and not _is_odd_match(opener, closer):
            while closer.remaining > 0 and opener.remaining > 0:
                matched = _matched_factory(fns, min(3, opener.remaining, closer.remaining))
                # only longer structures are defined: treat as no match
                if matched is None:
                    break
                marker_len, factory = matched

                closer.remaining -= marker_len
                opener.remaining -= marker_len

                new_token = factory()
                new_token.children = children[idx + 1 :]
                del children[idx + 1 :]

                end_map_pos = 0
                if closer_token.srcmap is not None:
                    start, end = closer_token.srcmap.get_byte_offsets()
                    closer_token.srcmap = SourcePos(start + marker_len, end)
                    end_map_pos = start + marker_len

                start_map_pos = 0
                opener_token = children[-1]
                if opener_token.srcmap is not None:
                    start, end = opener_token.srcmap.get_byte_offsets()
                    opener_token.srcmap = SourcePos(start, end - marker_len)
                    start_map_pos = end - marker_len

                new_token.srcmap = SourcePos(start_map_pos, end_map_pos)

                if opener.remaining == 0:
                    children.pop()

                new_bottom = 0
                children.append(new_token)

        if opener.remaining > 0:
            children[idx].replace(opener)

    if new_bottom != 0:
        bottom[parameter] = new_bottom

    if closer.remaining > 0:
        closer_token.replace(closer)
        return closer_token
    return children.pop()


class _EmphPairScanner(InlineRule):
    MARKER = "\0"
    CAN_SPLIT_WORD = True

    @classmethod
    def check(cls, state: InlineState) -> int | None:
        # the rule works on closers, so anything skipping over it sees plain text
        return None

    @classmethod
    def run(cls, state: InlineState) -> tuple[Node, int] | None:
        if state.src[state.pos] != cls.MARKER:
            return None

        scanned = state.scan_delims(state.pos, cls.CAN_SPLIT_WORD)
        node = Node(
            EmphMarker(
                marker=cls.MARKER,
                length=scanned.length,
                remaining=scanned.length,
                open=scanned.can_open,
                close=scanned.can_close,
            )
        )
        node.srcmap = state.get_map(state.pos, state.pos + scanned.length)
        node = _match_delimiters(state, node)

        start, end = node.srcmap.get_byte_offsets()
        token_len = end - start
        # step back so the tokenizer computes the source map of the whole node
        state.pos += scanned.length - token_len
        return node, token_len


_SCANNERS: dict[tuple[str, bool], type[_EmphPairScanner]] = {}


def _scanner_for(marker: str, can_split_word: bool) -> type[_EmphPairScanner]:
    key = (marker, can_split_word)
    scanner = _SCANNERS.get(key)
    if scanner is None:
        scanner = type(
            f"EmphPairScanner_{ord(marker):04x}_{int(can_split_word)}",
            (_EmphPairScanner,),
            {
                "MARKER": marker,
                "CAN_SPLIT_WORD": can_split_word,
                "__doc__": f"Emphasis-like structure delimited by {marker!r}.",
            },
        )
        _SCANNERS[key] = scanner
    return scanner


def _fragments_join(node: Node) -> None:
    """Turn unmatched markers into text and merge adjacent text nodes."""
    for token in node.children:
        marker = token.cast(EmphMarker)
        if marker is not None:
            token.replace(Text(marker.marker * marker.remaining))

    merged: list[Node] = []
    for token in node.children:
        text = token.cast(Text)
        previous = merged[-1].cast(Text) if merged else None
        if text is None or previous is None:
            merged.append(token)
            continue

        previous.content += text.content
        head = merged[-1]
        if head.srcmap is not None and token.srcmap is not None:
            head.srcmap = SourcePos(head.srcmap.start, token.srcmap.end)

    node.children = [
        token
        for token in merged
        if (text := token.cast(Text)) is None or text.content
    ]


class FragmentsJoin(CoreRule):
    """Core rule that cleans up after emphasis matching across the whole tree."""

    @classmethod
    def run(cls, root: Node, md: MarkdownThat) -> None:
        for node, _ in root.walk():
            _fragments_join(node)


def add_with(
    md: MarkdownThat,
    marker: str,
    length: int,
    can_split_word: bool,
    factory: Factory,
) -> None:
    """Add a structure delimited by ``length`` copies of ``marker`` on each side.

    ``can_split_word`` allows the structure inside a word (``foo*bar*baz``).
    The scanner for a marker keeps the ``can_split_word`` of its first call.
    """
    if len(marker) != 1 or marker == "\0":
        raise ValueError(f"marker must be a single non-NUL character, got {marker!r}")
    if length not in (1, 2, 3):
        raise ValueError(f"marker length must be 1, 2 or 3, got {length}")

    config = md.ext.get_or_insert_default(_PairConfigs).by_marker.setdefault(
        marker, _PairConfig()
    )
    config.fns[length - 1] = factory

    if not config.inserted:
        config.inserted = True
        md.inline.add_rule(_scanner_for(marker, can_split_word))

    if not md.has_rule(FragmentsJoin):
        md.add_rule(FragmentsJoin).before_all().after(InlineParserRule)