"""Per-block state of the inline tokenizer."""

from __future__ import annotations

import bisect
import string
import unicodedata
from dataclasses import dataclass
from typing import Any

from markthat.extset import ExtensionSet
from markthat.node import Node, SourcePos, Text

_ASCII_PUNCT = frozenset(string.punctuation)
_NOT_WHITESPACE = frozenset("\x1c\x1d\x1e\x1f")


def _is_whitespace(char: str) -> bool:
    return char.isspace() and char not in _NOT_WHITESPACE


def _is_punct(char: str) -> bool:
    return char in _ASCII_PUNCT or unicodedata.category(char).startswith("P")


@dataclass(frozen=True)
class DelimiterRun:
    """A run of emphasis-like markers and whether it can open or close."""

    marker: str
    can_open: bool
    can_close: bool
    length: int


class InlineState:
    """Everything an inline rule needs to parse inline structures.

    ``srcmap`` holds, for each line, the pair of its start in ``src`` and its
    start in the whole document being parsed.
    """

    def __init__(
        self,
        src: str,
        srcmap: list[tuple[int, int]],
        md: Any,
        root_ext: ExtensionSet,
        inline_ext: ExtensionSet,
        node: Node,
    ) -> None:
        self.src = src
        self.srcmap = srcmap
        self.md = md
        self.root_ext = root_ext
        self.inline_ext = inline_ext
        self.node = node
        self.link_level = 0
        self.level = 0

        # trailing whitespace is cut first, so an all-blank source leaves nothing
        self.pos_max = len(src.rstrip(" \t"))
        self.pos = self.pos_max - len(src[: self.pos_max].lstrip(" \t"))

    def _last_text(self) -> Text | None:
        if not self.node.children:
            return None
        return self.node.children[-1].cast(Text)

    def trailing_text_push(self, start: int, end: int) -> None:
        """Append ``src[start:end]`` to the last text node, creating one if needed."""
        text = self._last_text()
        if text is None:
            node = Node(Text(self.src[start:end]))
            node.srcmap = self.get_map(start, end)
            self.node.children.append(node)
            return

        text.content += self.src[start:end]
        last = self.node.children[-1]
        if last.srcmap is not None:
            map_start, _ = last.srcmap.get_byte_offsets()
            last.srcmap = SourcePos(map_start, self._source_pos_for(end))

    def trailing_text_pop(self, count: int) -> None:
        """Remove ``count`` characters from the end of the last text node.

        Raises IndexError if there are no children and TypeError if the last
        child is not text.
        """
        if count == 0:
            return

        last = self.node.children[-1]
        text = last.cast(Text)
        if text is None:
            raise TypeError(f"last child is {last.name()}, not text")

        self.node.children.pop()
        if len(text.content) == count:
            return

        text.content = text.content[: len(text.content) - count]
        if last.srcmap is not None:
            map_start, map_end = last.srcmap.get_byte_offsets()
            last.srcmap = SourcePos(map_start, self._source_pos_for(map_end - count))
        self.node.children.append(last)

    def trailing_text_get(self) -> str:
        """Return the content of the last child if it is text, else an empty string."""
        text = self._last_text()
        return "" if text is None else text.content

    def scan_delims(self, start: int, can_split_word: bool) -> DelimiterRun:
        """Scan a run of markers at ``start`` and decide if it can open or close.

        With ``can_split_word`` false, the run follows the stricter rules of
        ``_`` emphasis and does not match inside a word.
        """
        last_char = self.src[start - 1] if start > 0 else " "

        marker = self.src[start]
        run = self.src[start : self.pos_max]
        count = len(run) - len(run.lstrip(marker))
        after = start + count
        next_char = self.src[after] if after < self.pos_max else " "

        is_last_punct = _is_punct(last_char)
        is_next_punct = _is_punct(next_char)
        is_last_whitespace = _is_whitespace(last_char)
        is_next_whitespace = _is_whitespace(next_char)

        left_flanking = not is_next_whitespace and not (
            is_next_punct and not (is_last_whitespace or is_last_punct)
        )
        right_flanking = not is_last_whitespace and not (
            is_last_punct and not (is_next_whitespace or is_next_punct)
        )

        if can_split_word:
            can_open = left_flanking
            can_close = right_flanking
        else:
            can_open = left_flanking and (not right_flanking or is_last_punct)
            can_close = right_flanking and (not left_flanking or is_next_punct)

        return DelimiterRun(marker=marker, can_open=can_open, can_close=can_close, length=count)

    def _source_pos_for(self, pos: int) -> int:
        line = bisect.bisect_right(self.srcmap, pos, key=lambda entry: entry[0]) - 1
        if line < 0:
            raise ValueError(f"position {pos} precedes the source map")
        src_start, doc_start = self.srcmap[line]
        return doc_start + (pos - src_start)

    def get_map(self, start_pos: int, end_pos: int) -> SourcePos:
        """Return the span of the document that ``src[start_pos:end_pos]`` came from."""
        if start_pos > end_pos:
            raise ValueError(f"start position {start_pos} is after end position {end_pos}")
        return SourcePos(self._source_pos_for(start_pos), self._source_pos_for(end_pos))