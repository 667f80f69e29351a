"""Per-document state of the block-level tokenizer."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from markthat.extset import ExtensionSet
from markthat.node import Node, SourcePos

_LINE_RE = re.compile(r"([ \t]*)([^\r\n]*)(\r\n|\r|\n|)")


@dataclass
class LineOffset:
    """Start, end and indentation of one source line.

    ``line_start`` is where the line begins and never changes.
    ``line_end`` is the position of the line break after the line, or the
    length of the source for the last line.
    ``first_nonspace`` is the position of the first non-space character;
    blockquote and list rules move it forward, and everything before it must
    be treated as whitespace.
    ``indent_nonspace`` is the column of ``first_nonspace`` with tabs
    expanded to multiples of four. A value of -1 marks a line that can only
    continue a paragraph, so indentation arithmetic may go negative.
    """

    line_start: int
    line_end: int
    first_nonspace: int
    indent_nonspace: int


def _indent_width(whitespace: str) -> int:
    column = 0
    for char in whitespace:
        column += 4 - column % 4 if char == "\t" else 1
    return column


def _scan_lines(src: str) -> list[LineOffset]:
    """Split ``src`` into lines; CR, LF and CR+LF all end a line."""
    offsets: list[LineOffset] = []
    pos = 0
    while True:
        match = _LINE_RE.match(src, pos)
        assert match is not None  # the pattern matches the empty string
        indent = match.group(1)
        offsets.append(
            LineOffset(
                line_start=pos,
                line_end=match.end(2),
                first_nonspace=pos + len(indent),
                indent_nonspace=_indent_width(indent),
            )
        )
        pos = match.end()
        if pos >= len(src):
            return offsets


def _right_whitespace(text: str, keep: int) -> tuple[int, int]:
    """Keep ``keep`` columns at the right of ``text``, expanding tabs.

    Returns the number of spaces to prepend (from a tab cut in half) and the
    index in ``text`` from which the kept part begins.
    """
    ends: list[int] = []
    column = 0
    for char in text:
        column += 4 - column % 4 if char == "\t" else 1
        ends.append(column)

    skip = column - keep
    if skip <= 0:
        return 0, 0

    start_column = 0
    for index, end_column in enumerate(ends):
        if end_column > skip:
            if start_column < skip:
                return end_column - skip, index + 1
            return 0, index
        start_column = end_column
    return 0, len(text)


class BlockState:
    """Everything a block rule needs to parse block structures."""

    def __init__(self, src: str, md: Any, root_ext: ExtensionSet, node: Node) -> None:
        self.src = src
        self.md = md
        self.root_ext = root_ext
        self.node = node
        self.line_offsets: list[LineOffset] = _scan_lines(src)
        self.blk_indent = 0
        self.line = 0
        self.line_max = len(self.line_offsets)
        self.tight = False
        self.list_indent: int | None = None
        self.level = 0

    def test_rules_at_line(self) -> bool:
        """Return True if any block rule would match at the current line."""
        return any(rule.check(self) for rule in self.md.block.ruler)

    def is_empty(self, line: int) -> bool:
        """Return True if ``line`` holds only whitespace; False past the end."""
        if not 0 <= line < self.line_max:
            return False
        offsets = self.line_offsets[line]
        return offsets.first_nonspace >= offsets.line_end

    def skip_empty_lines(self, start: int) -> int:
        """Return the first line at or after ``start`` that is not empty."""
        line = start
        while line != self.line_max and self.is_empty(line):
            line += 1
        return line

    def line_indent(self, line: int) -> int:
        """Return the indent of ``line`` relative to the current block.

        It is negative when the line is indented less than the current list item.
        """
        if line < self.line_max:
            return self.line_offsets[line].indent_nonspace - self.blk_indent
        return 0

    def get_line(self, line: int) -> str:
        """Return ``line`` without its leading indentation; empty past the end."""
        if line < self.line_max:
            offsets = self.line_offsets[line]
            return self.src[offsets.first_nonspace : offsets.line_end]
        return ""

    def get_lines(
        self, begin: int, end: int, indent: int, keep_last_lf: bool
    ) -> tuple[str, list[tuple[int, int]]]:
        """Cut lines ``begin..end`` from the source, removing ``indent`` columns.

        Returns the text and, for each line, a pair of its start in the text
        and its start in the source.
        """
        if not 0 <= begin <= end <= self.line_max:
            raise ValueError(f"invalid line range {begin}..{end}")

        parts: list[str] = []
        mapping: list[tuple[int, int]] = []
        length = 0
        for number, offsets in enumerate(self.line_offsets[begin:end], begin):
            spaces, first = _right_whitespace(
                self.src[offsets.line_start : offsets.first_nonspace],
                offsets.indent_nonspace - indent,
            )
            mapping.append((length, offsets.line_start + first))
            chunk = " " * spaces + self.src[offsets.line_start + first : offsets.line_end]
            if number + 1 < end or keep_last_lf:
                chunk += "\n"
            parts.append(chunk)
            length += len(chunk)

        return "".join(parts), mapping

    def get_map(self, start_line: int, end_line: int) -> SourcePos:
        """Return the source span from the text of ``start_line`` to the end of ``end_line``."""
        if start_line > end_line:
            raise ValueError(f"start line {start_line} is after end line {end_line}")
        return SourcePos(
            self.line_offsets[start_line].first_nonspace,
            self.line_offsets[end_line].line_end,
        )

    def get_map_from_offsets(self, start_pos: int, end_pos: int) -> SourcePos:
        """Return the source span between two source positions."""
        if start_pos > end_pos:
            raise ValueError(f"start position {start_pos} is after end position {end_pos}")
        return SourcePos(start_pos, end_pos)