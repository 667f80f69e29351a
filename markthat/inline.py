"""Inline-level tokenizer, the plain-text rule and the core rule that runs them."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable

from markthat.extset import ExtensionSet
from markthat.inline_state import InlineState
from markthat.node import Node, NodeEmpty, NodeValue, Root
from markthat.rules import CoreRule, InlineRule, Ruler, RuleBuilder

if TYPE_CHECKING:
    from markthat.main import MarkdownThat

# characters the text scanner stops at when every rule marker is among them
_PUNCT_STOPS = "\n!#$%&*+-:<=>@[\\]^_`{}~"


def _text_pattern(markers: Iterable[str]) -> re.Pattern[str]:
    markers = set(markers)
    stops = _PUNCT_STOPS if markers <= set(_PUNCT_STOPS) else "".join(sorted(markers))
    return re.compile("[^" + "".join(re.escape(char) for char in stops) + "]+")


def _first_result(results: Iterable[Any]) -> Any:
    return next((result for result in results if result is not None), None)


@dataclass
class InlineRoot(NodeValue):
    """Placeholder holding raw inline text until the inline parser replaces it."""

    content: str
    mapping: list[tuple[int, int]]
    ext: ExtensionSet = field(default_factory=ExtensionSet)


class InlineParser:
    """Runs the inline rule chain over a piece of text."""

    def __init__(self) -> None:
        self.ruler: Ruler[type[InlineRule], type[InlineRule]] = Ruler()
        self.text_charmap: dict[str, list[type[InlineRule]]] = {}
        self._text_re: re.Pattern[str] | None = None

    def _text_length(self, state: InlineState) -> int:
        if self._text_re is None:
            self._text_re = _text_pattern(self.text_charmap)
        match = self._text_re.match(state.src, state.pos, state.pos_max)
        return 0 if match is None else match.end() - state.pos

    def skip_token(self, state: InlineState) -> None:
        """Advance ``state.pos`` past one token, running rules in check mode."""
        length = None
        if state.level < state.md.max_nesting:
            length = _first_result(rule.check(state) for rule in self.ruler)
        else:
            # too much nesting: skip to the end of the text
            state.pos = state.pos_max

        if length is not None:
            state.pos += length
        elif state.pos < state.pos_max:
            state.pos += 1

    def tokenize(self, state: InlineState) -> None:
        """Turn the text from ``state.pos`` to ``state.pos_max`` into nodes."""
        end = state.pos_max

        while state.pos < end:
            result = None
            if state.level < state.md.max_nesting:
                result = _first_result(rule.run(state) for rule in self.ruler)

            if result is not None:
                node, length = result
                state.pos += length
                if not node.is_a(NodeEmpty):
                    node.srcmap = state.get_map(state.pos - length, state.pos)
                    state.node.children.append(node)
                continue

            state.trailing_text_push(state.pos, state.pos + 1)
            state.pos += 1

    def parse(
        self,
        src: str,
        srcmap: list[tuple[int, int]],
        node: Node,
        md: MarkdownThat,
        root_ext: ExtensionSet,
        inline_ext: ExtensionSet,
    ) -> Node:
        """Parse ``src`` into inline nodes appended to ``node``, and return it."""
        state = InlineState(src, srcmap, md, root_ext, inline_ext, node)
        self.tokenize(state)
        return state.node

    def add_rule(self, rule: type[InlineRule]) -> RuleBuilder:
        """Add a rule to the chain and return a builder to position it."""
        if rule.MARKER != "\0":
            self.text_charmap.setdefault(rule.MARKER, []).append(rule)
            self._text_re = None
        return self.ruler.add(rule, rule)

    def has_rule(self, rule: type[InlineRule]) -> bool:
        """Return True if the rule is in the chain."""
        return self.ruler.contains(rule)

    def remove_rule(self, rule: type[InlineRule]) -> None:
        """Remove the rule from the chain; the text scanner keeps stopping at its marker."""
        if rule.MARKER != "\0":
            rules = self.text_charmap.get(rule.MARKER, [])
            self.text_charmap[rule.MARKER] = [other for other in rules if other is not rule]
            self._text_re = None
        self.ruler.remove(rule)


class TextScanner(InlineRule):
    """Consumes runs of characters no other rule can start at."""

    MARKER = "\0"

    @classmethod
    def check(cls, state: InlineState) -> int | None:
        length = state.md.inline._text_length(state)
        return length or None

    @classmethod
    def run(cls, state: InlineState) -> tuple[Node, int] | None:
        length = state.md.inline._text_length(state)
        if length == 0:
            return None
        state.trailing_text_push(state.pos, state.pos + length)
        state.pos += length
        return Node(), 0


def _parse_inline_roots(node: Node, md: MarkdownThat, root_ext: ExtensionSet) -> None:
    idx = 0
    while idx < len(node.children):
        child = node.children[idx]
        data = child.cast(InlineRoot)
        if data is None:
            _parse_inline_roots(child, md, root_ext)
            idx += 1
            continue

        # rules see the enclosing node's extensions while parsing
        child.ext, node.ext = node.ext, ExtensionSet()
        child.children = []
        parsed = md.inline.parse(data.content, data.mapping, child, md, root_ext, data.ext)

        node.children[idx : idx + 1] = parsed.children
        node.ext = parsed.ext
        idx += len(parsed.children)


class InlineParserRule(CoreRule):
    """Core rule that replaces every InlineRoot in the tree with parsed inline nodes."""

    @classmethod
    def run(cls, root: Node, md: MarkdownThat) -> None:
        data = root.cast(Root)
        if data is None:
            raise TypeError(f"inline parser must run on the root node, not {root.name()}")
        _parse_inline_roots(root, md, data.ext)


def add(md: MarkdownThat) -> None:
    """Install the text scanner and the inline core rule."""
    from markthat.block import BlockParserRule

    md.inline.add_rule(TextScanner).before_all()
    md.add_rule(InlineParserRule).after(BlockParserRule).before_all()