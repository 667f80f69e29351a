"""The parser object tying the rule chains together."""

from __future__ import annotations

from markthat.block import BlockParser
from markthat.block import add as _add_block_rules
from markthat.extset import ExtensionSet
from markthat.inline import InlineParser
from markthat.inline import add as _add_inline_rules
from markthat.linkfmt import LinkFormatter, MDLinkFormatter
from markthat.node import Node, Root, SourcePos
from markthat.rules import CoreRule, Ruler, RuleBuilder

_MAX_INDENT = 2**31 - 1


class MarkdownThat:
    """Markdown parser, created once and reused for many documents.

    ``max_nesting`` bounds the depth of parsed structures; deeper input is
    kept as plain text. ``max_indent`` is the indentation beyond which block
    syntax is not recognised; indented code blocks set it to 4.
    """

    def __init__(self) -> None:
        self.block = BlockParser()
        self.inline = InlineParser()
        self.link_formatter: LinkFormatter = MDLinkFormatter()
        self.ext = ExtensionSet()
        self.max_nesting = 100
        self.max_indent = _MAX_INDENT
        self._ruler: Ruler[type[CoreRule], type[CoreRule]] = Ruler()

        _add_block_rules(self)
        _add_inline_rules(self)

    def parse(self, src: str) -> Node:
        """Parse a markdown document and return the root of its syntax tree."""
        node = Node(Root(src))
        node.srcmap = SourcePos(0, len(src))

        for rule in self._ruler:
            rule.run(node, self)
            if not node.is_a(Root):
                raise TypeError(f"root node of the tree must stay Root, got {node.name()}")
        return node

    def add_rule(self, rule: type[CoreRule]) -> RuleBuilder:
        """Add a core rule and return a builder to position it."""
        return self._ruler.add(rule, rule)

    def has_rule(self, rule: type[CoreRule]) -> bool:
        """Return True if the core rule is installed."""
        return self._ruler.contains(rule)

    def remove_rule(self, rule: type[CoreRule]) -> None:
        """Remove the core rule."""
        self._ruler.remove(rule)