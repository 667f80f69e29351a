"""Block-level tokenizer and the core rule that runs it."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable

from markthat.block_state import BlockState
from markthat.extset import ExtensionSet
from markthat.inline import InlineRoot
from markthat.node import Node, NodeEmpty, Root
from markthat.rules import BlockRule, CoreRule, Ruler, RuleBuilder

if TYPE_CHECKING:
    from markthat.main import MarkdownThat


def _first_result(results: Iterable[Any]) -> Any:
    return next((result for result in results if result is not None), None)


class BlockParser:
    """Runs the block rule chain over the lines of a document."""

    def __init__(self) -> None:
        self.ruler: Ruler[type[BlockRule], type[BlockRule]] = Ruler()

    def tokenize(self, state: BlockState) -> None:
        """Turn the lines from ``state.line`` to ``state.line_max`` into nodes."""
        has_empty_lines = False

        while state.line < state.line_max:
            state.line = state.skip_empty_lines(state.line)
            if state.line >= state.line_max:
                break

            # nested calls (blockquotes, lists) end where the indent drops
            if state.line_indent(state.line) < 0:
                break

            # too deep: skip the rest, its content does not matter
            if state.level >= state.md.max_nesting:
                state.line = state.line_max
                break

            result = _first_result(rule.run(state) for rule in self.ruler)

            if result is not None:
                node, length = result
                state.line += length
                if not node.is_a(NodeEmpty):
                    node.srcmap = state.get_map(state.line - length, state.line - 1)
                    state.node.children.append(node)
            else:
                # no rule matched (no paragraph rule installed): keep the line as inline text
                offsets = state.line_offsets[state.line]
                content = state.get_line(state.line) + "\n"
                state.node.children.append(
                    Node(InlineRoot(content, [(0, offsets.first_nonspace)]))
                )
                state.line += 1

            # the latest empty line does not count
            state.tight = not has_empty_lines

            # a paragraph may swallow one empty line after it in nested lists
            if state.is_empty(state.line - 1):
                has_empty_lines = True

            if state.line < state.line_max and state.is_empty(state.line):
                has_empty_lines = True
                state.line += 1

    def parse(self, src: str, node: Node, md: MarkdownThat, root_ext: ExtensionSet) -> Node:
        """Parse ``src`` into block nodes appended to ``node``, and return it."""
        state = BlockState(src, md, root_ext, node)
        self.tokenize(state)
        return state.node

    def add_rule(self, rule: type[BlockRule]) -> RuleBuilder:
        """Add a rule to the chain and return a builder to position it."""
        return self.ruler.add(rule, rule)

    def has_rule(self, rule: type[BlockRule]) -> bool:
        """Return True if the rule is in the chain."""
        return self.ruler.contains(rule)

    def remove_rule(self, rule: type[BlockRule]) -> None:
        """Remove the rule from the chain."""
        self.ruler.remove(rule)


class BlockParserRule(CoreRule):
    """Core rule that runs the block tokenizer on the document source."""

    @classmethod
    def run(cls, root: Node, md: MarkdownThat) -> None:
        data = root.cast(Root)
        if data is None:
            raise TypeError(f"block parser must run on the root node, not {root.name()}")
        md.block.parse(data.content, root, md, data.ext)


def add(md: MarkdownThat) -> None:
    """Install the block parser as the first core rule."""
    md.add_rule(BlockParserRule).before_all()