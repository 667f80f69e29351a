from dataclasses import dataclass

import pytest

from markthat.block import BlockParser, BlockParserRule, add
from markthat.block_state import BlockState
from markthat.extset import ExtensionSet
from markthat.inline import InlineRoot
from markthat.main import MarkdownThat
from markthat.node import Node, NodeValue, Root, SourcePos, Text
from markthat.rules import BlockRule


@dataclass
class Heading(NodeValue):
    def render(self, node, fmt):
        fmt.open("h1")
        fmt.close("h1")


class HashLine(BlockRule):
    @classmethod
    def run(cls, state):
        if not state.get_line(state.line).startswith("#"):
            return None
        return Node(Heading()), 1


class SkipBang(BlockRule):
    @classmethod
    def run(cls, state):
        if not state.get_line(state.line).startswith("!"):
            return None
        return Node(), 1


def make_state(md, src):
    return BlockState(src, md, ExtensionSet(), Node(Root(src)))


def contents(node):
    return [child.cast(InlineRoot).content for child in node.children]


def test_without_rules_each_line_becomes_inline_root():
    md = MarkdownThat()
    src = "hello\nworld"
    node = md.block.parse(src, Node(Root(src)), md, ExtensionSet())
    assert contents(node) == ["hello\n", "world\n"]
    mappings = [child.cast(InlineRoot).mapping for child in node.children]
    assert mappings == [[(0, 0)], [(0, src.index("world"))]]


def test_empty_lines_are_skipped():
    md = MarkdownThat()
    src = "a\n\n\nb"
    node = md.block.parse(src, Node(Root(src)), md, ExtensionSet())
    assert contents(node) == ["a\n", "b\n"]


def test_leading_indent_is_trimmed():
    md = MarkdownThat()
    src = "   code"
    node = md.block.parse(src, Node(Root(src)), md, ExtensionSet())
    assert contents(node) == ["code\n"]
    assert node.children[0].cast(InlineRoot).mapping == [(0, src.index("c"))]


def test_custom_rule_gets_source_map():
    md = MarkdownThat()
    md.block.add_rule(HashLine)
    src = "  # title\ntext"
    state = make_state(md, src)
    md.block.tokenize(state)
    first, second = state.node.children
    assert first.is_a(Heading)
    assert first.srcmap == SourcePos(src.index("#"), src.index("\n"))
    assert second.cast(InlineRoot).content == "text\n"


def test_empty_node_consumes_lines_without_output():
    md = MarkdownThat()
    md.block.add_rule(SkipBang)
    src = "!skip\nkeep"
    node = md.block.parse(src, Node(Root(src)), md, ExtensionSet())
    assert contents(node) == ["keep\n"]


@pytest.mark.parametrize("src, tight", [("a\nb", True), ("a\n\nb", False)])
def test_tight_reflects_empty_lines(src, tight):
    md = MarkdownThat()
    state = make_state(md, src)
    md.block.tokenize(state)
    assert state.tight is tight


def test_max_nesting_skips_everything():
    md = MarkdownThat()
    state = make_state(md, "a\nb")
    state.level = md.max_nesting
    md.block.tokenize(state)
    assert state.node.children == []
    assert state.line == state.line_max


def test_negative_indent_ends_nested_block():
    md = MarkdownThat()
    state = make_state(md, "  a\nb")
    state.blk_indent = 2
    md.block.tokenize(state)
    assert contents(state.node) == ["a\n"]
    assert state.line == 1


def test_rule_registration():
    parser = BlockParser()
    assert not parser.has_rule(HashLine)
    parser.add_rule(HashLine)
    assert parser.has_rule(HashLine)
    assert list(parser.ruler) == [HashLine]
    parser.remove_rule(HashLine)
    assert not parser.has_rule(HashLine)


def test_rules_at_line_uses_the_chain():
    md = MarkdownThat()
    md.block.add_rule(HashLine)
    assert make_state(md, "# x").test_rules_at_line() is True
    assert make_state(md, "x").test_rules_at_line() is False


def test_block_parser_rule_fills_root():
    md = MarkdownThat()
    root = Node(Root("one\ntwo"))
    BlockParserRule.run(root, md)
    assert contents(root) == ["one\n", "two\n"]
    assert root.cast(Root).content == "one\ntwo"


def test_block_parser_rule_requires_root():
    md = MarkdownThat()
    with pytest.raises(TypeError):
        BlockParserRule.run(Node(Text("x")), md)


def test_add_installs_core_rule():
    md = MarkdownThat()
    assert md.has_rule(BlockParserRule)
    md.remove_rule(BlockParserRule)
    assert not md.has_rule(BlockParserRule)
    add(md)
    assert md.has_rule(BlockParserRule)
    assert md.parse("x").children[0].cast(Text).content == "x\n"