from dataclasses import dataclass, field

import pytest

from markthat.block import BlockParserRule
from markthat.inline import InlineParserRule, InlineRoot
from markthat.main import MarkdownThat
from markthat.node import Node, NodeValue, SourcePos, Text
from markthat.rules import BlockRule, CoreRule, InlineRule


@dataclass
class NodeErrors:
    items: list = field(default_factory=list)


class MyInlineRule(InlineRule):
    MARKER = "@"

    @classmethod
    def run(cls, state):
        state.node.ext.get_or_insert_default(NodeErrors).items.append("inline")
        return None


class MyBlockRule(BlockRule):
    @classmethod
    def run(cls, state):
        state.node.ext.get_or_insert_default(NodeErrors).items.append("block")
        return None


class MyCoreRule(CoreRule):
    @classmethod
    def run(cls, root, md):
        root.ext.get_or_insert_default(NodeErrors).items.append("core")


class Other(NodeValue):
    pass


class ReplaceRoot(CoreRule):
    @classmethod
    def run(cls, root, md):
        root.replace(Other())


class CountTexts(CoreRule):
    @classmethod
    def run(cls, root, md):
        root.ext.insert(NodeErrors([node.node_type for node, _ in root.walk()]))


def test_no_plugins():
    md = MarkdownThat()
    assert md.parse("hello\nworld").render() == "hello\nworld\n"


def test_cr_only_newlines():
    assert MarkdownThat().parse("foo\rbar").render() == "foo\nbar\n"


def test_cr_lf_newlines():
    assert MarkdownThat().parse("foo\r\nbar").render() == "foo\nbar\n"


def test_null_char_replacement():
    assert MarkdownThat().parse("\0").render() == "\uFFFD\n"


def test_defaults():
    md = MarkdownThat()
    assert md.max_nesting == 100
    assert md.max_indent == 2**31 - 1
    assert md.has_rule(BlockParserRule)
    assert md.has_rule(InlineParserRule)
    assert md.link_formatter.validate_link("javascript:alert(1)") is False
    assert len(md.ext) == 0


def test_root_covers_whole_source():
    src = "a\nb\n"
    root = MarkdownThat().parse(src)
    assert root.srcmap == SourcePos(0, len(src))
    assert all(node.srcmap is not None for node, _ in root.walk())


def test_without_inline_parser_roots_remain():
    md = MarkdownThat()
    md.remove_rule(InlineParserRule)
    assert not md.has_rule(InlineParserRule)
    root = md.parse("x")
    assert root.children[0].cast(InlineRoot).content == "x\n"
    with pytest.raises(NotImplementedError):
        root.render()


def test_core_rule_must_keep_root():
    md = MarkdownThat()
    md.add_rule(ReplaceRoot)
    with pytest.raises(TypeError):
        md.parse("x")


def test_after_all_rule_sees_inline_nodes():
    md = MarkdownThat()
    md.add_rule(CountTexts).after_all()
    root = md.parse("a\nb")
    types = root.ext.get(NodeErrors).items
    assert types.count(Text) == 2
    assert InlineRoot not in types


def test_xrender_matches_render_for_text():
    root = MarkdownThat().parse("a < b")
    assert root.xrender() == root.render() == "a &lt; b\n"


def test_parser_is_reusable():
    md = MarkdownThat()
    first = md.parse("one").render()
    second = md.parse("two").render()
    assert md.parse("one").render() == first
    assert first != second
    assert isinstance(md.parse(""), Node)
    assert md.parse("").render() == ""