import pytest

from markthat.emph_pair import EmphMarker, FragmentsJoin, add_with
from markthat.main import MarkdownThat
from markthat.node import Node, NodeValue, Root, SourcePos, Text


def _tag(name):
    class Tagged(NodeValue):
        def render(self, node, fmt):
            fmt.open(name, node.attrs)
            fmt.contents(node.children)
            fmt.close(name)

    Tagged.__name__ = name.capitalize()
    return Tagged


Sup = _tag("sup")
Em = _tag("em")
Strong = _tag("strong")


@pytest.fixture
def md():
    parser = MarkdownThat()
    add_with(parser, "*", 1, True, lambda: Node(Em()))
    add_with(parser, "*", 2, True, lambda: Node(Strong()))
    add_with(parser, "_", 1, False, lambda: Node(Em()))
    add_with(parser, "_", 2, False, lambda: Node(Strong()))
    return parser


def test_superscript_example():
    parser = MarkdownThat()
    add_with(parser, "^", 1, True, lambda: Node(Sup()))
    html = parser.parse("e^iπ^+1=0").render()
    assert html.strip() == "e<sup>iπ</sup>+1=0"


def test_title_example(md):
    assert md.parse("Hello **world**!").render() == "Hello <strong>world</strong>!\n"


def test_text_is_preserved(md):
    assert md.parse("Hello **world**!").collect_text() == "Hello world!\n"


def test_unmatched_marker_becomes_text():
    parser = MarkdownThat()
    add_with(parser, "^", 1, True, lambda: Node(Sup()))
    tree = parser.parse("a^b")
    assert tree.render() == "a^b\n"
    assert [child.cast(Text).content for child in tree.children] == ["a^b\n"]


def test_triple_markers_nest(md):
    assert md.parse("***foo***").render() == "<em><strong>foo</strong></em>\n"


def test_triple_markers_source_maps(md):
    tree = md.parse("***foo***")
    outer = tree.children[0]
    assert outer.srcmap.get_byte_offsets() == (0, 9)
    assert outer.children[0].srcmap.get_byte_offsets() == (1, 8)


def test_nested_source_maps(md):
    src = "aaa **bb _cc_ dd** eee"
    tree = md.parse(src)
    strong = tree.children[1]
    start, end = strong.srcmap.get_byte_offsets()
    assert src[start:end] == "**bb _cc_ dd**"
    em = strong.children[1]
    assert em.srcmap.get_byte_offsets() == (9, 13)


def test_star_splits_words(md):
    assert md.parse("foo*bar*baz").render() == "foo<em>bar</em>baz\n"


def test_underscore_does_not_split_words(md):
    assert md.parse("foo_bar_baz").render() == "foo_bar_baz\n"


def test_odd_match_rule(md):
    assert md.parse("*foo**bar*").render() == "<em>foo**bar</em>\n"


def test_only_longer_structure_defined():
    parser = MarkdownThat()
    add_with(parser, "=", 2, True, lambda: Node(Strong()))
    assert parser.parse("=a=").render() == "=a=\n"
    assert parser.parse("==a==").render() == "<strong>a</strong>\n"


def test_every_node_has_source_map(md):
    tree = md.parse("a *b **c** d* e")
    missing = [node.name() for node, _ in tree.walk() if node.srcmap is None]
    assert missing == []
    assert tree.srcmap.get_byte_offsets() == (0, 15)
    em = tree.children[1]
    assert em.srcmap.get_byte_offsets() == (2, 13)
    strong = em.children[1]
    assert strong.srcmap.get_byte_offsets() == (5, 10)


def test_fragments_join_merges_text_and_markers():
    root = Node(Root("a**b"))
    parts = [
        (Text("a"), SourcePos(0, 1)),
        (EmphMarker(marker="*", length=2, remaining=1, open=True, close=False), SourcePos(1, 3)),
        (Text("b"), SourcePos(3, 4)),
    ]
    for value, span in parts:
        child = Node(value)
        child.srcmap = span
        root.children.append(child)

    FragmentsJoin.run(root, MarkdownThat())

    assert len(root.children) == 1
    assert root.children[0].cast(Text).content == "a*b"
    assert root.children[0].srcmap == SourcePos(0, 4)


def test_fragments_join_drops_empty_text():
    root = Node(Root(""))
    root.children.append(Node(EmphMarker(marker="*", length=1, remaining=0, open=True, close=True)))
    FragmentsJoin.run(root, MarkdownThat())
    assert root.children == []


def test_registration_happens_once():
    parser = MarkdownThat()
    before = len(parser.inline.ruler)
    add_with(parser, "~", 1, True, lambda: Node(Em()))
    add_with(parser, "~", 2, True, lambda: Node(Strong()))
    assert len(parser.inline.ruler) == before + 1
    assert parser.has_rule(FragmentsJoin)
    assert parser.parse("~~x~~").render() == "<strong>x</strong>\n"


@pytest.mark.parametrize("length", [0, 4])
def test_invalid_length_raises(length):
    with pytest.raises(ValueError):
        add_with(MarkdownThat(), "*", length, True, lambda: Node(Em()))


def test_invalid_marker_raises():
    with pytest.raises(ValueError):
        add_with(MarkdownThat(), "**", 1, True, lambda: Node(Em()))