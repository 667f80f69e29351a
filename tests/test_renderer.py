from dataclasses import dataclass, field

import pytest

from markthat.renderer import HTMLRenderer, Renderer, escape_html


@dataclass
class _Text:
    content: str

    def render(self, node, fmt):
        fmt.text(self.content)


@dataclass
class _Paragraph:
    def render(self, node, fmt):
        fmt.open("p", node.attrs)
        fmt.contents(node.children)
        fmt.close("p")
        fmt.cr()


@dataclass
class _FakeNode:
    node_value: object
    children: list = field(default_factory=list)
    attrs: list = field(default_factory=list)


def _rendered(action, xhtml=False):
    fmt = HTMLRenderer(xhtml)
    action(fmt)
    return fmt.output()


def test_escape_html_tags():
    assert escape_html("<div>") == "&lt;div&gt;"


def test_escape_html_round_trip_of_plain_text():
    assert escape_html("plain words 123") == "plain words 123"
    assert "&" not in escape_html("a<b>\"c\"").replace("&lt;", "").replace(
        "&gt;", ""
    ).replace("&quot;", "")


def test_open_with_attribute():
    assert _rendered(lambda f: f.open("a", [("href", "url")])) == '<a href="url">'


def test_self_close_html_and_xhtml():
    html = _rendered(lambda f: f.self_close("img", [("src", "url")]))
    xhtml = _rendered(lambda f: f.self_close("img", [("src", "url")]), xhtml=True)
    assert html.endswith('"url">')
    assert xhtml == html[:-1] + " />"


def test_close_writes_closing_tag():
    assert _rendered(lambda f: f.close("em")).startswith("</em")


def test_class_values_joined_with_space():
    out = _rendered(lambda f: f.open("div", [("class", "a"), ("id", "x"), ("class", "b")]))
    assert out.count("class=") == 1
    assert 'class="a b"' in out
    assert out.index("class=") < out.index("id=")


def test_style_values_joined_with_semicolon():
    out = _rendered(lambda f: f.open("td", [("style", "a:1"), ("style", "b:2")]))
    assert out.count("style=") == 1
    assert '"a:1;b:2"' in out


def test_other_repeated_attributes_kept_separately():
    out = _rendered(lambda f: f.open("x", [("data", "1"), ("data", "2")]))
    assert out.count("data=") == 2


def test_attribute_values_are_escaped():
    out = _rendered(lambda f: f.open("a", [("title", '"<>"')]))
    assert "<>" not in out[1:-1]
    assert escape_html('"<>"') in out


def test_cr_skips_empty_and_repeated_newlines():
    assert _rendered(lambda f: f.cr()) == ""

    def twice(f):
        f.text("x")
        f.cr()
        f.cr()

    assert _rendered(twice).count("\n") == 1


def test_text_escapes_and_text_raw_does_not():
    def action(f):
        f.text("<b>")
        f.text_raw("<b>")

    out = _rendered(action)
    assert out == escape_html("<b>") + "<b>"


def test_null_characters_replaced():
    assert _rendered(lambda f: f.text("\0")) == "\uFFFD"


def test_render_node_tree():
    tree = _FakeNode(_Paragraph(), children=[_FakeNode(_Text("hi")), _FakeNode(_Text(" & bye"))])
    fmt = HTMLRenderer()
    fmt.render(tree)
    out = fmt.output()
    assert out.startswith("<p>")
    assert out.endswith("</p>\n")
    assert escape_html("hi & bye") in out


def test_ext_storage_persists():
    fmt = HTMLRenderer()
    fmt.ext.insert(5)
    assert fmt.ext.get(int) == 5


def test_renderer_is_abstract():
    with pytest.raises(TypeError):
        Renderer()