# markthat

This is the core of an extensible Markdown parser. Parsing runs through three
rule chains:

- **core** rules run once for each document;
- **block** rules run once for each line;
- **inline** rules run at each position in the text.

The parser builds a tree of `Node` objects. You can render that tree to HTML
or to XHTML.

## Installation

```
pip install markthat
```

The package has no runtime dependencies. To get the test tools, install the
`test` extra: `pip install markthat[test]`.

## Usage

```python
from markthat.main import MarkdownThat

md = MarkdownThat()
ast = md.parse("hello\nworld")
print(ast.render())   # "hello\nworld\n"
```

With no rules added, the parser does very little. Each line is kept as plain
text, and the rendered output escapes `&`, `<`, `>` and `"`. `Node.xrender()`
renders the tree too, but it closes void tags with ` />`. In both renderings,
any NUL character becomes U+FFFD.

### Generic inline structures

The helper modules build inline syntax from a marker character and a function
that returns a node.

- `markthat.emph_pair.add_with(md, marker, length, can_split_word, factory)`
  adds emphasis-like pairs such as `*em*`, `**strong**` or `^sup^`. The
  `length` can be 1, 2 or 3. If `can_split_word` is true, the structure may
  appear inside a word. Markers that find no match are turned back into text
  by the `FragmentsJoin` core rule.
- `markthat.code_pair.add_with(md, marker, factory)` adds structures that
  work like code spans. They are delimited by a run of the marker of any
  length, and `factory` receives that length.
- `markthat.full_link.add(md, enable_nested, factory)` and
  `add_prefix(md, prefix, enable_nested, factory)` add structures shaped like
  `[label](<href> "title")`. With `add_prefix`, a prefix character comes
  first; for example, `!` gives `![alt](src)`. The factory receives `href` and
  `title`, and either of them may be `None`. The parsed label becomes the
  children of the node.

```python
from markthat.main import MarkdownThat
from markthat.node import Node, NodeValue
from markthat import emph_pair, code_pair


class Superscript(NodeValue):
    def render(self, node, fmt):
        fmt.open("sup", node.attrs)
        fmt.contents(node.children)
        fmt.close("sup")


class Ferris(NodeValue):
    def render(self, node, fmt):
        fmt.text("🦀")
        fmt.contents(node.children)
        fmt.text("🦀")


md = MarkdownThat()
emph_pair.add_with(md, "^", 1, True, lambda: Node(Superscript()))
code_pair.add_with(md, "%", lambda length: Node(Ferris()))

print(md.parse("e^iπ^+1=0 and %crab%").render())
```

`markthat.full_link` also provides the following:

- `parse_link_destination(text, start, end)` and
  `parse_link_title(text, start, end)` parse parts of a link. Each returns a
  `ParseLinkFragmentResult` with the fields `pos`, `lines` and `text`, or
  `None`.
- `ReferenceMap` is a table of reference definitions. Labels are matched
  without regard to case or whitespace. If a `ReferenceMap` is stored in the
  document's root extension set, the link structures resolve `[text][label]`,
  `[label][]` and `[label]` against it.

### Walking the tree

```python
for node, depth in ast.walk():          # preorder
    print("  " * depth + node.name())

for node, depth in ast.walk_post():     # postorder
    ...

text = ast.collect_text()
```

Use `Node.cast(cls)` to get the node's value when it has exactly that type.
Use `Node.is_a(cls)` to test the type, and `Node.replace(value)` to swap the
value in place.

### Writing rules

To write a rule, subclass `CoreRule`, `BlockRule` or `InlineRule` from
`markthat.rules`. Then register the class:

- `md.add_rule(...)` for a core rule;
- `md.block.add_rule(...)` for a block rule;
- `md.inline.add_rule(...)` for an inline rule.

Each call returns a `RuleBuilder`. Its `before`, `after`, `before_all`,
`after_all`, `alias` and `require` methods set where the rule runs in the
chain.

If two rules have cyclic constraints, or a required rule is missing, a
`ValueError` is raised the next time the chain runs. An inline rule's `MARKER`
is the character it starts at, and the plain-text scanner stops at that
character.

Plugins can store their own data in an `ExtensionSet`, which holds one value
per type. There is one on the parser (`md.ext`), one on each node
(`node.ext`), and one on each parse state (`root_ext`, `inline_ext`).

### Link safety

By default, `MDLinkFormatter` rejects `javascript:`, `vbscript:`, `file:` and
`data:` URLs. The exception is `data:` URLs for gif, png, jpeg and webp
images, which are allowed.

Link destinations are also percent-encoded. Percent escapes that are already
in the URL are left as they are.

To change this, assign your own `LinkFormatter` to `md.link_formatter`.

## What this package does not do

The package contains no Markdown syntax of its own. It has no rules for
paragraphs, headings, lists, block quotes, code blocks, emphasis, links,
images, HTML or entities, and it has no way to read reference definitions.
All of these must be added as rules, for example with the generic helpers
above.

There is no command-line program.