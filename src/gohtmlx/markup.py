"""Markup tree for component ``html`` blocks.

Built on the standard library `html.parser`. Like a browser's parser, tag and
attribute names come out lower-cased, so component and prop lookups are
case-insensitive. Unlike a browser, no implicit elements are inserted and an
explicit ``<tag/>`` is always treated as empty.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from html.parser import HTMLParser

VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)

RAW_TEXT_ELEMENTS = frozenset({"script", "style"})


@dataclass(eq=False)
class Text:
    data: str


@dataclass(eq=False)
class Element:
    tag: str
    attrs: list[tuple[str, str]] = field(default_factory=list)
    children: list[Node] = field(default_factory=list)
    self_closing: bool = False

    def get(self, key: str) -> str | None:
        for k, v in self.attrs:
            if k == key:
                return v
        return None

    def text(self) -> str:
        """Concatenated raw text of the direct text children."""
        return "".join(c.data for c in self.children if isinstance(c, Text))


@dataclass(eq=False)
class Document:
    children: list[Node] = field(default_factory=list)


Node = Text | Element


def _dedupe_attrs(attrs: list[tuple[str, str | None]]) -> list[tuple[str, str]]:
    # First occurrence wins, as in HTML5 tokenization.
    seen: set[str] = set()
    out: list[tuple[str, str]] = []
    for key, value in attrs:
        if key in seen:
            continue
        seen.add(key)
        out.append((key, value if value is not None else ""))
    return out


class _TreeBuilder(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=False)
        self.document = Document()
        self._stack: list[Document | Element] = [self.document]

    def _append(self, node: Node) -> None:
        self._stack[-1].children.append(node)

    def _text(self, data: str) -> None:
        if not data:
            return
        siblings = self._stack[-1].children
        if siblings and isinstance(siblings[-1], Text):
            siblings[-1].data += data
        else:
            siblings.append(Text(data))

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        el = Element(tag=tag, attrs=_dedupe_attrs(attrs))
        self._append(el)
        if tag not in VOID_ELEMENTS:
            self._stack.append(el)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._append(Element(tag=tag, attrs=_dedupe_attrs(attrs), self_closing=True))

    def handle_endtag(self, tag: str) -> None:
        for i in range(len(self._stack) - 1, 0, -1):
            node = self._stack[i]
            if isinstance(node, Element) and node.tag == tag:
                del self._stack[i:]
                return
        # Stray end tag: nothing open to close.

    def handle_data(self, data: str) -> None:
        self._text(data)

    def handle_entityref(self, name: str) -> None:
        self._text(f"&{name};")

    def handle_charref(self, name: str) -> None:
        self._text(f"&#{name};")


def parse_markup(text: str) -> Document:
    """Parse an ``html`` block into a `Document` tree."""

    builder = _TreeBuilder()
    builder.feed(text.strip())
    builder.close()
    return builder.document


def iter_elements(node: Document | Element):
    """Yield every element below `node` in document order."""

    for child in node.children:
        if isinstance(child, Element):
            yield child
            yield from iter_elements(child)
