"""A small HTML document tree and searches over it."""

from __future__ import annotations

import enum
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from html.parser import HTMLParser


class NodeType(enum.Enum):
    DOCUMENT = "document"
    ELEMENT = "element"
    TEXT = "text"
    COMMENT = "comment"
    DOCTYPE = "doctype"


@dataclass(eq=False)
class Node:
    """A node of a parsed document; ``data`` is the tag name or the text."""

    type: NodeType
    data: str = ""
    attrs: list[tuple[str, str]] = field(default_factory=list)
    parent: Node | None = field(default=None, repr=False)
    first_child: Node | None = field(default=None, repr=False)
    last_child: Node | None = field(default=None, repr=False)
    prev_sibling: Node | None = field(default=None, repr=False)
    next_sibling: Node | None = field(default=None, repr=False)

    def append_child(self, child: Node) -> None:
        """Attach ``child`` as the last child of this node."""
        if child.parent is not None:
            raise ValueError("node already has a parent")
        child.parent = self
        child.prev_sibling = self.last_child
        if self.last_child is not None:
            self.last_child.next_sibling = child
        else:
            self.first_child = child
        self.last_child = child

    def get_attr(self, key: str) -> str | None:
        """Return the value of attribute ``key``, or None if it is absent."""
        return next((value for name, value in self.attrs if name == key), None)

    @property
    def children(self) -> Iterator[Node]:
        child = self.first_child
        while child is not None:
            yield child
            child = child.next_sibling


_VOID_ELEMENTS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input",
     "link", "meta", "param", "source", "track", "wbr"}
)
_CELLS = frozenset({"td", "th"})
_TABLE_SECTIONS = frozenset({"thead", "tbody", "tfoot", "tr", "td", "th"})
# Open elements that a new start tag closes implicitly.
_IMPLIED_END = {
    "td": _CELLS,
    "th": _CELLS,
    "tr": _CELLS | {"tr"},
    "thead": _TABLE_SECTIONS,
    "tbody": _TABLE_SECTIONS,
    "tfoot": _TABLE_SECTIONS,
    "li": frozenset({"li"}),
    "p": frozenset({"p"}),
    "option": frozenset({"option"}),
    "dt": frozenset({"dt", "dd"}),
    "dd": frozenset({"dt", "dd"}),
}


class _TreeBuilder(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.document = Node(NodeType.DOCUMENT)
        self._open = [self.document]

    @property
    def _current(self) -> Node:
        return self._open[-1]

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        closed = _IMPLIED_END.get(tag, frozenset())
        while len(self._open) > 1 and self._current.data in closed:
            self._open.pop()
        node = Node(NodeType.ELEMENT, tag, [(name, value or "") for name, value in attrs])
        self._current.append_child(node)
        if tag not in _VOID_ELEMENTS:
            self._open.append(node)

    def handle_endtag(self, tag: str) -> None:
        for depth in range(len(self._open) - 1, 0, -1):
            if self._open[depth].data == tag:
                del self._open[depth:]
                return

    def handle_data(self, data: str) -> None:
        last = self._current.last_child
        if last is not None and last.type is NodeType.TEXT:
            last.data += data
        else:
            self._current.append_child(Node(NodeType.TEXT, data))

    def handle_comment(self, data: str) -> None:
        self._current.append_child(Node(NodeType.COMMENT, data))

    def handle_decl(self, decl: str) -> None:
        name = re.sub(r"(?i)^doctype\s*", "", decl)
        self._current.append_child(Node(NodeType.DOCTYPE, name))


def parse_html(text: str) -> Node:
    """Parse ``text`` into a tree under a document node."""
    builder = _TreeBuilder()
    builder.feed(text)
    builder.close()
    return builder.document


def _walk(node: Node) -> Iterator[Node]:
    """Yield ``node`` and its descendants in document order."""
    pending = [node]
    while pending:
        current = pending.pop()
        yield current
        pending.extend(reversed(list(current.children)))


def first_text_node(node: Node) -> Node | None:
    """Return the first text node, in document order, that is not blank."""
    return next(
        (n for n in _walk(node) if n.type is NodeType.TEXT and n.data.strip()),
        None,
    )


def text_of_adjacent_div(node: Node, first_data: str) -> str | None:
    """Find a div labelled ``first_data`` and return the text shown beside it.

    The label's element is followed by a separator and then the element
    holding the value, whose first text is returned stripped.
    """
    for div in _walk(node):
        if div.type is not NodeType.ELEMENT or div.data != "div":
            continue
        label = first_text_node(div)
        if label is None or label.data.strip() != first_data:
            continue
        holder = label.parent
        if holder is None or holder.next_sibling is None:
            continue
        value_node = holder.next_sibling.next_sibling
        if value_node is None:
            continue
        value = first_text_node(value_node)
        if value is not None:
            return value.data.strip()
    return None


def search_text(node: Node, text: str) -> Node | None:
    """Return the first text node in which the pattern ``text`` occurs."""
    pattern = re.compile(text)
    return next(
        (n for n in _walk(node) if n.type is NodeType.TEXT and pattern.search(n.data)),
        None,
    )