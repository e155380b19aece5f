import pytest

from sdc.htmldom import (
    Node,
    NodeType,
    first_text_node,
    parse_html,
    search_text,
    text_of_adjacent_div,
)


def _all_nodes(node):
    yield node
    for child in node.children:
        yield from _all_nodes(child)


def test_parse_table_structure():
    doc = parse_html(
        "<table data-test='overview-info'><tbody><tr><td>Market Cap</td>"
        "<td>1.5B</td></tr></tbody></table>"
    )
    table = doc.first_child
    assert table.data == "table"
    assert table.get_attr("data-test") == "overview-info"
    tbody = table.first_child
    assert tbody.data == "tbody"
    row = tbody.first_child
    assert [c.data for c in row.children] == ["td", "td"]
    assert first_text_node(row.last_child).data == "1.5B"


def test_links_are_consistent():
    doc = parse_html("<div><p>a</p> <ul><li>x</li><li>y</li></ul><br></div>")
    for node in _all_nodes(doc):
        children = list(node.children)
        for prev, nxt in zip(children, children[1:]):
            assert prev.next_sibling is nxt
            assert nxt.prev_sibling is prev
        for child in children:
            assert child.parent is node
        if children:
            assert node.first_child is children[0]
            assert node.last_child is children[-1]


def test_implied_end_tags():
    doc = parse_html("<ul><li>a<li>b</ul>")
    ul = doc.first_child
    assert [c.data for c in ul.children] == ["li", "li"]
    assert [first_text_node(c).data for c in ul.children] == ["a", "b"]


def test_implied_row_end():
    doc = parse_html("<table><tr><td>a<td>b<tr><td>c</table>")
    table = doc.first_child
    rows = list(table.children)
    assert [r.data for r in rows] == ["tr", "tr"]
    assert len(list(rows[0].children)) == 2


def test_void_element_has_no_children():
    doc = parse_html("<div><br><span>x</span></div>")
    div = doc.first_child
    assert [c.data for c in div.children] == ["br", "span"]
    assert div.first_child.first_child is None


def test_entities_are_decoded():
    doc = parse_html("<p>R&amp;D</p>")
    assert first_text_node(doc).data == "R&D"


def test_get_attr_missing_and_valueless():
    doc = parse_html("<input disabled name='q'>")
    node = doc.first_child
    assert node.get_attr("name") == "q"
    assert node.get_attr("disabled") == ""
    assert node.get_attr("value") is None


def test_append_child_links_and_rejects_reparenting():
    parent = Node(NodeType.ELEMENT, "div")
    first = Node(NodeType.TEXT, "one")
    second = Node(NodeType.TEXT, "two")
    parent.append_child(first)
    parent.append_child(second)
    assert list(parent.children) == [first, second]
    assert first.next_sibling is second
    assert second.prev_sibling is first
    other = Node(NodeType.ELEMENT, "span")
    with pytest.raises(ValueError):
        other.append_child(first)


def test_unmatched_end_tag_is_ignored():
    doc = parse_html("<div>a</span>b</div>")
    div = doc.first_child
    texts = [c.data for c in div.children]
    assert texts == ["ab"]


def test_comment_and_doctype_nodes():
    doc = parse_html("<!DOCTYPE html><!-- note --><p>x</p>")
    kinds = [c.type for c in doc.children]
    assert kinds == [NodeType.DOCTYPE, NodeType.COMMENT, NodeType.ELEMENT]
    assert doc.first_child.next_sibling.data == " note "
    assert first_text_node(doc).data == "x"


def test_first_text_node_skips_blank_text():
    doc = parse_html("<div>  <span> </span><b>val</b></div>")
    assert first_text_node(doc).data == "val"


def test_first_text_node_none_when_blank():
    doc = parse_html("<div> <span>\n</span></div>")
    assert first_text_node(doc) is None


def test_text_of_adjacent_div():
    doc = parse_html(
        "<div><div><span>Total Analysts</span> <span> 12 </span></div>"
        "<div><span>Consensus Rating</span> <span>Buy</span></div></div>"
    )
    assert text_of_adjacent_div(doc, "Total Analysts") == "12"
    assert text_of_adjacent_div(doc, "Consensus Rating") == "Buy"


def test_text_of_adjacent_div_missing():
    doc = parse_html("<div><span>Total Analysts</span></div>")
    assert text_of_adjacent_div(doc, "Total Analysts") is None
    assert text_of_adjacent_div(doc, "Upside") is None


def test_search_text_finds_node():
    message = "No quarterly income statement available for this stock."
    doc = parse_html(f"<main><div><p>{message}</p></div></main>")
    found = search_text(doc, "No quarterly.*available for this stock")
    assert found is not None
    assert found.data == message
    assert found.parent.data == "p"


def test_search_text_no_match():
    doc = parse_html("<p>Revenue</p>")
    assert search_text(doc, "No quarterly.*available for this stock") is None