import pytest

from loandocs.core.xmldoc import (
    Node,
    XmlParseError,
    escape_xml,
    find_path,
    parse_document,
    render,
    value_of,
)


def test_escape_xml_handles_all_special_characters():
    assert escape_xml("""<a href="x">Tom & Jerry's</a>""") == (
        "&lt;a href=&quot;x&quot;&gt;Tom &amp; Jerry&apos;s&lt;/a&gt;"
    )
    assert escape_xml(None) == ""
    assert escape_xml(42) == "42"


def test_render_escapes_attributes_and_text():
    root = Node("Root")
    root.add("Item", "a < b", label='say "hi"')
    root.add("Empty")

    assert render(root) == (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        "<Root>\n"
        '  <Item label="say &quot;hi&quot;">a &lt; b</Item>\n'
        "  <Empty />\n"
        "</Root>"
    )


def test_render_without_declaration():
    assert render(Node("Solo", attrs={"k": "v"}), declaration=False) == '<Solo k="v" />'


def test_rendered_output_parses_back():
    root = Node("Root")
    root.add("Item", "x & y", code="1<2")

    parsed = parse_document(render(root))
    item = find_path(parsed, "Item")
    assert item.text == "x & y"
    assert item.get("code") == "1<2"


@pytest.mark.parametrize(
    "body",
    [
        "",
        "   ",
        b"",
        "<open>",
        '<!DOCTYPE x [<!ENTITY e "boom">]><x>&e;</x>',
    ],
)
def test_parse_document_rejects(body):
    with pytest.raises(XmlParseError):
        parse_document(body)


def test_lookup_ignores_namespaces():
    root = parse_document(
        '<s:Envelope xmlns:s="urn:s"><s:Body><r xmlns="urn:r"><Doc docid="1"><Name>W2</Name></Doc></r></s:Body></s:Envelope>'
    )

    doc = find_path(root, "Body", "r", "Doc")
    assert value_of(doc, "docid") == "1"
    assert value_of(doc, "Missing", "Name") == "W2"
    assert value_of(doc, "Missing") == ""
    assert value_of(None, "Name") == ""
