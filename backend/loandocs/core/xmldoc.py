"""
Small XML toolkit shared by the SOAP client and the launch handshake.

Building: Node trees rendered by render(), which passes every attribute
value and text node through escape_xml().  Nothing is formatted into XML
by string interpolation.

Parsing: parse_document() wraps ElementTree, refuses DTDs, and the
lookup helpers match on local names so vendor namespaces/prefixes don't
matter.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Iterator
from xml.sax.saxutils import escape

XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>'

_ENTITIES = {'"': "&quot;", "'": "&apos;"}
_DOCTYPE_RE = re.compile(r"<!\s*(DOCTYPE|ENTITY)", re.IGNORECASE)


class XmlParseError(ValueError):
    """The payload is not a well-formed, DTD-free XML document."""
    pass


def escape_xml(value: Any) -> str:
    """Entity-escape & < > " ' in `value`.  None becomes ''."""
    if value is None:
        return ""
    return escape(str(value), _ENTITIES)


# ═══════════════════════════════════════════════════════════
#  Building
# ═══════════════════════════════════════════════════════════

@dataclass
class Node:
    tag: str
    attrs: dict[str, Any] = field(default_factory=dict)
    text: str | None = None
    children: list["Node"] = field(default_factory=list)

    def add(self, tag: str, text: Any = None, **attrs: Any) -> "Node":
        """Append and return a child element."""
        child = Node(tag, attrs=dict(attrs), text=None if text is None else str(text))
        self.children.append(child)
        return child


def _render_lines(node: Node, depth: int, lines: list[str]) -> None:
    pad = "  " * depth
    attrs = "".join(f' {name}="{escape_xml(value)}"' for name, value in node.attrs.items())

    if not node.children:
        if node.text is None:
            lines.append(f"{pad}<{node.tag}{attrs} />")
        else:
            lines.append(f"{pad}<{node.tag}{attrs}>{escape_xml(node.text)}</{node.tag}>")
        return

    opening = f"{pad}<{node.tag}{attrs}>"
    if node.text:
        opening += escape_xml(node.text)
    lines.append(opening)
    for child in node.children:
        _render_lines(child, depth + 1, lines)
    lines.append(f"{pad}</{node.tag}>")


def render(node: Node, *, declaration: bool = True) -> str:
    """Serialise a Node tree, optionally with the XML declaration."""
    lines: list[str] = [XML_DECLARATION] if declaration else []
    _render_lines(node, 0, lines)
    return "\n".join(lines)


# ═══════════════════════════════════════════════════════════
#  Parsing
# ═══════════════════════════════════════════════════════════

def parse_document(body: str | bytes) -> ET.Element:
    """Parse `body` into an Element.  Raises XmlParseError."""
    # bytes go to the parser untouched so a declared encoding is honoured
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body

    if not text or not text.strip():
        raise XmlParseError("Empty XML body")
    if _DOCTYPE_RE.search(text):
        raise XmlParseError("DTD declarations are not allowed")

    try:
        return ET.fromstring(body.strip())
    except ET.ParseError as exc:
        raise XmlParseError(f"Malformed XML: {exc}") from exc


def local_name(tag: str) -> str:
    """Strip a '{namespace}' prefix from an element or attribute name."""
    return tag.rsplit("}", 1)[-1]


def find_child(element: ET.Element | None, name: str) -> ET.Element | None:
    """First direct child whose local name is `name` (case-sensitive)."""
    if element is None:
        return None
    for child in element:
        if local_name(child.tag) == name:
            return child
    return None


def find_path(element: ET.Element | None, *names: str) -> ET.Element | None:
    """Follow a chain of local names from `element`."""
    for name in names:
        element = find_child(element, name)
        if element is None:
            return None
    return element


def iter_named(element: ET.Element, names: tuple[str, ...]) -> Iterator[ET.Element]:
    """Descendants (including `element`) whose local name is in `names`."""
    for node in element.iter():
        if local_name(node.tag) in names:
            yield node


def value_of(element: ET.Element | None, *names: str) -> str:
    """
    First non-empty value among `names`, looking at attributes first and
    then at child element text.  Returns '' when none is present.
    """
    if element is None:
        return ""
    attrs = {local_name(k): v for k, v in element.attrib.items()}
    for name in names:
        if attrs.get(name):
            return attrs[name]
        child = find_child(element, name)
        if child is not None and child.text and child.text.strip():
            return child.text.strip()
    return ""


def text_of(element: ET.Element | None) -> str:
    """Stripped text content of `element`, '' when absent."""
    if element is None or element.text is None:
        return ""
    return element.text.strip()
