"""lxml helpers shared by the XML Bible adapters."""

from __future__ import annotations

from lxml import etree

from versicle.errors import MalformedInput
from versicle.ir.normalization import normalize_whitespace


def parse_xml(data: bytes, format_name: str) -> etree._Element:
    """Parse untrusted XML without entity expansion or network access."""

    parser = etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False, huge_tree=False)
    try:
        root = etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError as exc:
        raise MalformedInput(f"failed to parse {format_name} XML: {exc}") from exc
    if root is None:
        raise MalformedInput(f"failed to parse {format_name} XML: empty document")
    return root


def local_name(element: etree._Element) -> str:
    """Tag without namespace; comments and processing instructions yield ``""``."""

    if not isinstance(element.tag, str):
        return ""
    return etree.QName(element).localname


def child_elements(element: etree._Element, name: str) -> list[etree._Element]:
    return [child for child in element if local_name(child) == name]


def first_child_text(element: etree._Element, name: str) -> str:
    for child in child_elements(element, name):
        text = normalize_whitespace(" ".join(child.itertext()))
        if text:
            return text
    return ""


def inline_text(element: etree._Element, skip: frozenset[str] = frozenset()) -> str:
    """Concatenate the text of ``element``, leaving out subtrees named in ``skip``."""

    parts = [element.text or ""]
    for child in element:
        if local_name(child) and local_name(child) not in skip:
            parts.append(inline_text(child, skip))
        parts.append(child.tail or "")
    return "".join(parts)
