"""OSIS XML adapter: lossless extraction with raw-payload replay."""

from __future__ import annotations

from pathlib import Path

from lxml import etree

from versicle.errors import MalformedInput
from versicle.formats.base import BaseFormatAdapter, DetectResult
from versicle.formats.xml_support import child_elements, first_child_text, inline_text, local_name, parse_xml
from versicle.ir.models import Corpus
from versicle.ir.normalization import escape_markup
from versicle.structure.emitter import MarkupDialect, StructuralEmitter
from versicle.structure.parser import parse_tree
from versicle.structure.tree import MarkupNode, NodeKind

OSIS_NAMESPACE = "http://www.bibletechnologies.net/2003/OSIS/namespace"
_XML_LANG = "{http://www.w3.org/XML/1998/namespace}lang"

# Subtrees that never contribute running text.
_SKIPPED = frozenset({"note", "title", "header"})


def _osis_header(corpus: Corpus) -> str:
    lang = f' xml:lang="{escape_markup(corpus.language)}"' if corpus.language else ""
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<osis xmlns="{OSIS_NAMESPACE}">',
        f'  <osisText osisIDWork="{escape_markup(corpus.id)}"{lang}>',
        "    <header>",
        f'      <work osisWork="{escape_markup(corpus.id)}">',
    ]
    for tag, value in (
        ("title", corpus.title),
        ("description", corpus.description),
        ("publisher", corpus.publisher),
        ("rights", corpus.rights),
        ("language", corpus.language),
        ("refSystem", corpus.versification),
    ):
        if value:
            lines.append(f"        <{tag}>{escape_markup(value)}</{tag}>")
    lines.extend(["      </work>", "    </header>"])
    return "\n".join(lines)


OSIS_DIALECT = MarkupDialect(
    name="osis",
    header=_osis_header,
    footer="  </osisText>\n</osis>",
    book_open='<div type="book" osisID="{id}">',
    book_title="<title>{title}</title>",
    book_close="</div>",
    chapter_open='<chapter osisID="{osis_id}">',
    chapter_close="</chapter>",
    paragraph="<p>{markers}{text}</p>",
    verse_marker='<verse osisID="{osis_id}"/>',
    poetry_line="<lg>\n  <l>{markers}{text}</l>\n</lg>",
    base_depth=2,
)


class OSISAdapter(BaseFormatAdapter):
    """Read and write OSIS 2.x documents."""

    name = "osis"
    inputs = ("file",)
    output_suffix = ".osis"
    raw_key = "_osis_raw"

    def _build_emitter(self) -> StructuralEmitter:
        return StructuralEmitter(self.raw_key, OSIS_DIALECT)

    def _recognize(self, path: Path, data: bytes) -> DetectResult:
        head = self._head(data)
        if b"<osis" in head and b"osisText" in head:
            return DetectResult(detected=True, format=self.name, reason="OSIS XML detected")

        if path.suffix.lower() in {".osis", ".xml"} and self._work_id(data, path):
            return DetectResult(detected=True, format=self.name, reason="Valid OSIS XML structure")

        return DetectResult(detected=False, reason="not an OSIS XML file")

    def _artifact_id(self, data: bytes, path: Path) -> str | None:
        return self._work_id(data, path)

    def _work_id(self, data: bytes, path: Path) -> str | None:
        try:
            root = parse_xml(data, "OSIS")
            if local_name(root) != "osis":
                return None
            return self._osis_text(root, path).get("osisIDWork") or None
        except MalformedInput:
            return None

    def _build_corpus(self, data: bytes, path: Path) -> Corpus:
        root = parse_xml(data, "OSIS")
        if local_name(root) != "osis":
            raise MalformedInput("failed to parse OSIS XML: root element is not <osis>", path)
        osis_text = self._osis_text(root, path)

        corpus = Corpus(
            id=osis_text.get("osisIDWork") or path.stem,
            language=osis_text.get("lang") or osis_text.get(_XML_LANG) or "",
        )
        self._apply_header(osis_text, corpus)

        tree = MarkupNode(kind=NodeKind.GROUP)
        for child in osis_text:
            if local_name(child) == "div":
                tree.append(self._convert_container(child))
        return parse_tree(tree, data, corpus, fallback_id=path.stem)

    def _osis_text(self, root: etree._Element, path: Path) -> etree._Element:
        found = child_elements(root, "osisText")
        if not found:
            raise MalformedInput("failed to parse OSIS XML: missing <osisText>", path)
        return found[0]

    def _apply_header(self, osis_text: etree._Element, corpus: Corpus) -> None:
        works = [
            work
            for header in child_elements(osis_text, "header")
            for work in child_elements(header, "work")
        ]
        if not works:
            return
        # The work describing this text is the one named by osisIDWork; otherwise the first.
        work = next((candidate for candidate in works if candidate.get("osisWork") == corpus.id), works[0])
        corpus.title = first_child_text(work, "title")
        corpus.description = first_child_text(work, "description")
        corpus.publisher = first_child_text(work, "publisher")
        corpus.rights = first_child_text(work, "rights")
        corpus.versification = first_child_text(work, "refSystem") or corpus.versification
        corpus.language = first_child_text(work, "language") or corpus.language

    def _convert_container(self, element: etree._Element) -> MarkupNode:
        name = local_name(element)
        osis_id = element.get("osisID")
        if name == "div" and element.get("type") == "book":
            node = MarkupNode(kind=NodeKind.BOOK, identifier=osis_id, title=first_child_text(element, "title"))
        elif name == "div":
            node = MarkupNode(kind=NodeKind.GROUP, identifier=osis_id, title=first_child_text(element, "title"))
        elif name == "chapter":
            node = MarkupNode(kind=NodeKind.CHAPTER, identifier=osis_id)
        else:
            node = MarkupNode(kind=NodeKind.GROUP)

        self._append_text(node, element.text)
        for child in element:
            child_node = self._convert_child(child)
            if child_node is not None:
                node.append(child_node)
            self._append_text(node, child.tail)
        return node

    def _convert_child(self, element: etree._Element) -> MarkupNode | None:
        name = local_name(element)
        if not name or name in _SKIPPED:
            return None
        if name in {"div", "chapter", "lg"}:
            if name == "chapter" and len(element) == 0 and not (element.text or "").strip():
                return None
            return self._convert_container(element)
        if name == "verse":
            return self._convert_verse(element)
        if name in {"p", "l"}:
            return MarkupNode(
                kind=NodeKind.PARAGRAPH if name == "p" else NodeKind.LINE,
                text=inline_text(element, _SKIPPED),
                locators=self._verse_locators(element),
            )
        return MarkupNode(kind=NodeKind.TEXT, text=inline_text(element, _SKIPPED))

    def _convert_verse(self, element: etree._Element) -> MarkupNode | None:
        locator = element.get("osisID") or element.get("sID")
        if not locator:
            # Closing milestone (eID only).
            return None
        return MarkupNode(kind=NodeKind.VERSE, identifier=locator, text=inline_text(element, _SKIPPED))

    def _verse_locators(self, element: etree._Element) -> list[str]:
        locators: list[str] = []
        for verse in element.iter():
            if verse is element or local_name(verse) != "verse":
                continue
            locator = verse.get("osisID") or verse.get("sID")
            if locator:
                locators.append(locator)
        return locators

    def _append_text(self, node: MarkupNode, text: str | None) -> None:
        if text and text.strip():
            node.append(MarkupNode(kind=NodeKind.TEXT, text=text))
