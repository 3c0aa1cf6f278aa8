"""Zefania XML adapter (XMLBIBLE / BIBLEBOOK / CHAPTER / VERS)."""

from __future__ import annotations

from pathlib import Path

from lxml import etree

from versicle.errors import MalformedInput
from versicle.formats.base import BaseFormatAdapter, DetectResult
from versicle.formats.xml_support import inline_text, local_name, parse_xml
from versicle.ir.models import Corpus
from versicle.ir.normalization import escape_markup, normalize_whitespace, sanitize_id
from versicle.ir.refs import book_code
from versicle.structure.emitter import MarkupDialect, StructuralEmitter
from versicle.structure.parser import parse_tree
from versicle.structure.tree import MarkupNode, NodeKind

_SKIPPED = frozenset({"NOTE", "note"})


def _number(raw: str | None) -> int:
    try:
        return int(raw or "")
    except ValueError:
        return 0


def _attribute(element: etree._Element, name: str) -> str | None:
    """Case-insensitive attribute lookup; Zefania files vary in casing."""

    for key, value in element.attrib.items():
        if etree.QName(key).localname.lower() == name:
            return value
    return None


def _zefania_header(corpus: Corpus) -> str:
    lang = f' language="{escape_markup(corpus.language)}"' if corpus.language else ""
    return "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            f'<XMLBIBLE biblename="{escape_markup(corpus.title or corpus.id)}"{lang}>',
        ]
    )


ZEFANIA_DIALECT = MarkupDialect(
    name="zefania",
    header=_zefania_header,
    footer="</XMLBIBLE>",
    book_open='<BIBLEBOOK bnumber="{number}" bname="{title}">',
    book_close="</BIBLEBOOK>",
    chapter_open='<CHAPTER cnumber="{chapter}">',
    chapter_close="</CHAPTER>",
    paragraph='<VERS vnumber="{verse}">{text}</VERS>',
    verse_marker="",
    ungrouped_paragraph="<CAPTION>{text}</CAPTION>",
    base_depth=1,
)


class ZefaniaAdapter(BaseFormatAdapter):
    """Read and write Zefania XML Bibles."""

    name = "zefania"
    inputs = ("file",)
    output_suffix = ".xml"
    raw_key = "_zefania_raw"

    def _build_emitter(self) -> StructuralEmitter:
        return StructuralEmitter(self.raw_key, ZEFANIA_DIALECT)

    def _recognize(self, path: Path, data: bytes) -> DetectResult:
        head = self._head(data)
        if b"<XMLBIBLE" in head or b"<xmlbible" in head:
            return DetectResult(detected=True, format=self.name, reason="Zefania XML detected")
        return DetectResult(detected=False, reason="not a Zefania XML file (no <XMLBIBLE> element)")

    def _artifact_id(self, data: bytes, path: Path) -> str | None:
        try:
            root = parse_xml(data, "Zefania")
        except MalformedInput:
            return None
        return sanitize_id(_attribute(root, "biblename") or "") or None

    def _build_corpus(self, data: bytes, path: Path) -> Corpus:
        root = parse_xml(data, "Zefania")
        if local_name(root).upper() != "XMLBIBLE":
            raise MalformedInput("failed to parse Zefania XML: root element is not <XMLBIBLE>", path)

        title = normalize_whitespace(_attribute(root, "biblename") or "")
        corpus = Corpus(
            id=sanitize_id(title) or path.stem,
            title=title,
            language=_attribute(root, "language") or "",
        )

        tree = MarkupNode(kind=NodeKind.GROUP)
        for element in root.iter():
            if local_name(element).upper() == "BIBLEBOOK":
                tree.append(self._convert_book(element, path.stem))
        return parse_tree(tree, data, corpus, fallback_id=path.stem)

    def _convert_book(self, element: etree._Element, fallback_id: str) -> MarkupNode:
        number = _number(_attribute(element, "bnumber"))
        name = normalize_whitespace(_attribute(element, "bname") or "")
        code = book_code(number) or sanitize_id(name) or fallback_id

        book = MarkupNode(
            kind=NodeKind.BOOK,
            identifier=code,
            title=name or code,
            order=number or None,
            attributes={"bnumber": str(number)},
        )
        for child in element:
            tag = local_name(child).upper()
            if tag == "CHAPTER":
                book.append(self._convert_chapter(child, code))
            elif tag == "CAPTION":
                book.append(MarkupNode(kind=NodeKind.PARAGRAPH, text=inline_text(child, _SKIPPED)))
        return book

    def _convert_chapter(self, element: etree._Element, book_id: str) -> MarkupNode:
        chapter = _number(_attribute(element, "cnumber"))
        node = MarkupNode(kind=NodeKind.CHAPTER, identifier=f"{book_id}.{chapter}")
        for child in element:
            tag = local_name(child).upper()
            if tag == "VERS":
                text = inline_text(child, _SKIPPED)
                if not text.strip():
                    continue
                verse = _number(_attribute(child, "vnumber"))
                node.append(MarkupNode(kind=NodeKind.VERSE, identifier=f"{book_id}.{chapter}.{verse}", text=text))
            elif tag == "CAPTION":
                node.append(MarkupNode(kind=NodeKind.PARAGRAPH, text=inline_text(child, _SKIPPED)))
        return node
