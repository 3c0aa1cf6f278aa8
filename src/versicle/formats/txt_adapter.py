"""Plain-text adapter for ``Book C:V text`` verse-per-line files."""

from __future__ import annotations

import logging
from pathlib import Path
import re

from charset_normalizer import from_bytes

from versicle.errors import MalformedInput
from versicle.formats.base import BaseFormatAdapter, DetectResult
from versicle.ir.models import Corpus, LossClass
from versicle.structure.emitter import StructuralEmitter
from versicle.structure.parser import parse_tree
from versicle.structure.tree import MarkupNode, NodeKind

logger = logging.getLogger(__name__)

_VERSE_LINE_RE = re.compile(r"^(?:(\w+)\s+)?(\d+):(\d+)(?:-(\d+))?\s+(.+)$")
_TXT_SUFFIXES = {".txt", ".text"}


class TXTAdapter(BaseFormatAdapter):
    """Linear verse text with robust charset handling; all markup is lost."""

    name = "txt"
    inputs = ("file",)
    output_suffix = ".txt"
    raw_key = "_txt_raw"
    extract_loss = LossClass.L3
    emit_loss = LossClass.L3
    extract_warnings = ("Plain text format loses all markup information",)

    def _build_emitter(self) -> StructuralEmitter:
        return StructuralEmitter(self.raw_key)

    def _recognize(self, path: Path, data: bytes) -> DetectResult:
        if path.suffix.lower() not in _TXT_SUFFIXES:
            return DetectResult(detected=False, reason="not a .txt file")
        return DetectResult(detected=True, format=self.name, reason="plain text file")

    def _build_corpus(self, data: bytes, path: Path) -> Corpus:
        text = data.decode(self._detect_encoding(data))
        corpus = Corpus(id=path.stem, title=path.stem)

        books: dict[str, MarkupNode] = {}
        current_book = path.stem
        skipped = 0
        for raw_line in text.splitlines():
            line = raw_line.strip()
            if not line:
                continue
            match = _VERSE_LINE_RE.match(line)
            if match is None:
                skipped += 1
                continue

            book_id, chapter, verse, verse_end, verse_text = match.groups()
            current_book = book_id or current_book
            node = books.get(current_book)
            if node is None:
                node = MarkupNode(kind=NodeKind.BOOK, identifier=current_book)
                books[current_book] = node

            locator = f"{current_book}.{int(chapter)}.{int(verse)}"
            if verse_end:
                locator += f"-{int(verse_end)}"
            node.append(MarkupNode(kind=NodeKind.VERSE, identifier=locator, text=verse_text))

        if skipped:
            logger.debug("Skipped %d lines without a verse reference in %s", skipped, path)

        tree = MarkupNode(kind=NodeKind.GROUP, children=list(books.values()))
        return parse_tree(tree, data, corpus, fallback_id=path.stem)

    def _detect_encoding(self, raw: bytes) -> str:
        best = from_bytes(raw).best()
        if best and best.encoding:
            return best.encoding

        for fallback in ("utf-8", "cp1251"):
            try:
                raw.decode(fallback)
                return fallback
            except UnicodeDecodeError:
                continue
        raise MalformedInput("failed to decode text: could not detect encoding")
