"""JSON Bible adapter: ``{meta, books: [{chapters: [{verses}]}], verses}``."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from versicle.errors import MalformedInput
from versicle.formats.base import BaseFormatAdapter, DetectResult
from versicle.ir.models import DEFAULT_VERSION, Corpus, Document, LossClass, LostElement
from versicle.structure.emitter import (
    REGENERATED_WARNING,
    Emission,
    StructuralEmitter,
    chapter_groups,
    dropped_blocks_warning,
    ref_locator,
    unreferenced_block,
)
from versicle.structure.parser import parse_tree
from versicle.structure.tree import MarkupNode, NodeKind


def _load(data: bytes) -> Any:
    try:
        return json.loads(data.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedInput(f"failed to parse JSON: {exc}") from exc


def _int(raw: Any) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 0


def _text(raw: Any) -> str:
    return raw if isinstance(raw, str) else ""


def _objects(raw: Any) -> list[dict[str, Any]]:
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, dict)]


class JSONAdapter(BaseFormatAdapter):
    """Read and write the structured JSON Bible format."""

    name = "json"
    inputs = ("file",)
    output_suffix = ".json"
    raw_key = "_json_raw"

    def _build_emitter(self) -> StructuralEmitter:
        return StructuralEmitter(self.raw_key)

    def _recognize(self, path: Path, data: bytes) -> DetectResult:
        if path.suffix.lower() != ".json":
            return DetectResult(detected=False, reason="not a .json file")
        try:
            payload = _load(data)
        except MalformedInput:
            return DetectResult(detected=False, reason="not valid JSON")
        if not isinstance(payload, dict) or not self._looks_like_bible(payload):
            return DetectResult(detected=False, reason="not a JSON Bible document")
        return DetectResult(detected=True, format=self.name, reason="JSON Bible format detected")

    def _looks_like_bible(self, payload: dict[str, Any]) -> bool:
        meta = payload.get("meta")
        meta_id = meta.get("id") if isinstance(meta, dict) else None
        return bool(meta_id or _objects(payload.get("books")) or _objects(payload.get("verses")))

    def _artifact_id(self, data: bytes, path: Path) -> str | None:
        try:
            payload = _load(data)
        except MalformedInput:
            return None
        meta = payload.get("meta") if isinstance(payload, dict) else None
        if not isinstance(meta, dict):
            return None
        return _text(meta.get("id")) or None

    def _build_corpus(self, data: bytes, path: Path) -> Corpus:
        payload = _load(data)
        if not isinstance(payload, dict):
            raise MalformedInput("failed to parse JSON: top-level value must be an object", path)

        meta = payload.get("meta") if isinstance(payload.get("meta"), dict) else {}
        corpus = Corpus(
            id=_text(meta.get("id")) or path.stem,
            version=_text(meta.get("version")) or DEFAULT_VERSION,
            title=_text(meta.get("title")),
            language=_text(meta.get("language")),
            description=_text(meta.get("description")),
        )

        books = _objects(payload.get("books"))
        tree = MarkupNode(kind=NodeKind.GROUP)
        if books:
            for book in books:
                tree.append(self._convert_book(book, path.stem))
        else:
            for node in self._group_flat_verses(_objects(payload.get("verses"))):
                tree.append(node)
        return parse_tree(tree, data, corpus, fallback_id=path.stem)

    def _convert_book(self, book: dict[str, Any], fallback_id: str) -> MarkupNode:
        book_id = _text(book.get("id")) or fallback_id
        order = _int(book.get("order"))
        node = MarkupNode(
            kind=NodeKind.BOOK,
            identifier=book_id,
            title=_text(book.get("name")) or book_id,
            order=order or None,
        )
        for chapter in _objects(book.get("chapters")):
            number = _int(chapter.get("number"))
            chapter_node = node.append(MarkupNode(kind=NodeKind.CHAPTER, identifier=f"{book_id}.{number}"))
            for verse in _objects(chapter.get("verses")):
                verse_number = _int(verse.get("verse"))
                self._append_verse(chapter_node, f"{book_id}.{number}.{verse_number}", verse)
        return node

    def _group_flat_verses(self, verses: list[dict[str, Any]]) -> list[MarkupNode]:
        books: dict[str, MarkupNode] = {}
        for verse in verses:
            book_id = _text(verse.get("book"))
            node = books.get(book_id)
            if node is None:
                node = MarkupNode(kind=NodeKind.BOOK, identifier=book_id or None, title=book_id or None)
                books[book_id] = node
            locator = _text(verse.get("id")) or f"{book_id}.{_int(verse.get('chapter'))}.{_int(verse.get('verse'))}"
            self._append_verse(node, locator, verse)
        return list(books.values())

    def _append_verse(self, parent: MarkupNode, locator: str, verse: dict[str, Any]) -> None:
        text = _text(verse.get("text"))
        if text.strip():
            parent.append(MarkupNode(kind=NodeKind.VERSE, identifier=locator, text=text))

    def _emit(self, corpus: Corpus) -> Emission:
        replayed = self._emitter.replay(corpus)
        if replayed is not None:
            return replayed

        lost: list[LostElement] = []
        books = [self._render_book(document, lost) for document in corpus.documents]
        payload = {
            "meta": {
                "id": corpus.id,
                "title": corpus.title,
                "language": corpus.language,
                "description": corpus.description,
                "version": corpus.version,
            },
            "books": books,
            "verses": [verse for book in books for chapter in book["chapters"] for verse in chapter["verses"]],
        }
        warnings = [REGENERATED_WARNING]
        if lost:
            warnings.append(dropped_blocks_warning(lost))
        text = json.dumps(payload, ensure_ascii=False, indent=2) + "\n"
        return Emission(payload=text.encode("utf-8"), loss_class=LossClass.L1, warnings=warnings, lost_elements=lost)

    def _render_book(self, document: Document, lost: list[LostElement]) -> dict[str, Any]:
        chapters: list[dict[str, Any]] = []
        for group in chapter_groups(document):
            verses: list[dict[str, Any]] = []
            for block in group.blocks:
                refs = block.verse_refs()
                if not refs:
                    lost.append(unreferenced_block(document, block))
                for ref in refs:
                    verses.append(
                        {
                            "book": document.id,
                            "chapter": ref.chapter,
                            "verse": ref.verse,
                            "text": block.text,
                            "id": ref_locator(ref),
                        }
                    )
            if verses:
                chapters.append({"number": group.chapter, "verses": verses})
        return {"id": document.id, "name": document.title, "order": document.order, "chapters": chapters}
