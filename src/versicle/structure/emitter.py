"""Regenerate native markup from IR documents, or replay a preserved raw payload.

A :class:`MarkupDialect` is a set of one-line templates describing how a
target syntax spells books, chapter groupings, paragraphs, poetry lines and
verse markers. Every value substituted into a template is escaped with
:func:`escape_markup` first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable

from versicle.ir.codec import raw_payload
from versicle.ir.models import ContentBlock, Corpus, Document, LossClass, LostElement, Ref
from versicle.ir.normalization import escape_markup
from versicle.ir.refs import book_number, format_ref

logger = logging.getLogger(__name__)

REGENERATED_WARNING = "Original markup not preserved; structure and locators regenerated from IR"
LINEARIZED_WARNING = "All markup and formatting lost in plain text output"


@dataclass(frozen=True, slots=True)
class MarkupDialect:
    """Templates for one target markup syntax.

    Book templates receive ``id``, ``title``, ``order`` and the canonical book
    ``number`` (falling back to the order); chapter templates
    receive ``book``, ``chapter`` and ``osis_id``; block templates receive
    ``text``, ``markers``, ``book``, ``chapter``, ``verse`` and ``osis_id`` of
    the block's first verse reference. A template may span several lines.
    """

    name: str
    header: Callable[[Corpus], str]
    footer: str
    book_open: str
    book_close: str
    chapter_open: str
    chapter_close: str
    paragraph: str
    verse_marker: str
    book_title: str | None = None
    poetry_line: str | None = None
    ungrouped_paragraph: str | None = None
    base_depth: int = 0
    indent: str = "  "


@dataclass(frozen=True, slots=True)
class Emission:
    """Bytes produced for one corpus and the loss class they carry."""

    payload: bytes
    loss_class: LossClass
    warnings: list[str] = field(default_factory=list)
    lost_elements: list[LostElement] = field(default_factory=list)
    replayed: bool = False


@dataclass(slots=True)
class ChapterGroup:
    """Consecutive blocks sharing a chapter; chapter 0 means no grouping container."""

    chapter: int
    blocks: list[ContentBlock] = field(default_factory=list)


def ref_locator(ref: Ref) -> str:
    return ref.osis_id or format_ref(ref)


def unreferenced_block(document: Document, block: ContentBlock) -> LostElement:
    return LostElement(path=f"{document.id}/{block.id}", element_type="content_block", reason="no verse reference")


def dropped_blocks_warning(lost: list[LostElement]) -> str:
    return f"{len(lost)} content blocks without verse references were dropped"


def chapter_groups(document: Document) -> list[ChapterGroup]:
    """Split a document's blocks at every change of verse chapter.

    Blocks without a verse reference stay in whichever group is open and never
    open or close one themselves.
    """

    groups: list[ChapterGroup] = []
    current: ChapterGroup | None = None
    for block in document.content_blocks:
        refs = block.verse_refs()
        if refs and (current is None or refs[0].chapter != current.chapter):
            current = ChapterGroup(chapter=refs[0].chapter)
            groups.append(current)
        elif current is None:
            current = ChapterGroup(chapter=0)
            groups.append(current)
        current.blocks.append(block)
    return groups


class StructuralEmitter:
    """Emit a corpus for one target format.

    Without a dialect the emitter linearizes verses into ``Book C:V text``
    lines, which is the only shape plain text can carry.
    """

    def __init__(self, raw_key: str, dialect: MarkupDialect | None = None) -> None:
        self._raw_key = raw_key
        self._dialect = dialect

    @property
    def raw_key(self) -> str:
        return self._raw_key

    def replay(self, corpus: Corpus) -> Emission | None:
        """Return the preserved original bytes as an L0 emission, if present."""

        payload = raw_payload(corpus.attributes, self._raw_key)
        if payload is None:
            return None
        logger.debug("Replaying preserved %s payload for corpus %s", self._raw_key, corpus.id)
        return Emission(payload=payload, loss_class=LossClass.L0, replayed=True)

    def emit(self, corpus: Corpus) -> Emission:
        replayed = self.replay(corpus)
        if replayed is not None:
            return replayed
        if self._dialect is None:
            return self.linearize(corpus)
        return Emission(
            payload=self.render(corpus).encode("utf-8"),
            loss_class=LossClass.L1,
            warnings=[REGENERATED_WARNING],
        )

    def render(self, corpus: Corpus) -> str:
        if self._dialect is None:
            raise ValueError("render() requires a markup dialect")

        lines: list[str] = [self._dialect.header(corpus)]
        for document in corpus.documents:
            self._render_document(document, lines)
        lines.append(self._dialect.footer)
        return "\n".join(line for line in lines if line) + "\n"

    def linearize(self, corpus: Corpus) -> Emission:
        lines: list[str] = []
        lost: list[LostElement] = []
        for document in corpus.documents:
            for block in document.content_blocks:
                refs = block.verse_refs()
                if not refs:
                    lost.append(unreferenced_block(document, block))
                    continue
                for ref in refs:
                    locator = f"{ref.book} {ref.chapter}:{ref.verse}"
                    if ref.verse_end:
                        locator += f"-{ref.verse_end}"
                    lines.append(f"{locator} {block.text}")

        warnings = [LINEARIZED_WARNING]
        if lost:
            warnings.append(dropped_blocks_warning(lost))
        payload = "".join(f"{line}\n" for line in lines).encode("utf-8")
        return Emission(payload=payload, loss_class=LossClass.L3, warnings=warnings, lost_elements=lost)

    def _write(self, lines: list[str], depth: int, template: str, values: dict[str, object]) -> None:
        assert self._dialect is not None
        prefix = self._dialect.indent * depth
        for line in template.format(**values).split("\n"):
            lines.append(prefix + line)

    def _render_document(self, document: Document, lines: list[str]) -> None:
        dialect = self._dialect
        assert dialect is not None
        depth = dialect.base_depth
        book_values = {
            "id": escape_markup(document.id),
            "title": escape_markup(document.title or document.id),
            "order": document.order,
            "number": book_number(document.id) or document.order,
        }

        self._write(lines, depth, dialect.book_open, book_values)
        if dialect.book_title:
            self._write(lines, depth + 1, dialect.book_title, book_values)

        for group in chapter_groups(document):
            block_depth = depth + 1
            if group.chapter != 0:
                chapter_values = {
                    "book": book_values["id"],
                    "chapter": group.chapter,
                    "osis_id": escape_markup(f"{document.id}.{group.chapter}"),
                }
                self._write(lines, depth + 1, dialect.chapter_open, chapter_values)
                block_depth = depth + 2

            for block in group.blocks:
                self._render_block(block, lines, block_depth)

            if group.chapter != 0:
                self._write(lines, depth + 1, dialect.chapter_close, {})

        self._write(lines, depth, dialect.book_close, book_values)

    def _render_block(self, block: ContentBlock, lines: list[str], depth: int) -> None:
        dialect = self._dialect
        assert dialect is not None
        refs = block.verse_refs()

        if block.attributes.get("type") == "poetry" and dialect.poetry_line:
            template = dialect.poetry_line
        elif refs or dialect.ungrouped_paragraph is None:
            template = dialect.paragraph
        else:
            template = dialect.ungrouped_paragraph

        first = refs[0] if refs else None
        values: dict[str, object] = {
            "text": escape_markup(block.text),
            "markers": "".join(self._marker(ref) for ref in refs),
            "book": escape_markup(first.book) if first else "",
            "chapter": first.chapter if first else "",
            "verse": first.verse if first else "",
            "osis_id": escape_markup(ref_locator(first)) if first else "",
        }
        self._write(lines, depth, template, values)

    def _marker(self, ref: Ref) -> str:
        assert self._dialect is not None
        return self._dialect.verse_marker.format(
            book=escape_markup(ref.book),
            chapter=ref.chapter,
            verse=ref.verse,
            osis_id=escape_markup(ref_locator(ref)),
        )
