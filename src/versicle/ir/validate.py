"""Structural checks applied to IR graphs before they are emitted."""

from __future__ import annotations

import logging

from versicle.ir.models import ContentBlock, Corpus, Document, Ref, SpanType
from versicle.ir.normalization import content_hash

logger = logging.getLogger(__name__)

_KNOWN_SPAN_TYPES = frozenset(item.value for item in SpanType)


def validate_ref(ref: Ref, where: str) -> list[str]:
    problems: list[str] = []
    if not ref.book:
        problems.append(f"{where}.ref: book is required")
    if ref.chapter < 0:
        problems.append(f"{where}.ref: chapter must be >= 0")
    if ref.verse < 0:
        problems.append(f"{where}.ref: verse must be >= 0")
    if ref.verse_end and ref.verse_end < ref.verse:
        problems.append(f"{where}.ref: verse_end must not precede verse")
    return problems


def validate_content_block(block: ContentBlock, where: str) -> list[str]:
    problems: list[str] = []
    if not block.id:
        problems.append(f"{where}: id is required")
    if block.sequence < 1:
        problems.append(f"{where}: sequence must be >= 1")
    if block.hash != content_hash(block.text):
        problems.append(f"{where}: hash does not match text")

    for anchor in block.anchors:
        anchor_where = f"{where}/{anchor.id or '?'}"
        if not anchor.id:
            problems.append(f"{anchor_where}: anchor id is required")
        if anchor.content_block_id != block.id:
            problems.append(f"{anchor_where}: content_block_id {anchor.content_block_id!r} does not match {block.id!r}")
        for span in anchor.spans:
            span_where = f"{anchor_where}/{span.id or '?'}"
            if not span.id:
                problems.append(f"{span_where}: span id is required")
            if span.start_anchor_id != anchor.id:
                problems.append(f"{span_where}: start_anchor_id does not match owning anchor")
            if span.type not in _KNOWN_SPAN_TYPES:
                logger.debug("Passing through unknown span type %r at %s", span.type, span_where)
            if span.ref is not None:
                problems.extend(validate_ref(span.ref, span_where))
    return problems


def validate_document(document: Document, where: str) -> list[str]:
    problems: list[str] = []
    if not document.id:
        problems.append(f"{where}: id is required")

    previous = 0
    for block in document.content_blocks:
        block_where = f"{where}/{block.id or '?'}"
        problems.extend(validate_content_block(block, block_where))
        if block.sequence <= previous:
            problems.append(f"{block_where}: sequence {block.sequence} is not increasing")
        previous = block.sequence
    return problems


def validate_corpus(corpus: Corpus) -> list[str]:
    """Return every structural problem found; an empty list means the corpus is usable."""

    problems: list[str] = []
    if not corpus.id:
        problems.append("corpus: id is required")

    seen: set[str] = set()
    for document in corpus.documents:
        where = f"corpus/{document.id or '?'}"
        if document.id and document.id in seen:
            problems.append(f"{where}: duplicate document id")
        seen.add(document.id)
        problems.extend(validate_document(document, where))
    return problems
