"""Flatten a nested markup tree into ordered, hashed IR content blocks.

Traversal is depth-first pre-order. Every recursive call receives the
enclosing document scope explicitly and shares only the per-parse context, so
two parses never observe each other's counters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging

from versicle.ir.models import Anchor, ContentBlock, Corpus, Document, Span, SpanType
from versicle.ir.normalization import normalize_whitespace, sha256_hex
from versicle.ir.refs import is_book_code, parse_ref
from versicle.structure.tree import LEAF_KINDS, MarkupNode, NodeKind

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _DocumentScope:
    """Per-document block counter and verse locators waiting for their leaf."""

    document: Document
    sequence: int = 0
    pending: list[str] = field(default_factory=list)


@dataclass(slots=True)
class _ParseContext:
    fallback_id: str
    documents: list[Document] = field(default_factory=list)
    used_ids: set[str] = field(default_factory=set)
    order: int = 0
    orphaned_leaves: int = 0


def starts_document(node: MarkupNode) -> bool:
    """True for explicit book containers and untyped groups named by a book code."""

    if node.kind == NodeKind.BOOK:
        return True
    return node.kind == NodeKind.GROUP and bool(node.identifier) and is_book_code(node.identifier or "")


def parse_tree(root: MarkupNode, payload: bytes, corpus: Corpus, *, fallback_id: str | None = None) -> Corpus:
    """Populate ``corpus`` with the documents found under ``root``.

    ``payload`` must be the exact raw bytes the tree was built from; its digest
    becomes ``corpus.source_hash``. ``fallback_id`` names book containers that
    declare no code (defaults to the corpus id).
    """

    context = _ParseContext(fallback_id=fallback_id or corpus.id)
    _visit(root, None, context)

    if context.orphaned_leaves:
        logger.debug("Dropped %d text leaves outside any book container", context.orphaned_leaves)

    corpus.documents = context.documents
    corpus.source_hash = sha256_hex(payload)
    return corpus


def _visit(node: MarkupNode, scope: _DocumentScope | None, context: _ParseContext) -> None:
    if starts_document(node):
        scope = _open_document(node, context)

    if node.kind in LEAF_KINDS:
        if node.is_milestone:
            if scope is not None and node.identifier:
                scope.pending.append(node.identifier)
            return
        _emit_leaf(node, scope, context)
        return

    if node.text.strip():
        _emit_leaf(MarkupNode(kind=NodeKind.TEXT, text=node.text), scope, context)

    for child in node.children:
        _visit(child, scope, context)


def _open_document(node: MarkupNode, context: _ParseContext) -> _DocumentScope:
    context.order += 1

    document_id = node.identifier or context.fallback_id
    if document_id in context.used_ids:
        document_id = f"{document_id}-{context.order}"
    context.used_ids.add(document_id)

    title = normalize_whitespace(node.title or "") or document_id
    document = Document(
        id=document_id,
        title=title,
        order=node.order if node.order is not None else context.order,
        attributes=dict(node.attributes),
    )
    context.documents.append(document)
    return _DocumentScope(document=document)


def _leaf_locators(node: MarkupNode) -> list[str]:
    locators = list(node.locators)
    if node.kind == NodeKind.VERSE and node.identifier:
        locators.append(node.identifier)
    locators.extend(child.identifier for child in node.children if child.is_milestone and child.identifier)
    return locators


def _leaf_text(node: MarkupNode) -> str:
    parts = [node.text]
    parts.extend(child.text for child in node.children if child.kind == NodeKind.TEXT)
    return normalize_whitespace(" ".join(parts))


def _emit_leaf(node: MarkupNode, scope: _DocumentScope | None, context: _ParseContext) -> None:
    if scope is None:
        context.orphaned_leaves += 1
        return

    text = _leaf_text(node)
    if not text:
        # Milestones inside an empty leaf still belong to the next leaf.
        scope.pending.extend(child.identifier for child in node.children if child.is_milestone and child.identifier)
        return

    locators = list(dict.fromkeys(loc for loc in [*scope.pending, *_leaf_locators(node)] if loc))
    unnamed = [loc for loc in locators if not parse_ref(loc).book]
    if unnamed:
        logger.debug("Ignoring locators without a book: %s", ", ".join(unnamed))
        locators = [loc for loc in locators if loc not in unnamed]
    scope.pending = []
    scope.sequence += 1
    sequence = scope.sequence
    block_id = f"cb-{sequence}"

    anchors: list[Anchor] = []
    for index, locator in enumerate(locators):
        anchor_id = f"a-{sequence}-{index}"
        anchors.append(
            Anchor(
                id=anchor_id,
                content_block_id=block_id,
                position=0,
                spans=[
                    Span(
                        id=f"s-{locator}",
                        type=SpanType.VERSE.value,
                        start_anchor_id=anchor_id,
                        ref=parse_ref(locator),
                    )
                ],
            )
        )

    attributes = dict(node.attributes)
    if node.kind == NodeKind.LINE:
        attributes.setdefault("type", "poetry")

    scope.document.content_blocks.append(
        ContentBlock(id=block_id, sequence=sequence, text=text, anchors=anchors, attributes=attributes)
    )
