"""Canonical IR data structures shared by all format adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from versicle.ir.normalization import content_hash

DEFAULT_VERSION = "1.0.0"
MODULE_BIBLE = "bible"


class LossClass(str, Enum):
    """Fidelity tier of a conversion step, totally ordered L0 < L1 < L2 < L3."""

    L0 = "L0"
    L1 = "L1"
    L2 = "L2"
    L3 = "L3"

    @property
    def rank(self) -> int:
        return int(self.value[1:])

    def worse(self, other: LossClass) -> LossClass:
        return self if self.rank >= other.rank else other


class SpanType(str, Enum):
    """Known span types; unknown type strings pass through the IR untouched."""

    VERSE = "verse"
    CHAPTER = "chapter"
    PARAGRAPH = "paragraph"
    POETRY_LINE = "poetry_line"
    SECTION = "section"
    TITLE = "title"
    NOTE = "note"
    CROSS_REF = "cross_ref"


@dataclass(frozen=True, slots=True)
class Ref:
    """Canonical locator; 0 marks an unset chapter, verse or range end."""

    book: str
    chapter: int = 0
    verse: int = 0
    verse_end: int = 0
    osis_id: str = ""


@dataclass(slots=True)
class Span:
    """Typed semantic range starting at an anchor."""

    id: str
    type: str
    start_anchor_id: str
    ref: Ref | None = None

    @property
    def is_verse(self) -> bool:
        return self.type == SpanType.VERSE.value


@dataclass(slots=True)
class Anchor:
    """Reference point inside a content block's text."""

    id: str
    content_block_id: str
    position: int = 0
    spans: list[Span] = field(default_factory=list)


@dataclass(slots=True)
class ContentBlock:
    """Atomic unit of text with its integrity hash and anchors."""

    id: str
    sequence: int
    text: str
    hash: str = ""
    anchors: list[Anchor] = field(default_factory=list)
    attributes: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.hash:
            self.hash = content_hash(self.text)

    def replace_text(self, text: str) -> None:
        """Swap the block text and recompute its hash."""

        self.text = text
        self.hash = content_hash(text)

    def verse_refs(self) -> list[Ref]:
        return [
            span.ref
            for anchor in self.anchors
            for span in anchor.spans
            if span.is_verse and span.ref is not None
        ]


@dataclass(slots=True)
class Document:
    """One addressable sub-unit of a corpus, usually a book."""

    id: str
    title: str = ""
    order: int = 0
    content_blocks: list[ContentBlock] = field(default_factory=list)
    attributes: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class Corpus:
    """Root of one conversion unit."""

    id: str
    version: str = DEFAULT_VERSION
    module_type: str = MODULE_BIBLE
    title: str = ""
    language: str = ""
    versification: str = ""
    description: str = ""
    publisher: str = ""
    rights: str = ""
    source_format: str = ""
    source_hash: str = ""
    loss_class: LossClass = LossClass.L0
    attributes: dict[str, str] = field(default_factory=dict)
    documents: list[Document] = field(default_factory=list)

    def document(self, document_id: str) -> Document | None:
        return next((doc for doc in self.documents if doc.id == document_id), None)

    def block_count(self) -> int:
        return sum(len(doc.content_blocks) for doc in self.documents)


@dataclass(slots=True)
class LostElement:
    """One element dropped by a lossy conversion step."""

    path: str
    element_type: str
    reason: str


@dataclass(slots=True)
class LossReport:
    """What a conversion step preserved and what it dropped."""

    source_format: str
    target_format: str
    loss_class: LossClass
    warnings: list[str] = field(default_factory=list)
    lost_elements: list[LostElement] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "source_format": self.source_format,
            "target_format": self.target_format,
            "loss_class": self.loss_class.value,
            "warnings": list(self.warnings),
            "lost_elements": [
                {"path": lost.path, "element_type": lost.element_type, "reason": lost.reason}
                for lost in self.lost_elements
            ],
        }
