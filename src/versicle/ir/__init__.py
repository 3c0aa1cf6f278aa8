"""Intermediate representation: models, locators, persistence and validation."""

from .codec import dumps_corpus, loads_corpus
from .models import (
    Anchor,
    ContentBlock,
    Corpus,
    Document,
    LossClass,
    LossReport,
    LostElement,
    Ref,
    Span,
    SpanType,
)
from .refs import format_ref, is_book_code, parse_ref
from .validate import validate_corpus

__all__ = [
    "Anchor",
    "ContentBlock",
    "Corpus",
    "Document",
    "LossClass",
    "LossReport",
    "LostElement",
    "Ref",
    "Span",
    "SpanType",
    "dumps_corpus",
    "format_ref",
    "is_book_code",
    "loads_corpus",
    "parse_ref",
    "validate_corpus",
]
