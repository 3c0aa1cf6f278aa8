"""Markup tree flattening and regeneration."""

from .emitter import Emission, MarkupDialect, StructuralEmitter, chapter_groups
from .parser import parse_tree
from .tree import MarkupNode, NodeKind

__all__ = [
    "Emission",
    "MarkupDialect",
    "MarkupNode",
    "NodeKind",
    "StructuralEmitter",
    "chapter_groups",
    "parse_tree",
]
