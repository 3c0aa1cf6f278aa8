"""Format-neutral markup tree that adapters build from their native syntax."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class NodeKind(str, Enum):
    BOOK = "book"
    CHAPTER = "chapter"
    GROUP = "group"
    PARAGRAPH = "paragraph"
    LINE = "line"
    VERSE = "verse"
    TEXT = "text"


LEAF_KINDS = frozenset({NodeKind.PARAGRAPH, NodeKind.LINE, NodeKind.VERSE, NodeKind.TEXT})


@dataclass(slots=True)
class MarkupNode:
    """One labeled container or text-bearing leaf.

    ``identifier`` is the declared code of a container (``Gen``) or the locator
    of a verse node (``Gen.1.1``). ``locators`` carries inline verse locators
    declared directly on a paragraph. ``order`` lets an adapter pin a book's
    document order to a value declared by the source format.
    """

    kind: NodeKind
    identifier: str | None = None
    title: str | None = None
    text: str = ""
    locators: list[str] = field(default_factory=list)
    children: list[MarkupNode] = field(default_factory=list)
    attributes: dict[str, str] = field(default_factory=dict)
    order: int | None = None

    def append(self, child: MarkupNode) -> MarkupNode:
        self.children.append(child)
        return child

    @property
    def is_milestone(self) -> bool:
        """A verse marker that carries a locator but no text of its own."""

        return self.kind == NodeKind.VERSE and not self.text.strip() and not self.children

    def walk(self):
        """Yield this node and its descendants in pre-order."""

        yield self
        for child in self.children:
            yield from child.walk()
