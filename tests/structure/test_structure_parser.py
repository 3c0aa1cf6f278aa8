from __future__ import annotations

import hashlib

from versicle.ir.models import Corpus
from versicle.structure.parser import parse_tree, starts_document
from versicle.structure.tree import MarkupNode, NodeKind


def _verse(locator: str, text: str = "") -> MarkupNode:
    return MarkupNode(kind=NodeKind.VERSE, identifier=locator, text=text)


def _text(text: str) -> MarkupNode:
    return MarkupNode(kind=NodeKind.TEXT, text=text)


def _book(code: str | None, *children: MarkupNode, title: str | None = None) -> MarkupNode:
    return MarkupNode(kind=NodeKind.BOOK, identifier=code, title=title, children=list(children))


def _root(*children: MarkupNode) -> MarkupNode:
    return MarkupNode(kind=NodeKind.GROUP, children=list(children))


def _parse(root: MarkupNode, payload: bytes = b"payload") -> Corpus:
    return parse_tree(root, payload, Corpus(id="KJV"))


def test_two_chapters_three_verses_become_one_document() -> None:
    genesis = _book(
        "Gen",
        MarkupNode(
            kind=NodeKind.CHAPTER,
            identifier="Gen.1",
            children=[_verse("Gen.1.1", "In the beginning"), _verse("Gen.1.2", "And the earth")],
        ),
        MarkupNode(kind=NodeKind.CHAPTER, identifier="Gen.2", children=[_verse("Gen.2.1", "Thus the heavens")]),
        title="Genesis",
    )

    corpus = _parse(_root(genesis))

    assert [document.id for document in corpus.documents] == ["Gen"]
    document = corpus.documents[0]
    assert document.title == "Genesis"
    assert document.order == 1
    assert [block.sequence for block in document.content_blocks] == [1, 2, 3]
    assert [block.id for block in document.content_blocks] == ["cb-1", "cb-2", "cb-3"]
    assert [block.verse_refs()[0].osis_id for block in document.content_blocks] == ["Gen.1.1", "Gen.1.2", "Gen.2.1"]
    anchor = document.content_blocks[0].anchors[0]
    assert anchor.id == "a-1-0"
    assert anchor.position == 0
    assert anchor.spans[0].start_anchor_id == "a-1-0"


def test_empty_leaves_are_skipped_without_consuming_sequence() -> None:
    corpus = _parse(
        _root(
            _book(
                "Gen",
                MarkupNode(kind=NodeKind.PARAGRAPH, text="  \n\t "),
                MarkupNode(kind=NodeKind.PARAGRAPH, text="  In   the\nbeginning "),
            )
        )
    )

    blocks = corpus.documents[0].content_blocks
    assert len(blocks) == 1
    assert blocks[0].sequence == 1
    assert blocks[0].text == "In the beginning"
    assert blocks[0].anchors == []


def test_milestones_attach_to_following_leaf() -> None:
    paragraph = MarkupNode(
        kind=NodeKind.PARAGRAPH,
        children=[_verse("Gen.1.1"), _text("In the beginning"), _verse("Gen.1.2"), _text("and the earth")],
    )
    corpus = _parse(_root(_book("Gen", _verse("Gen.1.0"), paragraph, _verse("Gen.1.3"), _text("And God said"))))

    first, second = corpus.documents[0].content_blocks
    assert first.text == "In the beginning and the earth"
    assert [anchor.id for anchor in first.anchors] == ["a-1-0", "a-1-1", "a-1-2"]
    assert [ref.osis_id for ref in first.verse_refs()] == ["Gen.1.0", "Gen.1.1", "Gen.1.2"]
    assert [ref.osis_id for ref in second.verse_refs()] == ["Gen.1.3"]


def test_pending_milestones_do_not_cross_documents() -> None:
    corpus = _parse(_root(_book("Gen", _verse("Gen.50.26")), _book("Exod", _text("Now these are the names"))))

    exodus = corpus.document("Exod")
    assert exodus is not None
    assert exodus.content_blocks[0].anchors == []


def test_nested_book_has_independent_sequence() -> None:
    inner = _book("Inner", _text("inner text"))
    corpus = _parse(_root(_book("Outer", _text("before"), inner, _text("after"))))

    outer_doc, inner_doc = corpus.documents
    assert outer_doc.id == "Outer"
    assert [(block.sequence, block.text) for block in outer_doc.content_blocks] == [(1, "before"), (2, "after")]
    assert inner_doc.id == "Inner"
    assert inner_doc.order == 2
    assert [(block.sequence, block.text) for block in inner_doc.content_blocks] == [(1, "inner text")]


def test_locators_without_a_book_are_ignored() -> None:
    corpus = _parse(_root(_book("Gen", _verse(".1.1", "In the beginning"), _verse("Gen.1.2", "And the earth"))))

    first, second = corpus.documents[0].content_blocks
    assert first.text == "In the beginning"
    assert first.anchors == []
    assert [ref.osis_id for ref in second.verse_refs()] == ["Gen.1.2"]


def test_orphan_leaves_are_dropped() -> None:
    root = _root(_text("front matter"), _book("Gen", _text("In the beginning")))
    root.text = "stray"

    corpus = _parse(root)

    assert corpus.block_count() == 1
    assert corpus.documents[0].content_blocks[0].text == "In the beginning"


def test_book_code_groups_start_documents() -> None:
    psalms = MarkupNode(kind=NodeKind.GROUP, identifier="Ps", children=[_verse("Ps.1.1", "Blessed is the man")])
    intro = MarkupNode(kind=NodeKind.GROUP, identifier="Intro", children=[_text("preface")])

    assert starts_document(psalms)
    assert not starts_document(intro)

    corpus = _parse(_root(psalms, intro))
    assert [document.id for document in corpus.documents] == ["Ps"]


def test_fallback_ids_explicit_order_and_duplicates() -> None:
    first = _book(None, _text("untitled"))
    second = _book("Gen", _text("one"))
    third = _book("Gen", _text("two"))
    third.order = 40

    corpus = parse_tree(_root(first, second, third), b"x", Corpus(id="KJV"), fallback_id="sample")

    assert [(document.id, document.title, document.order) for document in corpus.documents] == [
        ("sample", "sample", 1),
        ("Gen", "Gen", 2),
        ("Gen-3", "Gen-3", 40),
    ]


def test_poetry_lines_are_marked() -> None:
    line = MarkupNode(kind=NodeKind.LINE, text="The LORD is my shepherd", locators=["Ps.23.1"])

    corpus = _parse(_root(_book("Ps", line)))

    block = corpus.documents[0].content_blocks[0]
    assert block.attributes == {"type": "poetry"}
    assert block.verse_refs()[0].osis_id == "Ps.23.1"


def test_source_hash_is_digest_of_payload() -> None:
    payload = b"<osis>raw</osis>"

    corpus = _parse(_root(_book("Gen", _text("x"))), payload)

    assert corpus.source_hash == hashlib.sha256(payload).hexdigest()


def test_repeated_parses_are_identical() -> None:
    def build() -> MarkupNode:
        return _root(_book("Gen", _verse("Gen.1.1", "In the beginning")))

    assert _parse(build()) == _parse(build())
