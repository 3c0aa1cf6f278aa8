from __future__ import annotations

import json

import pytest

from versicle.errors import MalformedIR
from versicle.ir.codec import attach_raw_payload, dumps_corpus, loads_corpus, raw_payload
from versicle.ir.models import Anchor, ContentBlock, Corpus, Document, LossClass, LossReport, LostElement, Span
from versicle.ir.normalization import content_hash, escape_markup, normalize_whitespace
from versicle.ir.refs import parse_ref


def _build_corpus() -> Corpus:
    block = ContentBlock(
        id="cb-1",
        sequence=1,
        text="In the beginning",
        anchors=[
            Anchor(
                id="a-1-0",
                content_block_id="cb-1",
                spans=[Span(id="s-Gen.1.1", type="verse", start_anchor_id="a-1-0", ref=parse_ref("Gen.1.1"))],
            )
        ],
        attributes={"type": "poetry"},
    )
    return Corpus(
        id="KJV",
        title="King James Version",
        language="en",
        source_format="osis",
        loss_class=LossClass.L1,
        attributes={"note": "kept"},
        documents=[Document(id="Gen", title="Genesis", order=1, content_blocks=[block])],
    )


def test_content_block_hash_tracks_text() -> None:
    block = ContentBlock(id="cb-1", sequence=1, text="alpha")
    assert block.hash == content_hash("alpha")

    block.replace_text("beta")

    assert block.text == "beta"
    assert block.hash == content_hash("beta")


def test_loss_class_ordering() -> None:
    assert LossClass.L0.rank < LossClass.L1.rank < LossClass.L2.rank < LossClass.L3.rank
    assert LossClass.L0.worse(LossClass.L3) is LossClass.L3
    assert LossClass.L1.worse(LossClass.L0) is LossClass.L1


def test_corpus_survives_json_persistence() -> None:
    corpus = _build_corpus()

    restored = loads_corpus(dumps_corpus(corpus))

    assert restored == corpus
    assert restored.documents[0].content_blocks[0].verse_refs()[0].osis_id == "Gen.1.1"


def test_serialization_is_deterministic_and_snake_case() -> None:
    first = dumps_corpus(_build_corpus())
    second = dumps_corpus(_build_corpus())

    assert first == second
    raw = json.loads(first)
    assert raw["module_type"] == "bible"
    assert "content_blocks" in raw["documents"][0]
    span = raw["documents"][0]["content_blocks"][0]["anchors"][0]["spans"][0]
    assert span["start_anchor_id"] == "a-1-0"
    assert span["ref"]["verse_end"] == 0
    assert span["ref"]["osis_id"] == "Gen.1.1"


def test_loads_corpus_rejects_invalid_json() -> None:
    with pytest.raises(MalformedIR, match="failed to parse IR"):
        loads_corpus("{not json")


def test_loads_corpus_rejects_missing_fields() -> None:
    with pytest.raises(MalformedIR, match="missing required field"):
        loads_corpus(json.dumps({"documents": [{"title": "no id"}]}))


def test_raw_payload_preserves_utf8_and_binary_bytes() -> None:
    attributes: dict[str, str] = {}
    attach_raw_payload(attributes, "_osis_raw", "<osis>é</osis>".encode("utf-8"))
    assert raw_payload(attributes, "_osis_raw") == "<osis>é</osis>".encode("utf-8")
    assert "_osis_raw_encoding" not in attributes

    binary = b"\xff\xfe<osis/>\x00"
    attach_raw_payload(attributes, "_txt_raw", binary)
    assert attributes["_txt_raw_encoding"] == "base64"
    assert raw_payload(attributes, "_txt_raw") == binary


def test_raw_payload_absent_or_empty_is_none() -> None:
    assert raw_payload({}, "_json_raw") is None
    assert raw_payload({"_json_raw": ""}, "_json_raw") is None


def test_escape_markup_leaves_only_entities() -> None:
    escaped = escape_markup("""Tom & "Jerry" <'cat'>""")

    assert escaped == "Tom &amp; &quot;Jerry&quot; &lt;&apos;cat&apos;&gt;"
    stripped = escaped
    for entity in ("&amp;", "&lt;", "&gt;", "&quot;", "&apos;"):
        stripped = stripped.replace(entity, "")
    assert not set("<>&\"'") & set(stripped)


def test_normalize_whitespace_collapses_runs() -> None:
    assert normalize_whitespace("  In \t the\n\nbeginning  ") == "In the beginning"


def test_loss_report_to_dict() -> None:
    report = LossReport(
        source_format="IR",
        target_format="txt",
        loss_class=LossClass.L3,
        warnings=["lossy"],
        lost_elements=[LostElement(path="Gen/cb-2", element_type="paragraph", reason="no verse reference")],
    )

    assert report.to_dict() == {
        "source_format": "IR",
        "target_format": "txt",
        "loss_class": "L3",
        "warnings": ["lossy"],
        "lost_elements": [{"path": "Gen/cb-2", "element_type": "paragraph", "reason": "no verse reference"}],
    }
