from __future__ import annotations

import json
from pathlib import Path

import pytest

from versicle.errors import MalformedInput
from versicle.formats.zefania_adapter import ZefaniaAdapter
from versicle.ir.codec import loads_corpus
from versicle.ir.models import LossClass
from versicle.ir.normalization import sanitize_id

_ZEFANIA = """<?xml version="1.0" encoding="UTF-8"?>
<XMLBIBLE biblename="King James Version" language="en">
  <BIBLEBOOK bnumber="1" bname="Genesis">
    <CHAPTER cnumber="1">
      <CAPTION>The Creation</CAPTION>
      <VERS vnumber="1">In the beginning God created the heaven and the earth.</VERS>
      <VERS vnumber="2">And the earth was without form, and void.</VERS>
      <VERS vnumber="3"> </VERS>
    </CHAPTER>
    <CHAPTER cnumber="2">
      <VERS vnumber="1">Thus the heavens and the earth were finished.</VERS>
    </CHAPTER>
  </BIBLEBOOK>
  <BIBLEBOOK bnumber="40" bname="Matthew">
    <CHAPTER cnumber="5">
      <VERS vnumber="3">Blessed are the poor in spirit.</VERS>
    </CHAPTER>
  </BIBLEBOOK>
</XMLBIBLE>
"""


def _write_zefania(path: Path, body: str = _ZEFANIA) -> Path:
    path.write_text(body, encoding="utf-8")
    return path


def test_sanitize_id_replaces_unsafe_characters() -> None:
    assert sanitize_id("King James Version") == "King-James-Version"
    assert sanitize_id(" (Luther 1912) ") == "Luther-1912"


def test_zefania_detects_root_element(tmp_path: Path) -> None:
    sample = _write_zefania(tmp_path / "kjv.xml")

    result = ZefaniaAdapter().detect(sample)

    assert result.detected
    assert result.format == "zefania"


def test_zefania_detection_only_reads_the_sniff_window(tmp_path: Path) -> None:
    sample = _write_zefania(tmp_path / "late.xml", "<!--" + " " * 200 + "-->" + _ZEFANIA.split("\n", 1)[1])

    assert not ZefaniaAdapter(sniff_bytes=64).detect(sample).detected
    assert ZefaniaAdapter(sniff_bytes=4096).detect(sample).detected


def test_zefania_extracts_books_in_declared_order(tmp_path: Path) -> None:
    sample = _write_zefania(tmp_path / "kjv.xml")

    result = ZefaniaAdapter().extract_ir(sample, tmp_path / "ir")

    assert result.ir_path.name == "King-James-Version.ir.json"
    assert result.loss_class == LossClass.L0
    corpus = loads_corpus(result.ir_path.read_text(encoding="utf-8"))
    assert corpus.title == "King James Version"
    assert corpus.language == "en"
    assert [(doc.id, doc.title, doc.order) for doc in corpus.documents] == [
        ("Gen", "Genesis", 1),
        ("Matt", "Matthew", 40),
    ]
    genesis = corpus.documents[0]
    assert [block.text for block in genesis.content_blocks] == [
        "The Creation",
        "In the beginning God created the heaven and the earth.",
        "And the earth was without form, and void.",
        "Thus the heavens and the earth were finished.",
    ]
    assert genesis.content_blocks[0].anchors == []
    assert [block.verse_refs()[0].osis_id for block in genesis.content_blocks[1:]] == ["Gen.1.1", "Gen.1.2", "Gen.2.1"]
    assert genesis.attributes == {"bnumber": "1"}


def test_zefania_accepts_lowercase_markup(tmp_path: Path) -> None:
    sample = _write_zefania(
        tmp_path / "psalms.xml",
        '<xmlbible BIBLENAME="Psalter"><biblebook BNUMBER="19"><chapter cnumber="23">'
        '<vers vnumber="1">The LORD is my shepherd</vers></chapter></biblebook></xmlbible>',
    )

    result = ZefaniaAdapter().extract_ir(sample, tmp_path / "ir")

    corpus = loads_corpus(result.ir_path.read_text(encoding="utf-8"))
    assert corpus.id == "Psalter"
    assert corpus.documents[0].id == "Ps"
    assert corpus.documents[0].content_blocks[0].verse_refs()[0].osis_id == "Ps.23.1"


def test_zefania_round_trip_and_regeneration(tmp_path: Path) -> None:
    sample = _write_zefania(tmp_path / "kjv.xml")
    adapter = ZefaniaAdapter()
    extracted = adapter.extract_ir(sample, tmp_path / "ir")

    replayed = adapter.emit_native(extracted.ir_path, tmp_path / "out")
    assert replayed.loss_class == LossClass.L0
    assert replayed.output_path.read_bytes() == sample.read_bytes()

    raw = json.loads(extracted.ir_path.read_text(encoding="utf-8"))
    del raw["attributes"]["_zefania_raw"]
    extracted.ir_path.write_text(json.dumps(raw), encoding="utf-8")

    regenerated = adapter.emit_native(extracted.ir_path, tmp_path / "regen")
    text = regenerated.output_path.read_text(encoding="utf-8")
    assert regenerated.loss_class == LossClass.L1
    assert '<BIBLEBOOK bnumber="40" bname="Matthew">' in text
    assert text.count("<CHAPTER ") == 3
    assert '<VERS vnumber="2">And the earth was without form, and void.</VERS>' in text
    assert text.index("<CAPTION>The Creation</CAPTION>") < text.index('<CHAPTER cnumber="1">')

    again = adapter.extract_ir(regenerated.output_path, tmp_path / "ir2")
    corpus = loads_corpus(again.ir_path.read_text(encoding="utf-8"))
    assert [doc.id for doc in corpus.documents] == ["Gen", "Matt"]
    assert corpus.block_count() == 5


def test_zefania_ingest_uses_bible_name(tmp_path: Path) -> None:
    sample = _write_zefania(tmp_path / "kjv.xml")

    result = ZefaniaAdapter().ingest(sample, tmp_path / "blobs")

    assert result.artifact_id == "King-James-Version"


def test_zefania_rejects_wrong_root(tmp_path: Path) -> None:
    sample = _write_zefania(tmp_path / "other.xml", "<bible/>")

    with pytest.raises(MalformedInput, match="root element is not <XMLBIBLE>"):
        ZefaniaAdapter().extract_ir(sample, tmp_path / "ir")
