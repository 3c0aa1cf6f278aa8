from __future__ import annotations

import json
from pathlib import Path

import pytest

from versicle.cli.convert_file import main as convert_file_main
from versicle.cli.detect_format import main as detect_format_main
from versicle.cli.ingest_files import main as ingest_files_main

_OSIS = (
    '<osis xmlns="http://www.bibletechnologies.net/2003/OSIS/namespace"><osisText osisIDWork="KJV">'
    '<div type="book" osisID="Gen"><chapter osisID="Gen.1">'
    '<verse osisID="Gen.1.1">In the beginning</verse></chapter></div></osisText></osis>'
)


@pytest.fixture(autouse=True)
def _work_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    work_dir = tmp_path / "work"
    monkeypatch.setenv("VERSICLE_WORK_DIR", str(work_dir))
    for name in ("VERSICLE_STORE_DIR", "VERSICLE_IR_DIR", "VERSICLE_OUTPUT_DIR", "VERSICLE_SNIFF_BYTES"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("VERSICLE_LOG_LEVEL", "WARNING")
    return work_dir


def _write_osis(path: Path, body: str = _OSIS) -> Path:
    path.write_text(body, encoding="utf-8")
    return path


def test_detect_cli_reports_format_and_entries(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    sample = _write_osis(tmp_path / "kjv.osis")

    exit_code = detect_format_main(["--path", str(sample)])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload["detected"] is True
    assert payload["format"] == "osis"
    assert payload["reason"] == "OSIS XML detected"
    assert payload["entries"] == [{"path": "kjv.osis", "size_bytes": sample.stat().st_size, "is_dir": False}]


def test_detect_cli_on_directory_fails(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = detect_format_main(["--path", str(tmp_path)])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 1
    assert payload["detected"] is False
    assert payload["format"] is None
    assert "directory" in payload["reason"]


def test_ingest_cli_deduplicates_directory(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], _work_dir: Path
) -> None:
    books = tmp_path / "books"
    books.mkdir()
    _write_osis(books / "a.osis")
    _write_osis(books / "b.osis")

    exit_code = ingest_files_main(["--path", str(books)])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload["store_dir"] == str(_work_dir / "blobs")
    assert payload["processed"] == 2
    first, second = payload["results"]
    assert first["blob_sha256"] == second["blob_sha256"]
    assert first["artifact_id"] == "KJV"
    assert first["metadata"] == {"original_name": "a.osis", "format": "osis"}
    stored = [path for path in (_work_dir / "blobs").rglob("*") if path.is_file()]
    assert len(stored) == 1


def test_ingest_cli_reports_empty_input(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    empty = tmp_path / "empty"
    empty.mkdir()

    exit_code = ingest_files_main(["--path", str(empty), "--store-dir", str(tmp_path / "store")])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 1
    assert payload["processed"] == 0
    assert payload["errors"] == [{"source_path": str(empty), "error": "no readable files found"}]


def test_convert_cli_writes_ir_and_output(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], _work_dir: Path
) -> None:
    sample = _write_osis(tmp_path / "kjv.osis")

    exit_code = convert_file_main(["--path", str(sample), "--to", "zefania"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload["source_format"] == "osis"
    assert payload["target_format"] == "zefania"
    assert payload["loss_class"] == "L1"
    assert payload["ir_path"] == str(_work_dir / "ir" / "KJV.ir.json")
    output = Path(payload["output_path"])
    assert output == _work_dir / "out" / "KJV.xml"
    assert '<VERS vnumber="1">In the beginning</VERS>' in output.read_text(encoding="utf-8")
    assert payload["emit"]["warnings"]


def test_convert_cli_reports_malformed_input(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    sample = _write_osis(tmp_path / "broken.osis", "<osis><osisText")

    exit_code = convert_file_main(
        ["--path", str(sample), "--to", "json", "--ir-dir", str(tmp_path / "ir"), "--output-dir", str(tmp_path / "out")]
    )
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 1
    assert payload["target_format"] == "json"
    assert "failed to parse OSIS XML" in payload["error"]
    assert not (tmp_path / "ir").exists()


def test_cli_rejects_invalid_settings(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("VERSICLE_SNIFF_BYTES", "8")

    exit_code = detect_format_main(["--path", str(tmp_path)])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 2
    assert "VERSICLE_SNIFF_BYTES" in payload["error"]
