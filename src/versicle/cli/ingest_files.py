"""CLI command storing source files content-addressed, with per-file format."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from versicle.config import ConversionSettings
from versicle.errors import ConversionError
from versicle.registry import build_default_registry


def _collect_inputs(target: Path) -> list[Path]:
    if target.is_file():
        return [target]
    if target.is_dir():
        return sorted(path for path in target.rglob("*") if path.is_file())
    return []


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Ingest files into the content-addressed blob store")
    parser.add_argument("--path", required=True, help="Source file or directory")
    parser.add_argument("--store-dir", default=None, help="Blob store root (defaults to VERSICLE_STORE_DIR)")
    args = parser.parse_args(argv)

    source_path = Path(args.path)
    try:
        settings = ConversionSettings.from_env()
    except ValueError as exc:
        print(json.dumps({"path": str(source_path), "error": str(exc)}, ensure_ascii=True, indent=2))
        return 2
    settings.configure_logging()

    store_dir = Path(args.store_dir) if args.store_dir else settings.store_dir
    registry = build_default_registry(settings.sniff_bytes)

    results: list[dict[str, object]] = []
    errors: list[dict[str, str]] = []

    files = _collect_inputs(source_path)
    if not files:
        errors.append({"source_path": str(source_path), "error": "no readable files found"})

    for file_path in files:
        detected = registry.detect(file_path)
        if not detected.detected:
            errors.append({"source_path": str(file_path), "error": detected.reason})
            continue
        try:
            ingested = registry.adapter(detected.format).ingest(file_path, store_dir)
        except ConversionError as exc:
            errors.append({"source_path": str(file_path), "error": str(exc)})
            continue

        results.append(
            {
                "source_path": str(file_path),
                "artifact_id": ingested.artifact_id,
                "blob_sha256": ingested.blob_digest,
                "size_bytes": ingested.size_bytes,
                "metadata": ingested.metadata,
            }
        )

    payload = {
        "path": str(source_path),
        "store_dir": str(store_dir),
        "processed": len(results),
        "results": results,
        "errors": errors,
    }
    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return 0 if not errors else 1


if __name__ == "__main__":
    raise SystemExit(main())
