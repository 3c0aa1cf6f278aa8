"""CLI command reporting which adapter claims a file, and its entries."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from versicle.config import ConversionSettings
from versicle.errors import ConversionError
from versicle.registry import build_default_registry


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Detect the markup format of a file")
    parser.add_argument("--path", required=True, help="File to inspect")
    args = parser.parse_args(argv)

    source_path = Path(args.path)
    try:
        settings = ConversionSettings.from_env()
    except ValueError as exc:
        print(json.dumps({"path": str(source_path), "error": str(exc)}, ensure_ascii=True, indent=2))
        return 2
    settings.configure_logging()

    registry = build_default_registry(settings.sniff_bytes)
    detected = registry.detect(source_path)

    payload: dict[str, object] = {
        "path": str(source_path),
        "detected": detected.detected,
        "format": detected.format or None,
        "reason": detected.reason,
        "entries": [],
    }
    if detected.detected:
        try:
            listing = registry.adapter(detected.format).enumerate(source_path)
        except ConversionError as exc:
            payload["error"] = str(exc)
        else:
            payload["entries"] = [
                {"path": entry.path, "size_bytes": entry.size_bytes, "is_dir": entry.is_dir}
                for entry in listing.entries
            ]

    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return 0 if detected.detected and "error" not in payload else 1


if __name__ == "__main__":
    raise SystemExit(main())
