"""CLI command converting a file to another format through the IR."""

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
    parser = argparse.ArgumentParser(description="Convert a Bible file between formats via the IR")
    parser.add_argument("--path", required=True, help="Source file")
    parser.add_argument("--to", required=True, dest="target", help="Target format name (osis, zefania, json, html, txt)")
    parser.add_argument("--ir-dir", default=None, help="Directory for the IR file (defaults to VERSICLE_IR_DIR)")
    parser.add_argument("--output-dir", default=None, help="Directory for the output (defaults to VERSICLE_OUTPUT_DIR)")
    args = parser.parse_args(argv)

    source_path = Path(args.path)
    try:
        settings = ConversionSettings.from_env()
    except ValueError as exc:
        print(json.dumps({"path": str(source_path), "error": str(exc)}, ensure_ascii=True, indent=2))
        return 2
    settings.configure_logging()

    ir_dir = Path(args.ir_dir) if args.ir_dir else settings.ir_dir
    output_dir = Path(args.output_dir) if args.output_dir else settings.output_dir
    registry = build_default_registry(settings.sniff_bytes)

    try:
        result = registry.convert(source_path, args.target, ir_dir, output_dir)
    except ConversionError as exc:
        payload = {"path": str(source_path), "target_format": args.target, "error": str(exc)}
        print(json.dumps(payload, ensure_ascii=True, indent=2))
        return 1

    payload = {"path": str(source_path), **result.to_dict()}
    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
