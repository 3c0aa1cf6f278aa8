"""Runtime configuration for conversion commands."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Mapping


DEFAULT_WORK_DIR = ".versicle"
DEFAULT_SNIFF_BYTES = 4096
MIN_SNIFF_BYTES = 64
DEFAULT_LOG_LEVEL = "INFO"

_LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})


def _parse_positive_int(*, name: str, raw_value: str, minimum: int = 1) -> int:
    try:
        value = int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw_value!r}") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _required(source: Mapping[str, str], name: str, default: str) -> str:
    value = source.get(name, default).strip()
    if not value:
        raise ValueError(f"{name} cannot be empty")
    return value


@dataclass(frozen=True, slots=True)
class ConversionSettings:
    """Validated storage locations and tuning for conversion runs."""

    work_dir: Path
    store_dir: Path
    ir_dir: Path
    output_dir: Path
    sniff_bytes: int = DEFAULT_SNIFF_BYTES
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ConversionSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        work_dir = Path(_required(source, "VERSICLE_WORK_DIR", DEFAULT_WORK_DIR))
        store_dir = _required(source, "VERSICLE_STORE_DIR", str(work_dir / "blobs"))
        ir_dir = _required(source, "VERSICLE_IR_DIR", str(work_dir / "ir"))
        output_dir = _required(source, "VERSICLE_OUTPUT_DIR", str(work_dir / "out"))

        sniff_bytes = _parse_positive_int(
            name="VERSICLE_SNIFF_BYTES",
            raw_value=_required(source, "VERSICLE_SNIFF_BYTES", str(DEFAULT_SNIFF_BYTES)),
            minimum=MIN_SNIFF_BYTES,
        )

        log_level = _required(source, "VERSICLE_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
        if log_level not in _LOG_LEVELS:
            allowed = ", ".join(sorted(_LOG_LEVELS))
            raise ValueError(f"VERSICLE_LOG_LEVEL must be one of: {allowed}")

        return cls(
            work_dir=work_dir,
            store_dir=Path(store_dir),
            ir_dir=Path(ir_dir),
            output_dir=Path(output_dir),
            sniff_bytes=sniff_bytes,
            log_level=log_level,
        )

    def configure_logging(self) -> None:
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            level=getattr(logging, self.log_level),
        )
