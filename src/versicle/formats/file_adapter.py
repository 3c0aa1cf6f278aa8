"""Opaque-file adapter: any regular file can be stored, nothing can be converted."""

from __future__ import annotations

from pathlib import Path

from versicle.formats.base import BaseFormatAdapter, DetectResult


class FileAdapter(BaseFormatAdapter):
    name = "file"
    inputs = ("file",)
    extract_loss = None
    emit_loss = None

    def _recognize(self, path: Path, data: bytes) -> DetectResult:
        return DetectResult(detected=True, format=self.name, reason="generic file")
