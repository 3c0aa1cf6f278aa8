"""Routing entrypoint for format detection and two-step conversion."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path

from versicle.errors import UnknownFormat
from versicle.formats import build_default_adapters
from versicle.formats.base import DetectResult, EmitResult, ExtractResult, FormatAdapter, PluginManifest
from versicle.ir.models import LossClass

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ConversionResult:
    """Both halves of a source -> IR -> target conversion."""

    source_format: str
    target_format: str
    extract: ExtractResult
    emit: EmitResult

    @property
    def loss_class(self) -> LossClass:
        """The worse of the two step classes."""

        return self.extract.loss_class.worse(self.emit.loss_class)

    def to_dict(self) -> dict[str, object]:
        return {
            "source_format": self.source_format,
            "target_format": self.target_format,
            "ir_path": str(self.extract.ir_path),
            "output_path": str(self.emit.output_path),
            "loss_class": self.loss_class.value,
            "extract": self.extract.loss_report.to_dict(),
            "emit": self.emit.loss_report.to_dict(),
        }


class FormatRegistry:
    """Hold the adapters a host application chose to enable."""

    def __init__(self) -> None:
        self._adapter_map: dict[str, FormatAdapter] = {}

    @property
    def adapter_map(self) -> dict[str, FormatAdapter]:
        """Registered adapters keyed by adapter name, in registration order."""

        return dict(self._adapter_map)

    def register_adapter(self, name: str, adapter: FormatAdapter) -> None:
        """Register an adapter implementation by key."""

        if not name:
            raise ValueError("Adapter name cannot be empty")
        if not isinstance(adapter, FormatAdapter):
            raise TypeError(f"Adapter {name!r} does not implement the conversion contract")
        self._adapter_map[name] = adapter

    def adapter(self, name: str) -> FormatAdapter:
        try:
            return self._adapter_map[name]
        except KeyError as exc:
            known = ", ".join(sorted(self._adapter_map)) or "none"
            raise UnknownFormat(f"No adapter registered for format {name!r} (known: {known})") from exc

    def manifests(self) -> list[PluginManifest]:
        return [adapter.manifest for adapter in self._adapter_map.values()]

    def detect(self, path: str | Path) -> DetectResult:
        """Ask each adapter in registration order; the first positive answer wins."""

        source = Path(path)
        reasons: list[str] = []
        for name, adapter in self._adapter_map.items():
            result = adapter.detect(source)
            if result.detected:
                logger.info("Detected %s as %s", source, name)
                return DetectResult(detected=True, format=name, reason=result.reason)
            reasons.append(f"{name}: {result.reason}")
        return DetectResult(detected=False, reason="; ".join(reasons) or "no adapters registered")

    def convert(self, path: str | Path, target: str, ir_dir: str | Path, output_dir: str | Path) -> ConversionResult:
        """Extract ``path`` with its detected adapter and emit it with ``target``."""

        source = Path(path)
        emitter = self.adapter(target)
        detected = self.detect(source)
        if not detected.detected:
            raise UnknownFormat(f"Could not detect source format: {detected.reason}", source)

        extractor = self.adapter(detected.format)
        extract = extractor.extract_ir(source, Path(ir_dir))
        emit = emitter.emit_native(extract.ir_path, Path(output_dir))
        result = ConversionResult(
            source_format=detected.format,
            target_format=target,
            extract=extract,
            emit=emit,
        )
        logger.info(
            "Converted %s (%s -> %s) into %s at %s",
            source,
            detected.format,
            target,
            emit.output_path,
            result.loss_class.value,
        )
        return result


def build_default_registry(sniff_bytes: int = 4096) -> FormatRegistry:
    """Registry holding every built-in adapter in detection priority order."""

    registry = FormatRegistry()
    for name, adapter in build_default_adapters(sniff_bytes).items():
        registry.register_adapter(name, adapter)
    return registry
