"""Shared conversion contract for per-format adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
import stat
from typing import ClassVar, Protocol, runtime_checkable

from versicle.errors import (
    MalformedIR,
    OutputWriteFailed,
    SourceUnreadable,
    UnsupportedOperation,
)
from versicle.ir.codec import IR_SUFFIX, attach_raw_payload, dumps_corpus, loads_corpus
from versicle.ir.models import Corpus, LossClass, LossReport
from versicle.ir.normalization import sanitize_id
from versicle.ir.validate import validate_corpus
from versicle.store import ContentStore, write_atomic
from versicle.structure.emitter import Emission, StructuralEmitter

logger = logging.getLogger(__name__)

IR_FORMAT = "IR"
DEFAULT_FILE_STEM = "corpus"


def output_stem(corpus: Corpus, fallback: str = DEFAULT_FILE_STEM) -> str:
    """File stem for a corpus; content-declared ids never name a path outside the output dir."""

    return sanitize_id(corpus.id) or sanitize_id(fallback) or DEFAULT_FILE_STEM


@dataclass(slots=True)
class DetectResult:
    detected: bool
    format: str = ""
    reason: str = ""


@dataclass(slots=True)
class IngestResult:
    artifact_id: str
    blob_digest: str
    size_bytes: int
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class EnumerateEntry:
    path: str
    size_bytes: int
    is_dir: bool = False


@dataclass(slots=True)
class EnumerateResult:
    entries: list[EnumerateEntry] = field(default_factory=list)


@dataclass(slots=True)
class ExtractResult:
    ir_path: Path
    loss_class: LossClass
    loss_report: LossReport


@dataclass(slots=True)
class EmitResult:
    output_path: Path
    format: str
    loss_class: LossClass
    loss_report: LossReport


@dataclass(frozen=True, slots=True)
class IRSupport:
    """What an adapter can do with the IR and at which fidelity."""

    can_extract: bool
    can_emit: bool
    loss_class: LossClass | None = None
    formats: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class PluginManifest:
    plugin_id: str
    version: str
    kind: str
    inputs: tuple[str, ...]
    outputs: tuple[str, ...]
    ir_support: IRSupport

    def to_dict(self) -> dict[str, object]:
        support = self.ir_support
        return {
            "plugin_id": self.plugin_id,
            "version": self.version,
            "kind": self.kind,
            "inputs": list(self.inputs),
            "outputs": list(self.outputs),
            "ir_support": {
                "can_extract": support.can_extract,
                "can_emit": support.can_emit,
                "loss_class": support.loss_class.value if support.loss_class else None,
                "formats": list(support.formats),
            },
        }


@runtime_checkable
class FormatAdapter(Protocol):
    """Protocol that every format adapter must implement."""

    name: str

    @property
    def manifest(self) -> PluginManifest:
        """Static description of the adapter's capabilities."""

    def detect(self, path: Path) -> DetectResult:
        """Decide whether the file at ``path`` is in this format; never raises for I/O."""

    def ingest(self, path: Path, output_dir: Path) -> IngestResult:
        """Store the raw bytes content-addressed under ``output_dir``."""

    def enumerate(self, path: Path) -> EnumerateResult:
        """List the entries of an artifact."""

    def extract_ir(self, path: Path, output_dir: Path) -> ExtractResult:
        """Parse the source into an IR corpus and persist it under ``output_dir``."""

    def emit_native(self, ir_path: Path, output_dir: Path) -> EmitResult:
        """Render a persisted IR corpus back into this format."""


class BaseFormatAdapter:
    """Common plumbing for the five contract operations.

    Subclasses declare their identity through class attributes and implement
    ``_recognize`` (detection on the file bytes) and ``_build_corpus`` (native
    bytes to populated corpus). Emission goes through a
    :class:`StructuralEmitter` unless ``_emit`` is overridden.
    """

    name: ClassVar[str] = ""
    version: ClassVar[str] = "1.0.0"
    kind: ClassVar[str] = "format"
    inputs: ClassVar[tuple[str, ...]] = ()
    output_suffix: ClassVar[str] = ""
    raw_key: ClassVar[str | None] = None
    extract_loss: ClassVar[LossClass | None] = LossClass.L0
    emit_loss: ClassVar[LossClass | None] = LossClass.L1
    extract_warnings: ClassVar[tuple[str, ...]] = ()

    def __init__(self, sniff_bytes: int = 4096) -> None:
        self._sniff_bytes = sniff_bytes
        self._emitter = self._build_emitter()

    @property
    def manifest(self) -> PluginManifest:
        return PluginManifest(
            plugin_id=f"format.{self.name}",
            version=self.version,
            kind=self.kind,
            inputs=self.inputs,
            outputs=(f"artifact.kind:{self.name}",),
            ir_support=IRSupport(
                can_extract=self.extract_loss is not None,
                can_emit=self.emit_loss is not None,
                loss_class=self.extract_loss,
                formats=(self.name,),
            ),
        )

    def detect(self, path: Path) -> DetectResult:
        source = Path(path)
        try:
            info = source.stat()
        except OSError as exc:
            return DetectResult(detected=False, reason=f"cannot stat: {exc}")
        if stat.S_ISDIR(info.st_mode):
            return DetectResult(detected=False, reason="path is a directory, not a file")

        try:
            data = source.read_bytes()
        except OSError as exc:
            return DetectResult(detected=False, reason=f"cannot read: {exc}")

        result = self._recognize(source, data)
        if result.detected:
            logger.debug("Detected %s format for %s: %s", self.name, source, result.reason)
        return result

    def ingest(self, path: Path, output_dir: Path) -> IngestResult:
        source = Path(path)
        data = self._read_source(source)
        stored = ContentStore(output_dir).ingest(data)
        artifact_id = self._artifact_id(data, source) or source.stem
        logger.debug("Ingested %s as %s (%s)", source, artifact_id, stored.digest)
        return IngestResult(
            artifact_id=artifact_id,
            blob_digest=stored.digest,
            size_bytes=stored.size_bytes,
            metadata={"original_name": source.name, "format": self.name},
        )

    def enumerate(self, path: Path) -> EnumerateResult:
        source = Path(path)
        try:
            info = source.stat()
        except OSError as exc:
            raise SourceUnreadable(f"failed to stat: {exc}", source) from exc
        return EnumerateResult(
            entries=[EnumerateEntry(path=source.name, size_bytes=info.st_size, is_dir=stat.S_ISDIR(info.st_mode))]
        )

    def extract_ir(self, path: Path, output_dir: Path) -> ExtractResult:
        source = Path(path)
        if self.extract_loss is None:
            raise UnsupportedOperation(f"{self.name} format does not support IR extraction", source)

        data = self._read_source(source)
        corpus = self._build_corpus(data, source)
        corpus.source_format = self.name
        corpus.loss_class = self.extract_loss
        if self.raw_key:
            attach_raw_payload(corpus.attributes, self.raw_key, data)

        ir_path = Path(output_dir) / f"{output_stem(corpus, source.stem)}{IR_SUFFIX}"
        self._write_output(ir_path, dumps_corpus(corpus).encode("utf-8"), "failed to write IR")
        logger.debug(
            "Extracted %d documents, %d blocks from %s into %s",
            len(corpus.documents),
            corpus.block_count(),
            source,
            ir_path,
        )

        report = LossReport(
            source_format=self.name,
            target_format=IR_FORMAT,
            loss_class=self.extract_loss,
            warnings=list(self.extract_warnings),
        )
        return ExtractResult(ir_path=ir_path, loss_class=self.extract_loss, loss_report=report)

    def emit_native(self, ir_path: Path, output_dir: Path) -> EmitResult:
        source = Path(ir_path)
        if self.emit_loss is None:
            raise UnsupportedOperation(f"{self.name} format does not support native emission", source)

        corpus = self.load_ir(source)
        emission = self._emit(corpus)
        output_path = Path(output_dir) / f"{output_stem(corpus)}{self.output_suffix}"
        self._write_output(output_path, emission.payload, "failed to write output")
        logger.debug("Emitted %s (%s) from %s", output_path, emission.loss_class.value, source)

        report = LossReport(
            source_format=IR_FORMAT,
            target_format=self.name,
            loss_class=emission.loss_class,
            warnings=list(emission.warnings),
            lost_elements=list(emission.lost_elements),
        )
        return EmitResult(
            output_path=output_path,
            format=self.name,
            loss_class=emission.loss_class,
            loss_report=report,
        )

    def load_ir(self, ir_path: Path) -> Corpus:
        """Read and validate a persisted corpus."""

        try:
            text = ir_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceUnreadable(f"failed to read file: {exc}", ir_path) from exc

        try:
            corpus = loads_corpus(text)
        except MalformedIR as exc:
            exc.path = ir_path
            raise

        problems = validate_corpus(corpus)
        if problems:
            raise MalformedIR("invalid IR", ir_path, problems=problems)
        return corpus

    def _build_emitter(self) -> StructuralEmitter | None:
        return None

    def _emit(self, corpus: Corpus) -> Emission:
        if self._emitter is None:
            raise UnsupportedOperation(f"{self.name} format does not support native emission")
        return self._emitter.emit(corpus)

    def _recognize(self, path: Path, data: bytes) -> DetectResult:
        raise NotImplementedError

    def _build_corpus(self, data: bytes, path: Path) -> Corpus:
        raise NotImplementedError

    def _artifact_id(self, data: bytes, path: Path) -> str | None:
        return None

    def _head(self, data: bytes) -> bytes:
        return data[: self._sniff_bytes]

    def _read_source(self, path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as exc:
            raise SourceUnreadable(f"failed to read file: {exc}", path) from exc

    def _write_output(self, path: Path, payload: bytes, failure: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            write_atomic(path, payload)
        except OSError as exc:
            raise OutputWriteFailed(f"{failure}: {exc}", path) from exc
