"""Format adapter implementations and contracts."""

from .base import (
    BaseFormatAdapter,
    DetectResult,
    EmitResult,
    EnumerateEntry,
    EnumerateResult,
    ExtractResult,
    FormatAdapter,
    IngestResult,
    IRSupport,
    PluginManifest,
)
from .file_adapter import FileAdapter
from .html_adapter import HTMLAdapter
from .json_adapter import JSONAdapter
from .osis_adapter import OSISAdapter
from .txt_adapter import TXTAdapter
from .zefania_adapter import ZefaniaAdapter


def build_default_adapters(sniff_bytes: int = 4096) -> dict[str, FormatAdapter]:
    """Return the built-in adapters keyed by name, in detection priority order.

    Content-sniffing adapters come before extension-only ones, and the opaque
    ``file`` adapter is last because it accepts any regular file.
    """

    adapters: dict[str, FormatAdapter] = {}
    for adapter in (
        JSONAdapter(sniff_bytes),
        OSISAdapter(sniff_bytes),
        ZefaniaAdapter(sniff_bytes),
        HTMLAdapter(sniff_bytes),
        TXTAdapter(sniff_bytes),
        FileAdapter(sniff_bytes),
    ):
        adapters[adapter.name] = adapter
    return adapters


__all__ = [
    "BaseFormatAdapter",
    "DetectResult",
    "EmitResult",
    "EnumerateEntry",
    "EnumerateResult",
    "ExtractResult",
    "FileAdapter",
    "FormatAdapter",
    "HTMLAdapter",
    "IRSupport",
    "IngestResult",
    "JSONAdapter",
    "OSISAdapter",
    "PluginManifest",
    "TXTAdapter",
    "ZefaniaAdapter",
    "build_default_adapters",
]
