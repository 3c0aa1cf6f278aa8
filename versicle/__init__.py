"""Checkout shim so `python -m versicle.cli.<command>` works from the repository root."""

from __future__ import annotations

from pathlib import Path

_ROOT = Path(__file__).resolve().parent.parent
_SRC_PACKAGE = _ROOT / "src" / "versicle"

if _SRC_PACKAGE.is_dir():
    __path__.append(str(_SRC_PACKAGE))
