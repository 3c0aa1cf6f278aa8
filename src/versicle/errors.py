"""Domain errors raised by the conversion pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(slots=True)
class ConversionError(Exception):
    """Base error for I/O, parse and contract failures in a conversion."""

    message: str
    path: Path | None = None

    def __str__(self) -> str:
        if self.path is None:
            return self.message
        return f"{self.message} (path={self.path})"


class SourceUnreadable(ConversionError):
    """The input artifact could not be read or stat'ed."""


class StoreUnwritable(ConversionError):
    """A blob fan-out directory could not be created."""


class StoreWriteFailed(ConversionError):
    """A blob could not be written into the content store."""


class OutputWriteFailed(ConversionError):
    """An IR file or emitted native file could not be written."""


class MalformedInput(ConversionError):
    """The structural envelope of the input could not be parsed."""


@dataclass(slots=True)
class MalformedIR(ConversionError):
    """The persisted IR is not valid JSON or describes an incomplete corpus."""

    problems: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        base = ConversionError.__str__(self)
        if not self.problems:
            return base
        return f"{base}: {'; '.join(self.problems)}"


class UnsupportedOperation(ConversionError):
    """The adapter declares that it cannot perform the requested operation."""


class UnknownFormat(ConversionError):
    """No adapter is registered under the requested name."""
