"""Text normalization, hashing and escaping helpers shared by parsers and emitters."""

from __future__ import annotations

import hashlib
import re

_WHITESPACE_RE = re.compile(r"\s+")
_UNSAFE_ID_RE = re.compile(r"[^A-Za-z0-9]")

# Order matters: "&" must be replaced before the entities that introduce it.
_MARKUP_ENTITIES: tuple[tuple[str, str], ...] = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
)


def normalize_whitespace(text: str) -> str:
    """Collapse repeated whitespace and trim boundaries."""

    return _WHITESPACE_RE.sub(" ", text).strip()


def sha256_hex(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()


def content_hash(text: str) -> str:
    """Digest of a content block's text, used as its integrity anchor."""

    return sha256_hex(text.encode("utf-8"))


def escape_markup(text: str) -> str:
    """Replace the five markup-significant characters with named references."""

    for char, entity in _MARKUP_ENTITIES:
        text = text.replace(char, entity)
    return text


def sanitize_id(value: str) -> str:
    """Replace every non-alphanumeric character with ``-`` and trim the dashes.

    The result is safe to use as a single path component.
    """

    return _UNSAFE_ID_RE.sub("-", value).strip("-")
