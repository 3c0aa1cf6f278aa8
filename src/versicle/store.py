"""Content-addressable blob store and atomic file writes."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
import re
import tempfile

from versicle.errors import SourceUnreadable, StoreUnwritable, StoreWriteFailed
from versicle.ir.normalization import sha256_hex

logger = logging.getLogger(__name__)

_DIGEST_RE = re.compile(r"^[0-9a-f]{64}$")


def write_atomic(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` through a sibling temp file and ``os.replace``.

    Readers never observe a partially written file; on failure the temp file is
    removed and the original error propagates.
    """

    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            logger.debug("Could not remove temp file %s", tmp_path)
        raise


@dataclass(frozen=True, slots=True)
class StoredBlob:
    """Digest, size and location of one stored payload."""

    digest: str
    size_bytes: int
    path: Path


class ContentStore:
    """Persist byte payloads under ``<root>/<digest[:2]>/<digest>``.

    Writes are create-if-absent: an object already present with the expected
    size is left alone, otherwise the bytes are renamed into place atomically.
    Concurrent writers of the same payload therefore converge on one intact
    object without locking.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def blob_path(self, digest: str) -> Path:
        if not _DIGEST_RE.match(digest):
            raise ValueError(f"Invalid SHA-256 digest: {digest!r}")
        return self._root / digest[:2] / digest

    def exists(self, digest: str) -> bool:
        return self.blob_path(digest).is_file()

    def read(self, digest: str) -> bytes:
        path = self.blob_path(digest)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise SourceUnreadable(f"failed to read blob: {exc}", path) from exc

    def ingest(self, data: bytes) -> StoredBlob:
        """Store ``data`` and return its digest and size."""

        digest = sha256_hex(data)
        blob_dir = self._root / digest[:2]
        try:
            blob_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreUnwritable(f"failed to create blob dir: {exc}", blob_dir) from exc

        path = blob_dir / digest
        if self._is_complete(path, len(data)):
            logger.debug("Blob %s already present, skipping write", digest)
            return StoredBlob(digest=digest, size_bytes=len(data), path=path)

        try:
            write_atomic(path, data)
        except OSError as exc:
            raise StoreWriteFailed(f"failed to write blob: {exc}", path) from exc

        logger.debug("Stored blob %s (%d bytes)", digest, len(data))
        return StoredBlob(digest=digest, size_bytes=len(data), path=path)

    def ingest_file(self, path: str | Path) -> StoredBlob:
        source = Path(path)
        try:
            data = source.read_bytes()
        except OSError as exc:
            raise SourceUnreadable(f"failed to read file: {exc}", source) from exc
        return self.ingest(data)

    def _is_complete(self, path: Path, size: int) -> bool:
        try:
            return path.is_file() and path.stat().st_size == size
        except OSError:
            return False
