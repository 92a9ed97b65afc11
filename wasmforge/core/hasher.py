"""SHA-256 helpers for artifact content addressing."""

from __future__ import annotations

import hashlib
from pathlib import Path

_CHUNK_SIZE = 1024 * 1024


def sha256_file(path: Path) -> str:
    """Return the SHA-256 hex digest of a file, read in chunks."""
    digest = hashlib.sha256()
    with Path(path).open("rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def digests_match(expected: str, actual: str) -> bool:
    """Case-insensitive comparison of two hex digests."""
    return expected.strip().lower() == actual.strip().lower()
