"""
ArtifactStore protocol (storage port for uploaded batch files).

Contract:
    ``put()`` stores raw bytes under a key and returns a location reference.
    ``get_lines()`` returns the stored artifact as text lines (no trailing
    newlines); header handling is the caller's concern.

Failure modes:
    - StorageError for any I/O failure.
    - ArtifactNotFoundError when nothing is stored under the key.

Architecture: voucher_kernel/storage. No DB imports.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

BATCH_CONTENT_TYPE = "text/csv"


@runtime_checkable
class ArtifactStore(Protocol):
    """Protocol for storing and re-reading batch artifacts."""

    def put(self, data: bytes, content_type: str, key: str) -> str:
        """Store ``data`` under ``key``; return the artifact location."""
        ...

    def get_lines(self, key: str) -> list[str]:
        """Return the artifact's text lines."""
        ...


def decode_lines(data: bytes) -> list[str]:
    """Decode UTF-8 (BOM tolerated) and split into lines without terminators."""
    return data.decode("utf-8-sig").splitlines()
