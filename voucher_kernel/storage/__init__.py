"""Batch artifact storage: protocol, local filesystem and in-memory stores."""

from voucher_kernel.storage.base import BATCH_CONTENT_TYPE, ArtifactStore, decode_lines
from voucher_kernel.storage.local import LocalArtifactStore
from voucher_kernel.storage.memory import InMemoryArtifactStore

__all__ = [
    "BATCH_CONTENT_TYPE",
    "ArtifactStore",
    "InMemoryArtifactStore",
    "LocalArtifactStore",
    "decode_lines",
]
