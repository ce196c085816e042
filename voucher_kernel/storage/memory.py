"""In-memory artifact store for tests."""

from __future__ import annotations

import threading

from voucher_kernel.exceptions import ArtifactNotFoundError
from voucher_kernel.storage.base import decode_lines


class InMemoryArtifactStore:
    """ArtifactStore keeping artifacts in a dict."""

    def __init__(self):
        self._lock = threading.Lock()
        self.artifacts: dict[str, tuple[bytes, str]] = {}

    def put(self, data: bytes, content_type: str, key: str) -> str:
        with self._lock:
            self.artifacts[key] = (bytes(data), content_type)
        return f"memory://{key}"

    def get_lines(self, key: str) -> list[str]:
        with self._lock:
            stored = self.artifacts.get(key)
        if stored is None:
            raise ArtifactNotFoundError(key)
        return decode_lines(stored[0])

    def replace(self, key: str, data: bytes) -> None:
        """Overwrite an artifact's bytes, keeping its content type."""
        with self._lock:
            if key not in self.artifacts:
                raise ArtifactNotFoundError(key)
            self.artifacts[key] = (bytes(data), self.artifacts[key][1])
