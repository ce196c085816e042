"""
Local filesystem artifact store.

Writes each artifact to ``<root>/<key>`` via a temporary file and an atomic
rename, so a concurrent reader never sees a half-written batch.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from voucher_kernel.exceptions import ArtifactNotFoundError, StorageError
from voucher_kernel.logging_config import get_logger
from voucher_kernel.storage.base import decode_lines

logger = get_logger("storage.local")


class LocalArtifactStore:
    """ArtifactStore rooted at a directory."""

    def __init__(self, root: Path | str):
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise StorageError(key, "invalid artifact key")
        return self._root / key

    def put(self, data: bytes, content_type: str, key: str) -> str:
        path = self._path_for(key)
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._root, prefix=".upload-")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(key, str(exc)) from exc

        logger.debug(
            "artifact_stored",
            extra={"key": key, "content_type": content_type, "size": len(data)},
        )
        return path.resolve().as_uri()

    def get_lines(self, key: str) -> list[str]:
        path = self._path_for(key)
        try:
            data = path.read_bytes()
        except FileNotFoundError as exc:
            raise ArtifactNotFoundError(key) from exc
        except OSError as exc:
            raise StorageError(key, str(exc)) from exc
        try:
            return decode_lines(data)
        except UnicodeDecodeError as exc:
            raise StorageError(key, f"artifact is not valid UTF-8: {exc}") from exc
