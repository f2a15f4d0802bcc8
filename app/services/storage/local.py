from __future__ import annotations

import logging
import os

from app.services.storage.base import StorageBackend, StorageError, sanitize_key


class LocalStorage(StorageBackend):
    """Stores objects as flat files inside one directory."""

    def __init__(self, root_dir: str, public_prefix: str = "/api/files") -> None:
        self._root_dir = root_dir
        self._public_prefix = public_prefix.rstrip("/")
        self._logger = logging.getLogger("insight.storage.local")
        os.makedirs(self._root_dir, exist_ok=True)

    @property
    def root_dir(self) -> str:
        return self._root_dir

    def path_for(self, key: str) -> str:
        return os.path.join(self._root_dir, sanitize_key(key))

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        path = self.path_for(key)
        temp_path = f"{path}.tmp"
        try:
            with open(temp_path, "wb") as output:
                output.write(data)
            os.replace(temp_path, path)
        except OSError as exc:
            raise StorageError(f"Failed to store {key}: {exc}") from exc
        self._logger.info("Stored %s (%d bytes, %s)", key, len(data), content_type)
        return f"{self._public_prefix}/{os.path.basename(path)}"

    def get(self, key: str) -> bytes:
        try:
            with open(self.path_for(key), "rb") as f:
                return f.read()
        except OSError as exc:
            raise StorageError(f"Failed to read {key}: {exc}") from exc

    def delete(self, key: str) -> bool:
        path = self.path_for(key)
        if not os.path.isfile(path):
            return False
        try:
            os.unlink(path)
        except OSError as exc:
            self._logger.warning("Failed to delete stored file: %s error=%s", path, exc)
            return False
        self._logger.info("Deleted %s", key)
        return True

    def list(self, prefix: str = "") -> list[str]:
        try:
            names = os.listdir(self._root_dir)
        except OSError as exc:
            self._logger.warning("Failed to list storage dir: %s", exc)
            return []
        return sorted(
            name
            for name in names
            if name.startswith(prefix)
            and not name.endswith(".tmp")
            and os.path.isfile(os.path.join(self._root_dir, name))
        )

    def exists(self, key: str) -> bool:
        return os.path.isfile(self.path_for(key))
