from __future__ import annotations

import os
import re
import uuid
from abc import ABC, abstractmethod
from typing import Iterable


class StorageError(RuntimeError):
    pass


def sanitize_key(name: str) -> str:
    cleaned = re.sub(r"[^a-zA-Z0-9._-]", "_", os.path.basename(name or ""))
    return cleaned.lstrip(".") or "upload.bin"


def new_storage_key(filename: str) -> str:
    """Mint a collision-free key that keeps the original file extension."""
    _, ext = os.path.splitext(filename or "")
    return f"{uuid.uuid4().hex}{re.sub(r'[^a-z0-9.]', '', ext.lower())}"


class StorageBackend(ABC):
    """Object store holding uploaded meeting files."""

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Store ``data`` under ``key`` and return a locator for it."""
        raise NotImplementedError

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Raises ``StorageError`` when the object is missing or unreadable."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> bool:
        raise NotImplementedError

    def delete_many(self, keys: Iterable[str]) -> bool:
        results = [self.delete(key) for key in keys]
        return bool(results) and all(results)

    @abstractmethod
    def list(self, prefix: str = "") -> list[str]:
        raise NotImplementedError

    @abstractmethod
    def exists(self, key: str) -> bool:
        raise NotImplementedError
