from app.services.storage.base import StorageBackend, StorageError, new_storage_key, sanitize_key
from app.services.storage.local import LocalStorage

__all__ = [
    "LocalStorage",
    "StorageBackend",
    "StorageError",
    "new_storage_key",
    "sanitize_key",
]
