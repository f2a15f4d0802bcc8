"""Runtime paths for one app instance.

Config and logs live beside the working directory. Uploads and the JSON
snapshots follow ``data_dir``, which config.json may point elsewhere.
Services receive this object instead of individual path strings.
"""

from __future__ import annotations

import logging
import os


def _usable_dir(path: str) -> bool:
    return bool(path) and os.path.isdir(path) and os.access(path, os.W_OK)


class AppContext:
    def __init__(self, *, cwd: str, data_dir: str, config_path: str) -> None:
        self._cwd = cwd
        self._data_dir = data_dir
        self._config_path = config_path

    @classmethod
    def resolve(cls, cwd: str, config_path: str, config: dict) -> "AppContext":
        """Pick ``config["data_dir"]`` when it is an existing writable directory."""
        logger = logging.getLogger("insight.boot")
        default_data_dir = os.path.join(cwd, "data")
        custom = config.get("data_dir") or ""
        if _usable_dir(custom):
            logger.info("Boot: using custom data_dir=%s", custom)
            return cls(cwd=cwd, data_dir=custom, config_path=config_path)
        if custom:
            logger.warning(
                "Boot: custom data_dir=%s is invalid or not writable, falling back to %s",
                custom, default_data_dir,
            )
        return cls(cwd=cwd, data_dir=default_data_dir, config_path=config_path)

    @property
    def data_dir(self) -> str:
        return self._data_dir

    @property
    def uploads_dir(self) -> str:
        return os.path.join(self._data_dir, "uploads")

    @property
    def config_path(self) -> str:
        return self._config_path

    @property
    def logs_dir(self) -> str:
        return os.path.join(self._cwd, "logs")

    def ensure_dirs(self) -> None:
        for d in (self.data_dir, self.uploads_dir, self.logs_dir):
            os.makedirs(d, exist_ok=True)
