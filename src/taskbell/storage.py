# src/taskbell/storage.py

"""
File-backed key-value store.

Each key is one JSON file under data_dir. Writes go to a temp file first and
are moved into place with os.replace, so a crash mid-write leaves the previous
payload intact.
"""

from __future__ import annotations

import contextlib
import logging
import os
import re
from pathlib import Path

logger = logging.getLogger(__name__)

_SAFE_KEY_RE = re.compile(r"[^A-Za-z0-9_.-]+")


class FileKeyValueStore:
    def __init__(self, data_dir: str | Path = ".local/taskbell") -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        logger.info("FileKeyValueStore ready dir=%s", self._data_dir)

    def _path_for(self, key: str) -> Path:
        safe = _SAFE_KEY_RE.sub("_", key.strip()) or "default"
        return self._data_dir / f"{safe}.json"

    def get(self, key: str) -> str | None:
        path = self._path_for(key)
        if not path.exists():
            return None
        return path.read_text("utf-8")

    def put(self, key: str, value: str) -> None:
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, "utf-8")
        os.replace(tmp, path)
        with contextlib.suppress(Exception):
            # Best-effort: task notes may be personal, keep the file private on disk.
            os.chmod(path, 0o600)
        logger.debug("Stored key=%s bytes=%d path=%s", key, len(value), path)


class MemoryKeyValueStore:
    """In-process store; nothing survives the process. Used by tests and --ephemeral runs."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def put(self, key: str, value: str) -> None:
        self.data[key] = value
