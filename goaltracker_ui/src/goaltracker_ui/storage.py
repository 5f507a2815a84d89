# src/goaltracker_ui/storage.py

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class KeyValueStorage(ABC):
    """Minimal persisted key/value store, the local-storage of this client."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...


class MemoryStorage(KeyValueStorage):
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key, default=None):
        return self._data.get(key, default)

    def set(self, key, value):
        self._data[key] = value

    def remove(self, key):
        self._data.pop(key, None)


class JsonFileStorage(KeyValueStorage):
    """
    Keeps every key in one JSON object on disk. Writes go to a temporary file
    that replaces the original, so a crash never leaves half a document.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._data = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable storage file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring storage file %s: top level is not an object", self.path)
            return {}
        return data

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key, default=None):
        return self._data.get(key, default)

    def set(self, key, value):
        self._data[key] = value
        self._flush()

    def remove(self, key):
        if key in self._data:
            del self._data[key]
            self._flush()


def storage_for(path: Optional[Path]) -> KeyValueStorage:
    return JsonFileStorage(path) if path else MemoryStorage()
