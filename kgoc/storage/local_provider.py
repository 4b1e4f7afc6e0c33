"""
Local key-value mirror persisted to a single JSON file.
Used as the fallback whenever the remote document store is unreachable.
"""
import json
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional

from .provider import KeyValueStore, StoreError


class LocalKeyValueStore(KeyValueStore):
    """File-backed key-value store with string keys and string values."""

    def __init__(self, path: str = "var/local_store.json"):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = f.read()
        except OSError as e:
            raise StoreError("local-storage-error", f"Cannot read {self.path}: {e}")
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise StoreError("local-storage-error", f"Corrupt local store {self.path}: {e}")
        if not isinstance(data, dict):
            raise StoreError("local-storage-error", f"Unexpected local store layout in {self.path}")
        return data

    def _save(self, data: Dict[str, str]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp, self.path)
        except OSError as e:
            raise StoreError("local-storage-error", f"Cannot write {self.path}: {e}")

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StoreError("local-storage-error", "Local store values must be strings")
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def remove_item(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._save(data)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._load().keys())

    def clear(self) -> None:
        with self._lock:
            self._save({})
