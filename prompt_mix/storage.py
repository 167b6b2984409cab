"""
Local Storage — string key/value slots persisted to a single JSON file.

The file holds one JSON object mapping slot keys to string values, e.g.

    {
      "prompt_mix_library_v1": "[{\"id\": \"1\", ...}]",
      "prompt_mix_library_name": "My Library",
      "theme": "dark"
    }

Values are opaque strings; callers encode/decode their own payloads.
Every write replaces the whole file via a ``.tmp`` sibling and
``Path.replace()`` so a crash mid-write never leaves a truncated file.

``MemoryStorage`` offers the same interface without touching disk.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Optional

from loguru import logger

from .errors import StorageWriteError


class MemoryStorage:
    """
    Dictionary-backed storage.

    ``quota`` caps the total number of characters across keys and values;
    a write that would exceed it raises ``StorageWriteError`` and leaves the
    storage unchanged.
    """

    def __init__(self, quota: Optional[int] = None) -> None:
        self._items: dict[str, str] = {}
        self.quota = quota

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.quota is not None:
            used = sum(len(k) + len(v) for k, v in self._items.items() if k != key)
            if used + len(key) + len(value) > self.quota:
                raise StorageWriteError(
                    f"Storage quota exceeded writing '{key}' ({self.quota} chars)"
                )
        self._items[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"MemoryStorage({len(self._items)} keys)"


class LocalStorage(MemoryStorage):
    """Storage persisted to ``path``. Loaded lazily on first access."""

    def __init__(self, path: Path, quota: Optional[int] = None) -> None:
        super().__init__(quota=quota)
        self.path = Path(path)
        self._loaded = False
        self._lock = threading.Lock()  # guards _items across handler threads

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        if not self.path.exists():
            logger.debug(f"LocalStorage: no slot file at {self.path}, starting empty")
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning(f"LocalStorage: could not read {self.path}: {exc}")
            return
        if not isinstance(data, dict):
            logger.warning(
                f"LocalStorage: {self.path} does not hold a JSON object, ignoring it"
            )
            return
        self._items = {str(k): v for k, v in data.items() if isinstance(v, str)}
        logger.debug(f"LocalStorage: loaded {len(self._items)} keys from {self.path}")

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            self._ensure_loaded()
            return super().get_item(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._ensure_loaded()
            previous = self._items.get(key)
            super().set_item(key, value)
            try:
                self._flush()
            except StorageWriteError:
                if previous is None:
                    self._items.pop(key, None)
                else:
                    self._items[key] = previous
                raise

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._ensure_loaded()
            if key not in self._items:
                return
            previous = self._items.pop(key)
            try:
                self._flush()
            except StorageWriteError:
                self._items[key] = previous
                raise

    def keys(self) -> list[str]:
        with self._lock:
            self._ensure_loaded()
            return super().keys()

    def clear(self) -> None:
        with self._lock:
            self._loaded = True
            self._items = {}
            self._flush()

    # ------------------------------------------------------------------
    # Flush
    # ------------------------------------------------------------------

    def _flush(self) -> None:
        """Atomically write every slot to disk."""
        tmp = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(
                json.dumps(self._items, indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            tmp.replace(self.path)
        except OSError as exc:
            raise StorageWriteError(f"Could not write {self.path}: {exc}") from exc

    def __len__(self) -> int:
        return len(self.keys())

    def __repr__(self) -> str:
        status = f"{len(self._items)} keys" if self._loaded else "not loaded"
        return f"LocalStorage({status}, path={self.path})"
