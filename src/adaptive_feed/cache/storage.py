"""Key-value storage backends for the cache layer.

Two backends implement the same small surface:

    get_item(key) -> str | None
    set_item(key, value)
    remove_item(key)
    multi_remove(keys)
    get_all_keys() -> list[str]

MemoryStorage keeps everything in a dict (tests, short-lived processes).
JsonFileStorage persists a flat JSON index on disk:

    <cache_dir>/
        index.json      # {"cache:NT:magazine_cover:{...}": "<serialized entry>", ...}
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, Optional, Protocol, runtime_checkable

from adaptive_feed.errors import CacheError

logger = logging.getLogger("cache")


@runtime_checkable
class KeyValueStorage(Protocol):
    """Durable string store the cache writes through."""

    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def multi_remove(self, keys: Iterable[str]) -> None: ...

    def get_all_keys(self) -> list[str]: ...


class MemoryStorage:
    """In-process storage backend."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def multi_remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    def get_all_keys(self) -> list[str]:
        return list(self._data)


class JsonFileStorage:
    """Storage backend persisted as a single JSON index file."""

    def __init__(self, cache_dir: Path):
        """Initialize storage.

        Args:
            cache_dir: Directory holding index.json. Created if missing.
        """
        self.cache_dir = Path(cache_dir)
        self.index_path = self.cache_dir / "index.json"
        self._index: dict[str, str] = {}
        self._load_index()

    def _load_index(self) -> None:
        """Load index from disk."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        if self.index_path.exists():
            try:
                with open(self.index_path, "r", encoding="utf-8") as f:
                    loaded = json.load(f)
                self._index = loaded if isinstance(loaded, dict) else {}
            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"CACHE_INDEX_CORRUPT | {self.index_path} | {e}")
                self._index = {}
        else:
            self._index = {}

    def _save_index(self) -> None:
        """Write the index atomically (temp file + replace).

        Raises:
            CacheError: If the index could not be written.
        """
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.cache_dir, suffix=".tmp")
        except OSError as e:
            raise CacheError(f"cannot write {self.index_path}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._index, f, indent=2)
            os.replace(tmp_path, self.index_path)
        except OSError as e:
            Path(tmp_path).unlink(missing_ok=True)
            raise CacheError(f"cannot write {self.index_path}: {e}") from e
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> Optional[str]:
        return self._index.get(key)

    def set_item(self, key: str, value: str) -> None:
        previous = self._index.get(key)
        self._index[key] = value
        try:
            self._save_index()
        except CacheError:
            if previous is None:
                self._index.pop(key, None)
            else:
                self._index[key] = previous
            raise

    def remove_item(self, key: str) -> None:
        if self._index.pop(key, None) is not None:
            self._save_index()

    def multi_remove(self, keys: Iterable[str]) -> None:
        removed = False
        for key in keys:
            removed = self._index.pop(key, None) is not None or removed
        if removed:
            self._save_index()

    def get_all_keys(self) -> list[str]:
        return list(self._index)
