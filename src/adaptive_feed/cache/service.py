"""TTL cache addressed by logical name plus parameters.

Every entry is stored as a JSON envelope:

    {"data": <value>, "timestamp": <epoch seconds>, "version": "1", "brand": "NT"}

under the key ``cache:<BRAND>:<name>[:<sorted params json>]``. TTLs are looked up
per logical name, so editions, covers, PDFs and articles expire independently.

Reads never raise. Every storage failure is converted to CacheError at the
storage boundary, then logged and reported as a miss; writes that fail are
logged and dropped.
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime
from typing import Any, Callable, Optional

from adaptive_feed.cache.storage import KeyValueStorage
from adaptive_feed.config import CacheConfig
from adaptive_feed.constants import CACHE_KEY_PREFIX, DEFAULT_BRAND
from adaptive_feed.errors import CacheError
from adaptive_feed.models import CacheStats

logger = logging.getLogger("cache")


def make_cache_key(brand: str, name: str, params: Optional[dict[str, Any]] = None) -> str:
    """Compose the storage key for a logical name and its parameters.

    Parameters are serialized with sorted keys so that equal dicts always
    produce the same key regardless of insertion order.
    """
    key = f"{CACHE_KEY_PREFIX}:{brand}:{name}"
    if params:
        key += ":" + json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)
    return key


class CacheService:
    """Brand-scoped TTL cache over a KeyValueStorage.

    Usage:
        cache = CacheService(MemoryStorage(), CacheConfig(), brand="NT")
        cache.set("magazine_cover", url, {"edition_id": "2024-01"})
        cache.get("magazine_cover", {"edition_id": "2024-01"})
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        config: CacheConfig | None = None,
        brand: str = DEFAULT_BRAND,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.config = config or CacheConfig()
        self.brand = brand.upper()
        self._clock = clock

    # =========================================================================
    # Core operations
    # =========================================================================

    def get(
        self,
        name: str,
        params: Optional[dict[str, Any]] = None,
        allow_stale: bool = False,
    ) -> Any | None:
        """Return the cached value, or None on miss.

        Args:
            name: Logical cache name (selects the TTL).
            params: Parameters distinguishing entries of the same name.
            allow_stale: Return the value even if its TTL has elapsed.

        Returns:
            Stored value, or None if absent, expired, unreadable or from
            another cache version.
        """
        key = make_cache_key(self.brand, name, params)
        entry = self._read_entry(key)
        if entry is None:
            return None

        if entry.get("version") != self.config.version:
            logger.debug(f"CACHE_VERSION_MISMATCH | {key} | {entry.get('version')}")
            return None

        if not allow_stale:
            try:
                age = self._clock() - float(entry["timestamp"])
            except (KeyError, TypeError, ValueError):
                return None
            if age > self.config.ttl_for(name):
                logger.debug(f"CACHE_EXPIRED | {key} | age:{int(age)}s")
                return None

        return entry.get("data")

    def set(self, name: str, value: Any, params: Optional[dict[str, Any]] = None) -> None:
        """Store a value stamped with the current time, replacing any prior entry."""
        key = make_cache_key(self.brand, name, params)
        envelope = {
            "data": value,
            "timestamp": self._clock(),
            "version": self.config.version,
            "brand": self.brand,
        }
        try:
            raw = json.dumps(envelope)
        except (TypeError, ValueError) as e:
            logger.warning(f"CACHE_SERIALIZE_ERROR | {key} | {e}")
            return
        try:
            self._storage("set_item", key, raw)
        except CacheError as e:
            logger.warning(f"CACHE_WRITE_ERROR | {key} | {e}")

    def remove(self, name: str, params: Optional[dict[str, Any]] = None) -> None:
        """Delete one entry."""
        key = make_cache_key(self.brand, name, params)
        try:
            self._storage("remove_item", key)
        except CacheError as e:
            logger.warning(f"CACHE_REMOVE_ERROR | {key} | {e}")

    def remove_all(self, name: str) -> int:
        """Delete every parameterization of a logical name.

        Returns:
            Number of entries removed.
        """
        base = make_cache_key(self.brand, name)
        return self._remove_matching(lambda key: key == base or key.startswith(base + ":"))

    # =========================================================================
    # Maintenance
    # =========================================================================

    def clear_all(self) -> int:
        """Delete every cache entry of every brand."""
        prefix = f"{CACHE_KEY_PREFIX}:"
        return self._remove_matching(lambda key: key.startswith(prefix))

    def clear_brand(self, brand: str | None = None) -> int:
        """Delete every cache entry of one brand (defaults to this cache's brand)."""
        prefix = f"{CACHE_KEY_PREFIX}:{(brand or self.brand).upper()}:"
        return self._remove_matching(lambda key: key.startswith(prefix))

    def stats(self) -> CacheStats:
        """Summarize the entries currently held for all brands."""
        prefix = f"{CACHE_KEY_PREFIX}:"
        total_keys = 0
        total_size = 0
        timestamps: list[float] = []

        for key in self._all_keys():
            if not key.startswith(prefix):
                continue
            try:
                raw = self._storage("get_item", key)
            except CacheError as e:
                logger.warning(f"CACHE_READ_ERROR | {key} | {e}")
                continue
            if raw is None:
                continue
            total_keys += 1
            total_size += len(raw.encode("utf-8"))
            try:
                timestamps.append(float(json.loads(raw)["timestamp"]))
            except (ValueError, KeyError, TypeError):
                continue

        return CacheStats(
            total_keys=total_keys,
            total_size=total_size,
            oldest_entry=datetime.fromtimestamp(min(timestamps)) if timestamps else None,
            newest_entry=datetime.fromtimestamp(max(timestamps)) if timestamps else None,
        )

    @staticmethod
    def format_size(num_bytes: int) -> str:
        """Human-readable byte count (e.g. '1.5 KB')."""
        if num_bytes < 1024:
            return f"{num_bytes} B"
        size = float(num_bytes)
        for unit in ("KB", "MB", "GB"):
            size /= 1024
            if size < 1024 or unit == "GB":
                return f"{size:.1f} {unit}"
        return f"{size:.1f} GB"

    # =========================================================================
    # Internals
    # =========================================================================

    def _storage(self, method: str, *args: Any) -> Any:
        """Call a storage method, normalizing any failure to CacheError."""
        try:
            return getattr(self.storage, method)(*args)
        except CacheError:
            raise
        except Exception as e:
            raise CacheError(f"{method} failed: {e}") from e

    def _read_entry(self, key: str) -> dict | None:
        try:
            raw = self._storage("get_item", key)
        except CacheError as e:
            logger.warning(f"CACHE_READ_ERROR | {key} | {e}")
            return None
        if raw is None:
            return None
        try:
            entry = json.loads(raw)
        except (ValueError, TypeError) as e:
            logger.warning(f"CACHE_PARSE_ERROR | {key} | {e}")
            return None
        return entry if isinstance(entry, dict) else None

    def _all_keys(self) -> list[str]:
        try:
            return self._storage("get_all_keys")
        except CacheError as e:
            logger.warning(f"CACHE_KEYS_ERROR | {e}")
            return []

    def _remove_matching(self, predicate: Callable[[str], bool]) -> int:
        keys = [key for key in self._all_keys() if predicate(key)]
        if not keys:
            return 0
        try:
            self._storage("multi_remove", keys)
        except CacheError as e:
            logger.warning(f"CACHE_REMOVE_ERROR | {len(keys)} keys | {e}")
            return 0
        logger.info(f"CACHE_CLEARED | {len(keys)} entries")
        return len(keys)
