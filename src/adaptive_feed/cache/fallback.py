"""Stale-on-error composition for cached fetches.

The cache itself only enforces TTLs. This helper layers the read-through and
outage policy on top:

1. Fresh cache hit -> return it, no network.
2. Miss -> await the fetch, store the result.
3. Fetch raised -> return the last stored value even if expired.
4. Nothing stored at all -> re-raise the fetch error.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from adaptive_feed.cache.service import CacheService

logger = logging.getLogger("cache")

T = TypeVar("T")


async def fetch_with_fallback(
    cache: CacheService,
    name: str,
    fetch: Callable[[], Awaitable[T]],
    params: Optional[dict[str, Any]] = None,
) -> T:
    """Read-through fetch with stale fallback.

    Args:
        cache: Cache to read from and write to.
        name: Logical cache name (selects the TTL).
        fetch: Zero-argument coroutine function performing the network call.
        params: Parameters distinguishing entries of the same name.

    Returns:
        Fresh cached value, newly fetched value, or stale value on failure.

    Raises:
        Whatever ``fetch`` raised, when no cached value exists at all.
    """
    cached = cache.get(name, params)
    if cached is not None:
        logger.debug(f"CACHE_HIT | {name} | {params or {}}")
        return cached

    try:
        value = await fetch()
    except Exception as e:
        stale = cache.get(name, params, allow_stale=True)
        if stale is not None:
            logger.warning(f"CACHE_STALE_FALLBACK | {name} | {params or {}} | {e}")
            return stale
        raise

    cache.set(name, value, params)
    return value
