"""Tests for stale-on-error fetching."""

import pytest
from unittest.mock import AsyncMock

from adaptive_feed.cache import fetch_with_fallback
from adaptive_feed.constants import CACHE_KEY_EDITIONS, DAY_SECONDS, HOUR_SECONDS
from adaptive_feed.errors import SourceFetchError


@pytest.mark.asyncio
async def test_fresh_hit_skips_network(cache):
    cache.set(CACHE_KEY_EDITIONS, ["2024-01"])
    fetch = AsyncMock(return_value=["2024-02"])

    result = await fetch_with_fallback(cache, CACHE_KEY_EDITIONS, fetch)

    assert result == ["2024-01"]
    fetch.assert_not_awaited()


@pytest.mark.asyncio
async def test_miss_fetches_and_stores(cache):
    fetch = AsyncMock(return_value=["2024-02"])

    result = await fetch_with_fallback(cache, CACHE_KEY_EDITIONS, fetch)

    assert result == ["2024-02"]
    assert cache.get(CACHE_KEY_EDITIONS) == ["2024-02"]


@pytest.mark.asyncio
async def test_expired_entry_is_refetched(cache, clock):
    cache.set(CACHE_KEY_EDITIONS, ["old"])
    clock.advance(HOUR_SECONDS + 1)
    fetch = AsyncMock(return_value=["new"])

    assert await fetch_with_fallback(cache, CACHE_KEY_EDITIONS, fetch) == ["new"]
    fetch.assert_awaited_once()


@pytest.mark.asyncio
async def test_failure_serves_stale_value(cache, clock):
    cache.set(CACHE_KEY_EDITIONS, ["old"])
    clock.advance(7 * DAY_SECONDS)
    fetch = AsyncMock(side_effect=SourceFetchError("magazine", "offline"))

    assert await fetch_with_fallback(cache, CACHE_KEY_EDITIONS, fetch) == ["old"]


@pytest.mark.asyncio
async def test_failure_without_cache_raises(cache):
    fetch = AsyncMock(side_effect=SourceFetchError("magazine", "offline"))

    with pytest.raises(SourceFetchError):
        await fetch_with_fallback(cache, CACHE_KEY_EDITIONS, fetch)


@pytest.mark.asyncio
async def test_stale_lookup_respects_params(cache, clock):
    cache.set("magazine_cover", "cover-1", {"edition_id": "1"})
    clock.advance(2 * DAY_SECONDS)
    fetch = AsyncMock(side_effect=RuntimeError("offline"))

    with pytest.raises(RuntimeError):
        await fetch_with_fallback(cache, "magazine_cover", fetch, {"edition_id": "2"})
    assert await fetch_with_fallback(cache, "magazine_cover", fetch, {"edition_id": "1"}) == "cover-1"
