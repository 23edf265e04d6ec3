"""Shared test fixtures and configuration.

Provides item builders, a clock-controlled cache and a scriptable ad
provider. Ad loads are driven by futures so tests decide exactly when (and
whether) each load resolves.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import pytest

from adaptive_feed.cache import CacheService, MemoryStorage
from adaptive_feed.config import AdSlotConfig, CacheConfig
from adaptive_feed.constants import ContentSource
from adaptive_feed.models import ContentItem


def make_items(prefix: str, count: int, source: ContentSource = ContentSource.PRIMARY) -> list[ContentItem]:
    """Create ``count`` items with ids ``<prefix>-0`` .. ``<prefix>-<count-1>``."""
    return [ContentItem(id=f"{prefix}-{i}", source=source, title=f"{prefix} {i}") for i in range(count)]


def make_ad(n: int = 0) -> ContentItem:
    return ContentItem(id=f"native-ad-{n}", source=ContentSource.AD, is_ad_slot=True)


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingRecommender:
    """Recommendation source backed by a finite pool.

    Records every call's arguments and can be told to fail or to return
    fewer items than requested.
    """

    def __init__(self, pool_size: int = 100, brand_prefix: str = "NT"):
        self.pool = [f"rec-{i}" for i in range(pool_size)]
        self.brand_prefix = brand_prefix
        self.calls: list[dict[str, Any]] = []
        self.fail_with: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None

    async def __call__(
        self, count: int, exclude_ids: list[str], user_id: Optional[str], is_authenticated: bool
    ) -> list[ContentItem]:
        self.calls.append(
            {
                "count": count,
                "exclude_ids": list(exclude_ids),
                "user_id": user_id,
                "is_authenticated": is_authenticated,
            }
        )
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        excluded = set(exclude_ids)
        available = [i for i in self.pool if f"{self.brand_prefix}-{i}" not in excluded]
        return [ContentItem(id=i, source=ContentSource.PRIMARY) for i in available[:count]]


class FakeAdProvider:
    """Ad provider whose loads resolve only when the test says so."""

    def __init__(self) -> None:
        self.pending: dict[int, list[asyncio.Future]] = {}
        self.load_calls: list[int] = []
        self.released: list[Any] = []
        self.auto_resolve = False
        self.fail_positions: set[int] = set()

    async def load(self, position: int) -> Any:
        self.load_calls.append(position)
        if position in self.fail_positions:
            raise RuntimeError(f"no fill at {position}")
        if self.auto_resolve:
            return f"ad-{position}"
        future = asyncio.get_running_loop().create_future()
        self.pending.setdefault(position, []).append(future)
        return await future

    def release(self, handle: Any) -> None:
        self.released.append(handle)

    def resolve(self, position: int, handle: Any = None) -> None:
        future = self.pending[position].pop(0)
        future.set_result(handle if handle is not None else f"ad-{position}")

    def fail(self, position: int, error: Exception) -> None:
        self.pending[position].pop(0).set_exception(error)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> CacheService:
    """Memory-backed cache on a fake clock."""
    return CacheService(MemoryStorage(), CacheConfig(), brand="NT", clock=clock)


@pytest.fixture
def recommender() -> RecordingRecommender:
    return RecordingRecommender()


@pytest.fixture
def ad_provider() -> FakeAdProvider:
    return FakeAdProvider()


@pytest.fixture
def ad_config() -> AdSlotConfig:
    return AdSlotConfig(preload_distance=2, unload_distance=3, max_cached_ads=None)


@pytest.fixture
def items():
    """Factory fixture: ``items("wp", 3)`` -> three primary items."""
    return make_items


@pytest.fixture
def ad_item():
    return make_ad
