"""Tests for ad placement arithmetic and placeholder injection."""

import pytest
from unittest.mock import AsyncMock

from adaptive_feed.ads import AdLayoutPolicy, with_ad_layout
from adaptive_feed.config import AdSlotConfig
from adaptive_feed.constants import ContentSource
from adaptive_feed.feed import compute_primary_count


@pytest.fixture
def policy():
    return AdLayoutPolicy(AdSlotConfig(first_ad_position=4, ad_interval=5))


class TestPositions:
    @pytest.mark.parametrize("index,expected", [(0, False), (3, False), (4, True), (5, False), (9, True), (14, True), (15, False)])
    def test_should_show_ad_at(self, policy, index, expected):
        assert policy.should_show_ad_at(index) is expected

    def test_ad_positions(self, policy):
        assert policy.ad_positions(15) == [4, 9, 14]
        assert policy.ad_positions(4) == []

    @pytest.mark.parametrize("index,expected", [(0, 4), (4, 9), (6, 9), (9, 14)])
    def test_next_ad_position(self, policy, index, expected):
        assert policy.next_ad_position(index) == expected

    def test_disabled_policy(self):
        policy = AdLayoutPolicy(AdSlotConfig(enabled=False))
        assert policy.should_show_ad_at(4) is False
        assert policy.ad_positions(50) == []
        assert policy.next_ad_position(0) is None


class TestInject:
    def test_placeholders_land_on_ad_positions(self, policy, items):
        result = policy.inject(items("wp", 10))

        assert len(result) == 12
        assert [i for i, item in enumerate(result) if item.is_ad_slot] == [4, 9]
        assert [item.id for item in result if item.is_ad_slot] == ["native-ad-0", "native-ad-1"]
        assert all(item.source == ContentSource.AD for item in result if item.is_ad_slot)
        assert [item.id for item in result if not item.is_ad_slot] == [f"wp-{i}" for i in range(10)]

    def test_session_limit(self, items):
        policy = AdLayoutPolicy(AdSlotConfig(first_ad_position=1, ad_interval=2, max_ads_per_session=1))
        result = policy.inject(items("wp", 10))
        assert [i for i, item in enumerate(result) if item.is_ad_slot] == [1]

    def test_disabled_returns_copy(self, items):
        source = items("wp", 6)
        result = AdLayoutPolicy(AdSlotConfig(enabled=False)).inject(source)
        assert result == source
        assert result is not source

    def test_short_list_gets_no_ads(self, policy, items):
        assert not any(item.is_ad_slot for item in policy.inject(items("wp", 4)))


@pytest.mark.asyncio
async def test_with_ad_layout_wraps_fetch(policy, items):
    fetch = AsyncMock(return_value=items("wp", 6))

    result = await with_ad_layout(fetch, policy)("u1", True)

    fetch.assert_awaited_once_with("u1", True)
    assert result[4].is_ad_slot
    assert compute_primary_count(result) == 7
