"""Ad placement policy.

Decides which feed indices carry an ad placeholder: the first ad sits at
``first_ad_position`` and every ``ad_interval`` items after it.
"""

from __future__ import annotations

import logging
from typing import Optional

from adaptive_feed.config import AdSlotConfig
from adaptive_feed.constants import ContentSource
from adaptive_feed.models import ContentItem
from adaptive_feed.sources.base import FetchPrimary

logger = logging.getLogger("ads")


class AdLayoutPolicy:
    """Position arithmetic for ad placeholders."""

    def __init__(self, config: AdSlotConfig | None = None):
        self.config = config or AdSlotConfig()

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def should_show_ad_at(self, index: int) -> bool:
        """Check if an ad belongs at a specific feed index."""
        if not self.config.enabled:
            return False

        first = self.config.first_ad_position
        if index == first:
            return True
        if index > first:
            return (index - first) % self.config.ad_interval == 0
        return False

    def ad_positions(self, total_items: int) -> list[int]:
        """All ad indices below ``total_items``."""
        if not self.config.enabled:
            return []
        return list(range(self.config.first_ad_position, total_items, self.config.ad_interval))

    def next_ad_position(self, index: int) -> Optional[int]:
        """First ad index strictly after ``index``."""
        if not self.config.enabled:
            return None

        first = self.config.first_ad_position
        if index < first:
            return first
        remainder = (index - first) % self.config.ad_interval
        return index + (self.config.ad_interval - remainder)

    def inject(self, items: list[ContentItem]) -> list[ContentItem]:
        """Insert ad placeholders while walking ``items``.

        The index test is applied to the output index, so placeholders end up
        exactly at ``ad_positions()`` of the combined list. Stops adding ads
        once ``max_ads_per_session`` placeholders exist.
        """
        if not self.config.enabled:
            return list(items)

        limit = self.config.max_ads_per_session
        result: list[ContentItem] = []
        ad_counter = 0

        for item in items:
            if self.should_show_ad_at(len(result)) and (limit is None or ad_counter < limit):
                result.append(
                    ContentItem(
                        id=f"native-ad-{ad_counter}",
                        source=ContentSource.AD,
                        is_ad_slot=True,
                        title="Sponsored",
                    )
                )
                ad_counter += 1
            result.append(item)

        logger.debug(
            f"ADS_INJECTED | items:{len(items)} | ads:{ad_counter} | total:{len(result)}"
        )
        return result


def with_ad_layout(fetch_primary: FetchPrimary, policy: AdLayoutPolicy) -> FetchPrimary:
    """Wrap a primary fetch so its result arrives interleaved with ad placeholders."""

    async def _fetch(user_id: Optional[str], is_authenticated: bool) -> list[ContentItem]:
        items = await fetch_primary(user_id, is_authenticated)
        return policy.inject(items)

    return _fetch
