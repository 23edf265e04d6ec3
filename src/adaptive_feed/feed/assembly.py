"""Pure helpers for assembling a feed from primary and recommended items."""

from __future__ import annotations

from typing import Iterable, Optional

from adaptive_feed.constants import ContentSource
from adaptive_feed.models import ContentItem


def compute_primary_count(items: Iterable[ContentItem]) -> int:
    """Length of the leading run of primary/ad items before the first recommendation."""
    last_primary_index = -1
    for i, item in enumerate(items):
        if item.source == ContentSource.RECOMMENDED:
            break
        if item.source == ContentSource.PRIMARY or item.is_ad_slot:
            last_primary_index = i
    return last_primary_index + 1


def composite_ids(
    items: Iterable[ContentItem],
    brand_prefix: str,
    source: ContentSource,
) -> list[str]:
    """Composite ids (PREFIX-id) of every non-ad item from one source, in feed order."""
    return [
        item.composite_id(brand_prefix)
        for item in items
        if item.source == source and not item.is_ad_slot
    ]


def mark_recommended(items: Iterable[ContentItem]) -> list[ContentItem]:
    """Re-tag items returned by the recommendation service."""
    return [item.as_recommended() for item in items]


def build_exclusion_list(
    items: Iterable[ContentItem],
    loaded_exclusion_ids: Iterable[str],
    brand_prefix: str,
    max_recommended: Optional[int] = None,
) -> list[str]:
    """Ids the recommendation service must not return again.

    Every primary id is always included. Ids known only from
    ``loaded_exclusion_ids`` come next, then recommended ids in the order
    they were shown. With ``max_recommended`` set, only that many of the
    most recent recommended ids are sent.
    """
    items = list(items)
    primary = composite_ids(items, brand_prefix, ContentSource.PRIMARY)

    shown = list(dict.fromkeys(composite_ids(items, brand_prefix, ContentSource.RECOMMENDED)))
    seen = set(shown)
    recommended = sorted(i for i in loaded_exclusion_ids if i not in seen) + shown

    if max_recommended is not None:
        recommended = recommended[-max_recommended:] if max_recommended > 0 else []

    return primary + recommended
