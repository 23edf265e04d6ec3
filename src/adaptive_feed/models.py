"""Data models for feed assembly and ad slot tracking."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Optional

from adaptive_feed.constants import ContentSource, SlotState


@dataclass(frozen=True)
class ContentItem:
    """A unit of feed content.

    Position in the feed is the list index; items are never re-sorted.
    """

    id: str
    source: ContentSource
    is_ad_slot: bool = False
    title: str = ""
    payload: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def is_primary(self) -> bool:
        return self.source == ContentSource.PRIMARY

    @property
    def is_recommended(self) -> bool:
        return self.source == ContentSource.RECOMMENDED

    def composite_id(self, brand_prefix: str) -> str:
        """Id as known to the recommendation service (PREFIX-id)."""
        return f"{brand_prefix}-{self.id}"

    def as_recommended(self) -> "ContentItem":
        """Copy of this item re-tagged as a recommendation."""
        if self.source == ContentSource.RECOMMENDED:
            return self
        return replace(self, source=ContentSource.RECOMMENDED)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "source": self.source.value,
            "is_ad_slot": self.is_ad_slot,
            "title": self.title,
            "payload": self.payload,
        }


@dataclass(frozen=True)
class FeedState:
    """Snapshot of one screen's feed.

    Replaced wholesale on reload; otherwise only ever extended by append.
    """

    items: tuple[ContentItem, ...] = ()
    primary_count: int = 0
    loaded_exclusion_ids: frozenset[str] = frozenset()
    has_more_items: bool = True
    is_loading_more: bool = False
    generation: int = 0

    def __len__(self) -> int:
        return len(self.items)

    @property
    def recommended_ids(self) -> list[str]:
        return [item.id for item in self.items if item.is_recommended]

    @property
    def primary_ids(self) -> list[str]:
        return [item.id for item in self.items if item.is_primary]

    @property
    def ad_positions(self) -> list[int]:
        return [i for i, item in enumerate(self.items) if item.is_ad_slot]

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "items": [item.to_dict() for item in self.items],
            "primary_count": self.primary_count,
            "loaded_exclusion_ids": sorted(self.loaded_exclusion_ids),
            "has_more_items": self.has_more_items,
            "is_loading_more": self.is_loading_more,
            "generation": self.generation,
        }


@dataclass
class AdSlot:
    """Lifecycle record for the ad at one feed position."""

    position: int
    state: SlotState = SlotState.UNLOADED
    handle: Any = None
    load_token: int = 0  # bumped on every load issue and every release
    load_started_at: Optional[datetime] = None
    load_finished_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def load_time_ms(self) -> int | None:
        if self.load_started_at is None or self.load_finished_at is None:
            return None
        delta = self.load_finished_at - self.load_started_at
        return int(delta.total_seconds() * 1000)


@dataclass(frozen=True)
class SlotTransitions:
    """Positions to load and to unload for one viewport position."""

    to_load: tuple[int, ...] = ()
    to_unload: tuple[int, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.to_load and not self.to_unload


@dataclass(frozen=True)
class SlotStats:
    """Counts of slots per state."""

    loaded: int = 0
    loading: int = 0
    failed: int = 0
    unloaded: int = 0
    total: int = 0
    total_loaded_session: int = 0


@dataclass(frozen=True)
class CacheStats:
    """Summary of cache contents."""

    total_keys: int = 0
    total_size: int = 0
    oldest_entry: Optional[datetime] = None
    newest_entry: Optional[datetime] = None
