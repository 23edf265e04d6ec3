"""Adaptive feed assembly and ad-slot lifecycle engine."""

from adaptive_feed.ads import AdLayoutPolicy, AdSlotLifecycleManager, with_ad_layout
from adaptive_feed.cache import CacheService, JsonFileStorage, MemoryStorage, fetch_with_fallback
from adaptive_feed.config import EngineConfig, EngineSettings, load_engine_config
from adaptive_feed.constants import ContentSource, SlotState
from adaptive_feed.errors import (
    AdaptiveFeedError,
    AdLoadError,
    CacheError,
    ConfigError,
    SourceFetchError,
)
from adaptive_feed.feed import FeedAssemblyEngine
from adaptive_feed.models import AdSlot, ContentItem, FeedState, SlotTransitions
from adaptive_feed.session import FeedSession, PositionReporter
from adaptive_feed.sources import MagazineClient

__version__ = "0.1.0"

__all__ = [
    "AdLayoutPolicy",
    "AdSlotLifecycleManager",
    "with_ad_layout",
    "CacheService",
    "JsonFileStorage",
    "MemoryStorage",
    "fetch_with_fallback",
    "EngineConfig",
    "EngineSettings",
    "load_engine_config",
    "ContentSource",
    "SlotState",
    "AdaptiveFeedError",
    "AdLoadError",
    "CacheError",
    "ConfigError",
    "SourceFetchError",
    "FeedAssemblyEngine",
    "AdSlot",
    "ContentItem",
    "FeedState",
    "SlotTransitions",
    "FeedSession",
    "PositionReporter",
    "MagazineClient",
]
