"""Global constants package for the adaptive feed engine.

PACKAGE STRUCTURE:
-----------------
- limits.py   : Paging, ad window and cache TTL defaults
- status.py   : Content source and ad slot state enums

USAGE EXAMPLES:
--------------
    from adaptive_feed.constants import SlotState, DEFAULT_PRELOAD_DISTANCE
"""

from .limits import (
    # Endless scroll
    DEFAULT_ITEMS_PER_LOAD,
    DEFAULT_TRIGGER_THRESHOLD,
    DEFAULT_INITIAL_RECOMMENDATIONS,
    DEFAULT_BRAND,
    # Ad slots
    DEFAULT_FIRST_AD_POSITION,
    DEFAULT_AD_INTERVAL,
    DEFAULT_PRELOAD_DISTANCE,
    DEFAULT_UNLOAD_DISTANCE,
    DEFAULT_MAX_CACHED_ADS,
    # Cache
    CACHE_VERSION,
    CACHE_KEY_PREFIX,
    HOUR_SECONDS,
    DAY_SECONDS,
    DEFAULT_CACHE_TTL_SECONDS,
    CACHE_KEY_EDITIONS,
    CACHE_KEY_COVER,
    CACHE_KEY_PDF,
    CACHE_KEY_ARTICLE,
    CACHE_KEY_EDITION_DATA,
    CACHE_KEY_PDF_ARTICLE_DETAIL,
    DEFAULT_CACHE_TTLS,
    IMAGE_DEPENDENT_CACHE_KEYS,
    # Network
    HTTP_TIMEOUT_SECONDS,
    HTTP_MAX_ATTEMPTS,
)
from .status import ContentSource, SlotState

__all__ = [
    "DEFAULT_ITEMS_PER_LOAD",
    "DEFAULT_TRIGGER_THRESHOLD",
    "DEFAULT_INITIAL_RECOMMENDATIONS",
    "DEFAULT_BRAND",
    "DEFAULT_FIRST_AD_POSITION",
    "DEFAULT_AD_INTERVAL",
    "DEFAULT_PRELOAD_DISTANCE",
    "DEFAULT_UNLOAD_DISTANCE",
    "DEFAULT_MAX_CACHED_ADS",
    "CACHE_VERSION",
    "CACHE_KEY_PREFIX",
    "HOUR_SECONDS",
    "DAY_SECONDS",
    "DEFAULT_CACHE_TTL_SECONDS",
    "CACHE_KEY_EDITIONS",
    "CACHE_KEY_COVER",
    "CACHE_KEY_PDF",
    "CACHE_KEY_ARTICLE",
    "CACHE_KEY_EDITION_DATA",
    "CACHE_KEY_PDF_ARTICLE_DETAIL",
    "DEFAULT_CACHE_TTLS",
    "IMAGE_DEPENDENT_CACHE_KEYS",
    "HTTP_TIMEOUT_SECONDS",
    "HTTP_MAX_ATTEMPTS",
    "ContentSource",
    "SlotState",
]
