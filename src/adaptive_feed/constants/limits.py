"""Default limits and windows for the feed engine.

This module contains every tunable default:
- Endless scroll paging
- Ad slot placement and preload/unload windows
- Cache TTLs per logical resource

MODIFICATION GUIDE:
------------------
- Brand configuration (YAML) overrides all of these at runtime
- PRELOAD must stay strictly below UNLOAD
"""

from typing import Final

# =============================================================================
# ENDLESS SCROLL
# =============================================================================

DEFAULT_ITEMS_PER_LOAD: Final[int] = 5
"""Recommendation page size requested per extension."""

DEFAULT_TRIGGER_THRESHOLD: Final[int] = 3
"""Items remaining after the current one when the next page is requested."""

DEFAULT_INITIAL_RECOMMENDATIONS: Final[int] = 10
"""Recommendations appended after the primary run on initial load."""

DEFAULT_BRAND: Final[str] = "NT"
"""Brand shortcode used as the exclusion id prefix."""


# =============================================================================
# AD SLOTS
# =============================================================================

DEFAULT_FIRST_AD_POSITION: Final[int] = 4
DEFAULT_AD_INTERVAL: Final[int] = 5

DEFAULT_PRELOAD_DISTANCE: Final[int] = 2
"""Slots this close to the viewport (either direction) are loaded."""

DEFAULT_UNLOAD_DISTANCE: Final[int] = 3
"""Slots further than this from the viewport are released."""

DEFAULT_MAX_CACHED_ADS: Final[int] = 3
"""Maximum ad instances live (loading or loaded) at once."""


# =============================================================================
# CACHE
# =============================================================================

CACHE_VERSION: Final[str] = "1"
"""Entries written under another version are treated as misses."""

CACHE_KEY_PREFIX: Final[str] = "cache"

HOUR_SECONDS: Final[int] = 3600
DAY_SECONDS: Final[int] = 86400

DEFAULT_CACHE_TTL_SECONDS: Final[int] = HOUR_SECONDS

# Logical cache names
CACHE_KEY_EDITIONS: Final[str] = "magazine_editions"
CACHE_KEY_COVER: Final[str] = "magazine_cover"
CACHE_KEY_PDF: Final[str] = "magazine_pdf"
CACHE_KEY_ARTICLE: Final[str] = "magazine_article"
CACHE_KEY_EDITION_DATA: Final[str] = "magazine_edition_data"
CACHE_KEY_PDF_ARTICLE_DETAIL: Final[str] = "pdf_article_detail"

DEFAULT_CACHE_TTLS: Final[dict[str, int]] = {
    CACHE_KEY_EDITIONS: HOUR_SECONDS,
    CACHE_KEY_COVER: DAY_SECONDS,
    CACHE_KEY_PDF: DAY_SECONDS,
    CACHE_KEY_ARTICLE: DAY_SECONDS,
    CACHE_KEY_EDITION_DATA: DAY_SECONDS,
    CACHE_KEY_PDF_ARTICLE_DETAIL: DAY_SECONDS,
}

IMAGE_DEPENDENT_CACHE_KEYS: Final[tuple[str, ...]] = (
    CACHE_KEY_COVER,
    CACHE_KEY_EDITION_DATA,
)
"""Keys whose values depend on device orientation."""


# =============================================================================
# NETWORK
# =============================================================================

HTTP_TIMEOUT_SECONDS: Final[float] = 15.0
HTTP_MAX_ATTEMPTS: Final[int] = 2
