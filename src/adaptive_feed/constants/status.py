"""Status enums and state constants for the feed engine.

This module contains the state machines used by the engine:
- Content provenance within a feed
- Ad slot lifecycle states

Ad slot lifecycle:
  UNLOADED -> LOADING -> LOADED
                 |
                 v
              FAILED (terminal for the session)

LOADING and LOADED slots return to UNLOADED when they leave the unload window
or when the whole registry is cleared.
"""

from enum import Enum


# =============================================================================
# CONTENT SOURCE
# =============================================================================

class ContentSource(str, Enum):
    """Where a feed item came from."""

    PRIMARY = "primary"
    """Paginated editorial catalog (authoritative ordering)."""

    RECOMMENDED = "recommended"
    """Personalized recommendation service."""

    AD = "ad"
    """Injected ad placeholder, carries no content payload."""


# =============================================================================
# AD SLOT STATE
# =============================================================================

class SlotState(str, Enum):
    """State of a single ad slot."""

    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"

    @property
    def is_live(self) -> bool:
        """True while the slot holds (or is acquiring) an ad instance."""
        return self in (SlotState.LOADING, SlotState.LOADED)
