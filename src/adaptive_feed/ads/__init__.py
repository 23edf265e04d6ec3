"""Ad slot placement and position-windowed lifecycle."""

from adaptive_feed.ads.layout import AdLayoutPolicy, with_ad_layout
from adaptive_feed.ads.manager import AdSlotLifecycleManager
from adaptive_feed.ads.windowing import compute_slot_transitions, validate_windows

__all__ = [
    "AdLayoutPolicy",
    "with_ad_layout",
    "AdSlotLifecycleManager",
    "compute_slot_transitions",
    "validate_windows",
]
