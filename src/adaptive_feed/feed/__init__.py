"""Feed assembly: primary catalog followed by paged recommendations."""

from adaptive_feed.feed.assembly import (
    build_exclusion_list,
    composite_ids,
    compute_primary_count,
    mark_recommended,
)
from adaptive_feed.feed.engine import FeedAssemblyEngine

__all__ = [
    "FeedAssemblyEngine",
    "build_exclusion_list",
    "composite_ids",
    "compute_primary_count",
    "mark_recommended",
]
