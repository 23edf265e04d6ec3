"""External collaborators: fetch contracts and the cached magazine client."""

from adaptive_feed.sources.base import (
    AdErrorCallback,
    AdInstanceProvider,
    FetchPrimary,
    FetchRecommended,
)
from adaptive_feed.sources.magazine import MagazineClient

__all__ = [
    "AdErrorCallback",
    "AdInstanceProvider",
    "FetchPrimary",
    "FetchRecommended",
    "MagazineClient",
]
