"""Collaborator contracts consumed by the engine.

The engine never talks HTTP for feed content itself; screens hand it fetch
functions with these shapes.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional, Protocol, runtime_checkable

from adaptive_feed.errors import AdLoadError
from adaptive_feed.models import ContentItem

# fetch_primary(user_id, is_authenticated) -> items (may already contain ad items)
FetchPrimary = Callable[[Optional[str], bool], Awaitable[list[ContentItem]]]

# fetch_recommended(count, exclude_ids, user_id, is_authenticated) -> items
FetchRecommended = Callable[[int, list[str], Optional[str], bool], Awaitable[list[ContentItem]]]

# Observer for failed ad loads
AdErrorCallback = Callable[[AdLoadError], None]


@runtime_checkable
class AdInstanceProvider(Protocol):
    """Acquires and releases ad instances.

    ``release`` must accept any handle ``load`` ever returned, including one
    that arrives after its slot was already unloaded.
    """

    async def load(self, position: int) -> Any: ...

    def release(self, handle: Any) -> None: ...
