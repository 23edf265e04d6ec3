"""Feed assembly engine.

Builds one screen's feed from the primary catalog followed by
recommendations, then keeps extending it with more recommendations as the
reader nears the end.

Every load_initial() starts a new generation. extend() captures the
generation it started under and drops its result if a reload happened in the
meantime, so a late response can never leak into a newer feed.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Optional

from adaptive_feed.config import EngineConfig
from adaptive_feed.constants import ContentSource
from adaptive_feed.errors import SourceFetchError
from adaptive_feed.feed.assembly import (
    build_exclusion_list,
    composite_ids,
    compute_primary_count,
    mark_recommended,
)
from adaptive_feed.models import ContentItem, FeedState
from adaptive_feed.sources.base import FetchPrimary, FetchRecommended

logger = logging.getLogger("feed")


class FeedAssemblyEngine:
    """Owns the FeedState of one screen instance.

    Usage:
        engine = FeedAssemblyEngine(fetch_primary, fetch_recommended, config)
        state = await engine.load_initial(user_id="u1", is_authenticated=True)

        # From the scroll callback
        if engine.should_extend(position):
            state = await engine.extend()
    """

    def __init__(
        self,
        fetch_primary: FetchPrimary,
        fetch_recommended: FetchRecommended | None = None,
        config: EngineConfig | None = None,
    ):
        self.fetch_primary = fetch_primary
        self.fetch_recommended = fetch_recommended
        self.config = config or EngineConfig()

        self._state = FeedState()
        self._generation = 0
        self._user_id: Optional[str] = None
        self._is_authenticated = False

        # Edge detection for the extension trigger
        self._last_position: Optional[int] = None
        self._last_length: Optional[int] = None

    @property
    def state(self) -> FeedState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def recommendations_enabled(self) -> bool:
        return self.config.recommendations.enabled and self.fetch_recommended is not None

    @property
    def endless_scroll_enabled(self) -> bool:
        return self.recommendations_enabled and self.config.recommendations.endless_scroll.enabled

    # =========================================================================
    # Initial load
    # =========================================================================

    async def load_initial(
        self,
        user_id: Optional[str] = None,
        is_authenticated: bool = False,
    ) -> FeedState:
        """Build a fresh feed: primary items, then recommendations.

        A failing recommendation fetch degrades to a primary-only feed.

        Raises:
            SourceFetchError: If the primary source fails and no newer load
                has started since.
        """
        self._generation += 1
        generation = self._generation
        self._user_id = user_id
        self._is_authenticated = is_authenticated
        start_time = time.time()

        try:
            primary = await self.fetch_primary(user_id, is_authenticated)
        except Exception as e:
            if generation != self._generation:
                logger.info(
                    f"FEED_LOAD_SUPERSEDED | generation:{generation} | live:{self._generation} | error:{e}"
                )
                return self._state
            if isinstance(e, SourceFetchError):
                raise
            raise SourceFetchError("primary", str(e) or type(e).__name__) from e

        if generation != self._generation:
            logger.info(f"FEED_LOAD_SUPERSEDED | generation:{generation} | live:{self._generation}")
            return self._state

        recommended = await self._fetch_initial_recommendations(primary, user_id, is_authenticated)
        if generation != self._generation:
            logger.info(f"FEED_LOAD_SUPERSEDED | generation:{generation} | live:{self._generation}")
            return self._state

        items = list(primary) + recommended
        prefix = self.config.brand_prefix
        self._state = FeedState(
            items=tuple(items),
            primary_count=compute_primary_count(items),
            loaded_exclusion_ids=frozenset(composite_ids(items, prefix, ContentSource.RECOMMENDED)),
            has_more_items=True,
            is_loading_more=False,
            generation=generation,
        )
        self._last_position = None
        self._last_length = None

        duration_ms = int((time.time() - start_time) * 1000)
        primary_items = sum(1 for item in primary if item.source == ContentSource.PRIMARY)
        ad_items = sum(1 for item in items if item.is_ad_slot)
        logger.info(
            f"FEED_LOADED | primary:{primary_items} | ads:{ad_items} | "
            f"recommended:{len(recommended)} | primary_count:{self._state.primary_count} | "
            f"generation:{generation} | {duration_ms}ms"
        )
        return self._state

    async def _fetch_initial_recommendations(
        self,
        primary: list[ContentItem],
        user_id: Optional[str],
        is_authenticated: bool,
    ) -> list[ContentItem]:
        count = self.config.recommendations.initial_item_count
        if not self.recommendations_enabled or count <= 0:
            return []

        exclude = composite_ids(primary, self.config.brand_prefix, ContentSource.PRIMARY)
        try:
            fetched = await self.fetch_recommended(count, exclude, user_id, is_authenticated)
        except Exception as e:
            logger.warning(f"FEED_RECOMMENDATIONS_ERROR | falling back to primary only | {e}")
            return []
        return mark_recommended(fetched)

    # =========================================================================
    # Extension
    # =========================================================================

    async def extend(self, items_per_load: Optional[int] = None) -> FeedState:
        """Append the next page of recommendations.

        No-op while another extension is in flight or once the source is
        exhausted. Failures are logged and leave ``has_more_items`` untouched
        so a later trigger can retry.
        """
        state = self._state
        if state.is_loading_more or not state.has_more_items or not self.endless_scroll_enabled:
            logger.debug(
                f"FEED_EXTEND_SKIPPED | in_flight:{state.is_loading_more} | "
                f"has_more:{state.has_more_items} | enabled:{self.endless_scroll_enabled}"
            )
            return state

        requested = (
            items_per_load
            if items_per_load is not None
            else self.config.recommendations.endless_scroll.items_per_load
        )
        generation = state.generation
        exclude = build_exclusion_list(
            state.items,
            state.loaded_exclusion_ids,
            self.config.brand_prefix,
            self.config.max_exclusion_ids,
        )

        # Set the guard before the first await
        self._state = replace(state, is_loading_more=True)

        try:
            fetched = await self.fetch_recommended(
                requested, exclude, self._user_id, self._is_authenticated
            )
            if generation != self._state.generation:
                logger.info(
                    f"FEED_EXTEND_DISCARDED | generation:{generation} | live:{self._state.generation}"
                )
                return self._state
            self._apply_page(mark_recommended(fetched), requested, len(exclude))
        except Exception as e:
            logger.warning(
                f"FEED_EXTEND_ERROR | requested:{requested} | items:{len(self._state.items)} | {e}"
            )
        finally:
            if self._state.generation == generation:
                self._state = replace(self._state, is_loading_more=False)

        return self._state

    def _apply_page(self, page: list[ContentItem], requested: int, exclude_count: int) -> None:
        state = self._state
        if not page:
            self._state = replace(state, has_more_items=False)
            logger.info(f"FEED_EXHAUSTED | items:{len(state.items)}")
            return

        new_ids = composite_ids(page, self.config.brand_prefix, ContentSource.RECOMMENDED)
        has_more = len(page) >= requested
        self._state = replace(
            state,
            items=state.items + tuple(page),
            loaded_exclusion_ids=state.loaded_exclusion_ids | frozenset(new_ids),
            has_more_items=has_more,
        )
        logger.info(
            f"FEED_EXTENDED | requested:{requested} | got:{len(page)} | "
            f"items:{len(self._state.items)} | excluded:{exclude_count} | has_more:{has_more}"
        )

    # =========================================================================
    # Trigger
    # =========================================================================

    def should_extend(self, position: int) -> bool:
        """Edge-triggered check for the extension threshold.

        True only when the reader arrives at the position exactly
        ``trigger_threshold`` items before the end. Reporting the same
        position again for the same feed length does not fire twice.
        """
        state = self._state
        length = len(state.items)
        crossed = position != self._last_position or length != self._last_length
        self._last_position = position
        self._last_length = length

        if not crossed or length == 0:
            return False
        if state.is_loading_more or not state.has_more_items or not self.endless_scroll_enabled:
            return False

        threshold = self.config.recommendations.endless_scroll.trigger_threshold
        return length - position - 1 == threshold
