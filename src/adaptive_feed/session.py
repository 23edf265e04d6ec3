"""Per-screen composition of the feed engine and the ad slot manager.

A FeedSession is what a screen owns. Scroll callbacks go through its
PositionReporter, which fans each position out to the ad manager (preload
and unload) and to the feed engine (extension trigger).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from adaptive_feed.ads.manager import AdSlotLifecycleManager
from adaptive_feed.cache.service import CacheService
from adaptive_feed.constants import IMAGE_DEPENDENT_CACHE_KEYS
from adaptive_feed.feed.engine import FeedAssemblyEngine
from adaptive_feed.models import FeedState

logger = logging.getLogger("feed")


class PositionReporter:
    """Dispatches viewport positions to the engine and the ad manager."""

    def __init__(
        self,
        engine: FeedAssemblyEngine,
        ad_manager: Optional[AdSlotLifecycleManager] = None,
    ):
        self.engine = engine
        self.ad_manager = ad_manager
        self.position: Optional[int] = None
        self._tasks: set[asyncio.Task] = set()

    def report(self, position: int) -> Optional[asyncio.Task]:
        """Handle one viewport position update.

        Returns:
            The scheduled extension task when this position crossed the
            trigger threshold, otherwise None.
        """
        if position < 0:
            raise ValueError(f"position must be non-negative: {position}")
        self.position = position

        if self.ad_manager is not None:
            self.ad_manager.handle_position_change(position)

        if not self.engine.should_extend(position):
            return None

        logger.info(
            f"FEED_TRIGGER | position:{position} | items:{len(self.engine.state.items)}"
        )
        task = asyncio.create_task(self._extend())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _extend(self) -> FeedState:
        state = await self.engine.extend()
        if self.ad_manager is not None:
            self.ad_manager.sync_slots(state.items)
        return state

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class FeedSession:
    """Lifecycle of one feed screen: mount, reload, scroll.

    Usage:
        session = FeedSession(engine, ad_manager, cache)
        await session.mount(user_id="u1", is_authenticated=True)
        session.report_position(3)
        await session.refresh()          # pull-to-refresh / app resume
    """

    def __init__(
        self,
        engine: FeedAssemblyEngine,
        ad_manager: Optional[AdSlotLifecycleManager] = None,
        cache: Optional[CacheService] = None,
    ):
        self.engine = engine
        self.ad_manager = ad_manager
        self.cache = cache
        self.reporter = PositionReporter(engine, ad_manager)
        self._user_id: Optional[str] = None
        self._is_authenticated = False

    @property
    def state(self) -> FeedState:
        return self.engine.state

    async def mount(self, user_id: Optional[str] = None, is_authenticated: bool = False) -> FeedState:
        """Initial load, then preload ads around position 0.

        Raises:
            SourceFetchError: If the primary source fails.
        """
        self._user_id = user_id
        self._is_authenticated = is_authenticated

        state = await self.engine.load_initial(user_id, is_authenticated)
        if self.ad_manager is not None:
            self.ad_manager.sync_slots(state.items)
            if state.items:
                self.ad_manager.handle_position_change(0)
        self.reporter.position = 0 if state.items else None
        return state

    async def refresh(self) -> FeedState:
        """Rebuild the feed wholesale (pull-to-refresh)."""
        logger.info(f"FEED_RELOAD | generation:{self.engine.generation}")
        if self.ad_manager is not None:
            self.ad_manager.clear_all()
        return await self.mount(self._user_id, self._is_authenticated)

    async def on_resume(self) -> FeedState:
        """App returned from background."""
        return await self.refresh()

    async def on_orientation_change(self) -> FeedState:
        """Drop image-dependent cache entries, then rebuild."""
        if self.cache is not None:
            for name in IMAGE_DEPENDENT_CACHE_KEYS:
                self.cache.remove_all(name)
        return await self.refresh()

    def report_position(self, position: int) -> Optional[asyncio.Task]:
        return self.reporter.report(position)

    def progress(self, position: int) -> Optional[tuple[int, int]]:
        """(1-based position, primary_count) while inside the primary run."""
        primary_count = self.state.primary_count
        if 0 <= position < primary_count:
            return position + 1, primary_count
        return None

    async def wait_idle(self) -> None:
        """Wait for pending extensions and ad loads."""
        await self.reporter.wait_idle()
        if self.ad_manager is not None:
            await self.ad_manager.wait_idle()
