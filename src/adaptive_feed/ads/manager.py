"""Ad slot lifecycle manager.

Owns the slot registry of one screen. Each viewport position update is turned
into load/unload side effects against an AdInstanceProvider:

    handle_position_change(position)
        -> compute_slot_transitions()     (pure)
        -> issue loads                    (state flips to LOADING synchronously)
        -> issue unloads                  (after loads)

Loads run as background tasks so a provider that never answers blocks
nothing. Every load carries the slot's ``load_token``; a result that comes
back after the slot was unloaded or cleared no longer matches and its handle
is released immediately instead of being installed.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Iterable, Optional

from adaptive_feed.ads.windowing import compute_slot_transitions, validate_windows
from adaptive_feed.config import AdSlotConfig
from adaptive_feed.constants import SlotState
from adaptive_feed.errors import AdLoadError
from adaptive_feed.models import AdSlot, ContentItem, SlotStats, SlotTransitions
from adaptive_feed.sources.base import AdErrorCallback, AdInstanceProvider

logger = logging.getLogger("ads")


class AdSlotLifecycleManager:
    """Position-windowed registry of ad instances.

    Usage:
        manager = AdSlotLifecycleManager(provider)
        manager.initialize(AdSlotConfig(preload_distance=2, unload_distance=3))
        manager.register_slots([4, 9, 14])

        manager.handle_position_change(6)   # loads slot 4
        await manager.wait_idle()
    """

    def __init__(
        self,
        provider: AdInstanceProvider,
        config: AdSlotConfig | None = None,
        on_load_error: AdErrorCallback | None = None,
    ):
        self.provider = provider
        self.on_load_error = on_load_error
        self.config: AdSlotConfig = config or AdSlotConfig()
        self._initialized = config is not None
        self._slots: dict[int, AdSlot] = {}
        self._tasks: set[asyncio.Task] = set()
        self._total_loaded = 0

    # =========================================================================
    # Initialization
    # =========================================================================

    def initialize(self, config: AdSlotConfig) -> None:
        """Apply configuration once. Later calls are ignored."""
        if self._initialized:
            logger.debug("ADS_INIT | already initialized, ignoring")
            return
        self.config = config
        self._initialized = True
        logger.info(
            f"ADS_INIT | enabled:{config.enabled} | first:{config.first_ad_position} | "
            f"interval:{config.ad_interval} | preload:{config.preload_distance} | "
            f"unload:{config.unload_distance} | max_cached:{config.max_cached_ads} | "
            f"max_session:{config.max_ads_per_session}"
        )

    def is_initialized(self) -> bool:
        return self._initialized

    # =========================================================================
    # Registration
    # =========================================================================

    def register_slots(self, positions: Iterable[int]) -> None:
        """Add slots at the given feed positions (existing ones untouched)."""
        for position in positions:
            if position < 0:
                raise ValueError(f"slot position must be non-negative: {position}")
            self._slots.setdefault(position, AdSlot(position=position))

    def sync_slots(self, items: Iterable[ContentItem]) -> None:
        """Make the registry match the ad placeholders of a feed.

        Slots whose position no longer holds an ad are released and dropped.
        """
        positions = {i for i, item in enumerate(items) if item.is_ad_slot}
        for position in [p for p in self._slots if p not in positions]:
            self._unload(position)
            del self._slots[position]
        self.register_slots(sorted(positions))

    # =========================================================================
    # Position handling
    # =========================================================================

    def handle_position_change(
        self,
        position: int,
        preload_distance: Optional[int] = None,
        unload_distance: Optional[int] = None,
    ) -> SlotTransitions:
        """Load slots entering the preload window, release slots leaving the unload window.

        Must be called from a running event loop when loads may be issued.

        Returns:
            The transitions actually applied (capped loads are left out).
        """
        preload = self.config.preload_distance if preload_distance is None else preload_distance
        unload = self.config.unload_distance if unload_distance is None else unload_distance
        validate_windows(preload, unload)

        if not self.config.enabled:
            return SlotTransitions()

        planned = compute_slot_transitions(
            position,
            {p: slot.state for p, slot in self._slots.items()},
            preload,
            unload,
        )

        # Slots about to be released do not count against the live cap
        live_after_unload = sum(
            1
            for p, slot in self._slots.items()
            if slot.state.is_live and p not in planned.to_unload
        )

        loaded: list[int] = []
        for slot_position in planned.to_load:
            if not self._within_caps(live_after_unload):
                logger.info(
                    f"ADS_CAP_REACHED | position:{slot_position} | live:{live_after_unload} | "
                    f"session_total:{self._total_loaded}"
                )
                break
            self._issue_load(slot_position)
            live_after_unload += 1
            loaded.append(slot_position)

        for slot_position in planned.to_unload:
            self._unload(slot_position)

        applied = SlotTransitions(to_load=tuple(loaded), to_unload=planned.to_unload)
        if not applied.is_empty:
            stats = self.stats()
            logger.debug(
                f"ADS_POSITION | position:{position} | load:{list(applied.to_load)} | "
                f"unload:{list(applied.to_unload)} | loaded:{stats.loaded} | "
                f"loading:{stats.loading} | failed:{stats.failed}"
            )
        return applied

    def clear_all(self) -> None:
        """Release every instance and reset all slots to UNLOADED (full reload)."""
        for position in list(self._slots):
            self._unload(position)
            slot = self._slots[position]
            slot.state = SlotState.UNLOADED
            slot.error = None
        self._total_loaded = 0
        logger.info(f"ADS_CLEARED | slots:{len(self._slots)}")

    async def wait_idle(self) -> None:
        """Wait for every in-flight load to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_slot(self, position: int) -> Optional[AdSlot]:
        return self._slots.get(position)

    def state_of(self, position: int) -> Optional[SlotState]:
        slot = self._slots.get(position)
        return slot.state if slot else None

    def loaded_positions(self) -> list[int]:
        return sorted(p for p, slot in self._slots.items() if slot.state == SlotState.LOADED)

    @property
    def positions(self) -> list[int]:
        return sorted(self._slots)

    def stats(self) -> SlotStats:
        """Count slots per state."""
        counts = {state: 0 for state in SlotState}
        for slot in self._slots.values():
            counts[slot.state] += 1
        return SlotStats(
            loaded=counts[SlotState.LOADED],
            loading=counts[SlotState.LOADING],
            failed=counts[SlotState.FAILED],
            unloaded=counts[SlotState.UNLOADED],
            total=len(self._slots),
            total_loaded_session=self._total_loaded,
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _within_caps(self, live_count: int) -> bool:
        max_cached = self.config.max_cached_ads
        if max_cached is not None and live_count >= max_cached:
            return False
        max_session = self.config.max_ads_per_session
        if max_session is not None and self._total_loaded + self._count(SlotState.LOADING) >= max_session:
            return False
        return True

    def _count(self, state: SlotState) -> int:
        return sum(1 for slot in self._slots.values() if slot.state == state)

    def _issue_load(self, position: int) -> None:
        slot = self._slots[position]
        slot.state = SlotState.LOADING
        slot.load_token += 1
        slot.load_started_at = datetime.now()
        slot.load_finished_at = None
        slot.error = None

        task = asyncio.create_task(self._run_load(position, slot.load_token))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug(f"ADS_LOAD_ISSUED | position:{position}")

    async def _run_load(self, position: int, token: int) -> None:
        try:
            handle = await self.provider.load(position)
        except Exception as e:
            slot = self._slots.get(position)
            if slot is None or slot.load_token != token:
                logger.debug(f"ADS_LOAD_FAILED_SUPERSEDED | position:{position} | {e}")
                return
            slot.state = SlotState.FAILED
            slot.load_finished_at = datetime.now()
            slot.error = str(e) or type(e).__name__
            logger.warning(f"ADS_LOAD_FAILED | position:{position} | {slot.error}")
            self._report_error(AdLoadError(position, slot.error))
            return

        slot = self._slots.get(position)
        if slot is None or slot.load_token != token or slot.state != SlotState.LOADING:
            logger.debug(f"ADS_LOAD_LATE | position:{position} | releasing")
            self._release(position, handle)
            return

        slot.state = SlotState.LOADED
        slot.handle = handle
        slot.load_finished_at = datetime.now()
        self._total_loaded += 1
        logger.info(
            f"ADS_LOADED | position:{position} | {slot.load_time_ms}ms | "
            f"session_total:{self._total_loaded}"
        )

    def _unload(self, position: int) -> None:
        slot = self._slots.get(position)
        if slot is None or not slot.state.is_live:
            return
        handle = slot.handle
        slot.state = SlotState.UNLOADED
        slot.handle = None
        slot.load_token += 1
        if handle is not None:
            self._release(position, handle)
        logger.debug(f"ADS_UNLOADED | position:{position}")

    def _release(self, position: int, handle: Any) -> None:
        try:
            self.provider.release(handle)
        except Exception as e:
            logger.warning(f"ADS_RELEASE_ERROR | position:{position} | {e}")

    def _report_error(self, error: AdLoadError) -> None:
        if self.on_load_error is None:
            return
        try:
            self.on_load_error(error)
        except Exception as e:
            logger.warning(f"ADS_ERROR_CALLBACK_FAILED | position:{error.position} | {e}")
