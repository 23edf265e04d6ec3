"""Pure preload/unload window arithmetic.

Kept free of side effects so the window rules can be tested without an ad
provider or an event loop.
"""

from __future__ import annotations

from typing import Mapping

from adaptive_feed.constants import SlotState
from adaptive_feed.models import SlotTransitions


def validate_windows(preload_distance: int, unload_distance: int) -> None:
    """Raise ValueError unless 0 <= preload < unload."""
    if preload_distance < 0 or unload_distance < 0:
        raise ValueError("window distances must be non-negative")
    if preload_distance >= unload_distance:
        raise ValueError(
            f"preload_distance ({preload_distance}) must be smaller than "
            f"unload_distance ({unload_distance})"
        )


def compute_slot_transitions(
    position: int,
    slots: Mapping[int, SlotState],
    preload_distance: int,
    unload_distance: int,
) -> SlotTransitions:
    """Decide which slots to load and which to release.

    Args:
        position: Current viewport position (feed index).
        slots: Slot position -> current state.
        preload_distance: Load UNLOADED slots within this distance.
        unload_distance: Release live slots beyond this distance.

    Returns:
        SlotTransitions. ``to_load`` is ordered nearest first (ties broken by
        position) so that caps keep the most relevant slots.
    """
    validate_windows(preload_distance, unload_distance)

    to_load = sorted(
        (
            slot_position
            for slot_position, state in slots.items()
            if state == SlotState.UNLOADED and abs(slot_position - position) <= preload_distance
        ),
        key=lambda p: (abs(p - position), p),
    )
    to_unload = sorted(
        slot_position
        for slot_position, state in slots.items()
        if state.is_live and abs(slot_position - position) > unload_distance
    )
    return SlotTransitions(to_load=tuple(to_load), to_unload=tuple(to_unload))
