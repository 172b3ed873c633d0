"""Card gestures: per-card drag state and mapping releases/taps to actions."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from enum import Enum

logger = logging.getLogger(__name__)

SWIPE_THRESHOLD = 100
VERTICAL_SWIPE_THRESHOLD = 50
DOUBLE_TAP_DELAY_MS = 250

HAPTIC_LIGHT = "light"

# Displacement a keyboard swipe stands for, well past each threshold
KEYBOARD_SWIPES: dict[str, tuple[float, float]] = {
    "right": (2 * SWIPE_THRESHOLD, 0),
    "left": (-2 * SWIPE_THRESHOLD, 0),
    "up": (0, -2 * VERTICAL_SWIPE_THRESHOLD),
    "down": (0, 2 * VERTICAL_SWIPE_THRESHOLD),
}


class CardState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    # Committed to a leftward swipe; ignores input until visible again
    LOCKED = "locked"


class GestureAction(Enum):
    NONE = "none"
    TOGGLE_BOOKMARK = "toggle_bookmark"
    OPEN_CHAT = "open_chat"
    FOCUS_NEXT = "focus_next"
    FOCUS_PREVIOUS = "focus_previous"
    TOGGLE_LIKE = "toggle_like"


def classify_release(dx: float, dy: float) -> GestureAction:
    """Map a drag's total displacement at release to an action.

    The larger axis wins; a tie counts as horizontal.
    """
    if abs(dy) > abs(dx):
        if dy < -VERTICAL_SWIPE_THRESHOLD:
            return GestureAction.FOCUS_NEXT
        if dy > VERTICAL_SWIPE_THRESHOLD:
            return GestureAction.FOCUS_PREVIOUS
        return GestureAction.NONE
    if dx > SWIPE_THRESHOLD:
        return GestureAction.TOGGLE_BOOKMARK
    if dx < -SWIPE_THRESHOLD:
        return GestureAction.OPEN_CHAT
    return GestureAction.NONE


def state_after_begin(state: CardState) -> CardState:
    return state if state is CardState.LOCKED else CardState.DRAGGING


def state_after_release(state: CardState, action: GestureAction) -> CardState:
    if state is CardState.LOCKED or action is GestureAction.OPEN_CHAT:
        return CardState.LOCKED
    return CardState.IDLE


def state_after_visible(state: CardState) -> CardState:
    return CardState.IDLE if state is CardState.LOCKED else state


class InteractionDispatcher:
    """Tracks every card's gesture state and turns input into actions.

    ``haptics`` is called with a style name whenever an action wants
    tactile feedback.
    """

    def __init__(self, haptics: Callable[[str], None] | None = None) -> None:
        self._haptics = haptics
        self._states: dict[str, CardState] = {}
        self._offsets: dict[str, tuple[float, float]] = {}
        self._last_tap_ms: dict[str, float] = {}

    def state(self, paper_id: str) -> CardState:
        return self._states.get(paper_id, CardState.IDLE)

    def offset(self, paper_id: str) -> tuple[float, float]:
        """Current drag displacement, used to render the card mid-drag."""
        return self._offsets.get(paper_id, (0.0, 0.0))

    def is_locked(self, paper_id: str) -> bool:
        return self.state(paper_id) is CardState.LOCKED

    def _haptic(self) -> None:
        if self._haptics is not None:
            self._haptics(HAPTIC_LIGHT)

    def begin_drag(self, paper_id: str) -> None:
        self._states[paper_id] = state_after_begin(self.state(paper_id))
        if not self.is_locked(paper_id):
            self._offsets[paper_id] = (0.0, 0.0)

    def drag(self, paper_id: str, dx: float, dy: float) -> None:
        if self.state(paper_id) is CardState.DRAGGING:
            self._offsets[paper_id] = (dx, dy)

    def release(self, paper_id: str, dx: float, dy: float) -> GestureAction:
        """Finish a drag with total displacement ``(dx, dy)``."""
        state = self.state(paper_id)
        if state is CardState.LOCKED:
            logger.debug("Ignoring release on locked card %s", paper_id)
            return GestureAction.NONE
        action = classify_release(dx, dy)
        self._states[paper_id] = state_after_release(state, action)
        self._offsets.pop(paper_id, None)
        if action is GestureAction.TOGGLE_BOOKMARK:
            self._haptic()
        return action

    def tap(self, paper_id: str, at_ms: float) -> GestureAction:
        """Register a tap; a second tap within the delay toggles like."""
        if self.is_locked(paper_id):
            return GestureAction.NONE
        previous = self._last_tap_ms.get(paper_id)
        if previous is not None and at_ms - previous < DOUBLE_TAP_DELAY_MS:
            self._last_tap_ms.pop(paper_id, None)
            self._haptic()
            return GestureAction.TOGGLE_LIKE
        self._last_tap_ms[paper_id] = at_ms
        return GestureAction.NONE

    def card_visible(self, paper_id: str) -> None:
        """The card is back in view: release any lock and reset its position."""
        state = state_after_visible(self.state(paper_id))
        self._states[paper_id] = state
        if state is not CardState.DRAGGING:
            self._offsets.pop(paper_id, None)

    def retain(self, paper_ids: Iterable[str]) -> None:
        """Forget gesture state for every card not in ``paper_ids``."""
        keep = set(paper_ids)
        for table in (self._states, self._offsets, self._last_tap_ms):
            for paper_id in [key for key in table if key not in keep]:
                del table[paper_id]


__all__ = [
    "DOUBLE_TAP_DELAY_MS",
    "HAPTIC_LIGHT",
    "KEYBOARD_SWIPES",
    "SWIPE_THRESHOLD",
    "VERTICAL_SWIPE_THRESHOLD",
    "CardState",
    "GestureAction",
    "InteractionDispatcher",
    "classify_release",
    "state_after_begin",
    "state_after_release",
    "state_after_visible",
]
