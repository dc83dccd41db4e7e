"""
MARKET PULSE — Price Flash
Up/down highlight derived from two consecutive rendered prices.
"""
import time
from typing import Callable, Optional

FLASH_UP = "up"
FLASH_DOWN = "down"


def _parse_display(value: str) -> Optional[float]:
    try:
        return float(value.replace("$", "").replace(",", "").strip())
    except (AttributeError, ValueError):
        return None


def classify_flash(previous: str, current: str) -> Optional[str]:
    """'up'/'down' when both strings parse and differ numerically, else None."""
    if previous == current:
        return None
    prev = _parse_display(previous)
    curr = _parse_display(current)
    if prev is None or curr is None or prev == curr:
        return None
    return FLASH_UP if curr > prev else FLASH_DOWN


class PriceFlash:
    """
    Per-instrument highlight state.

    observe() is fed every rendered price string; a numeric move starts a
    highlight that state() reports until `duration` seconds have passed.
    """

    def __init__(self, initial: str = "", duration: float = 0.8, clock: Callable[[], float] = time.monotonic):
        self.duration = duration
        self.clock = clock
        self._last = initial
        self._direction: Optional[str] = None
        self._until = 0.0

    def observe(self, rendered: str, now: Optional[float] = None) -> Optional[str]:
        now = self.clock() if now is None else now
        direction = classify_flash(self._last, rendered)
        self._last = rendered
        if direction is not None:
            self._direction = direction
            self._until = now + self.duration
        return self.state(now)

    def state(self, now: Optional[float] = None) -> Optional[str]:
        now = self.clock() if now is None else now
        if self._direction is not None and now < self._until:
            return self._direction
        self._direction = None
        return None
