from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class DelayKind(str, Enum):
    PRE_SEARCH = "pre_search"
    INTER_CARD = "inter_card"
    PAGE_SETTLE = "page_settle"
    INTER_PAGE = "inter_page"
    INTER_SEARCH = "inter_search"


@dataclass(frozen=True)
class DelayWindow:
    """Uniform delay in ``[minimum, minimum + spread)`` seconds."""

    minimum: float
    spread: float


DEFAULT_DELAY_WINDOWS: dict[DelayKind, DelayWindow] = {
    DelayKind.PRE_SEARCH: DelayWindow(1.0, 2.0),
    DelayKind.INTER_CARD: DelayWindow(0.5, 1.5),
    DelayKind.PAGE_SETTLE: DelayWindow(2.0, 3.0),
    DelayKind.INTER_PAGE: DelayWindow(3.0, 5.0),
    DelayKind.INTER_SEARCH: DelayWindow(5.0, 10.0),
}


class RandomSource(Protocol):
    def random(self) -> float: ...


class RateLimiter:
    """Randomized pacing between scraping steps.

    Each pacing point draws from its own window so request timing never
    settles into a fixed rhythm. Pass a seeded ``random.Random`` (or any
    object with ``random()``) and a fake ``sleep`` to make delays
    deterministic in tests.
    """

    def __init__(
        self,
        windows: Mapping[DelayKind, DelayWindow] | None = None,
        *,
        rng: RandomSource | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._windows = dict(DEFAULT_DELAY_WINDOWS)
        if windows:
            self._windows.update(windows)
        self._rng = rng or random.Random()
        self._sleep = sleep

    @classmethod
    def disabled(cls, sleep: Callable[[float], None] = time.sleep) -> RateLimiter:
        zero = {kind: DelayWindow(0.0, 0.0) for kind in DelayKind}
        return cls(zero, sleep=sleep)

    def delay(self, kind: DelayKind) -> float:
        window = self._windows[DelayKind(kind)]
        return window.minimum + self._rng.random() * window.spread

    def pause(self, kind: DelayKind) -> float:
        seconds = self.delay(kind)
        if seconds > 0:
            logger.debug("pausing %.2fs (%s)", seconds, DelayKind(kind).value)
            self._sleep(seconds)
        return seconds
