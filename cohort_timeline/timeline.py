# cohort_timeline/timeline.py
#
# Play/pause driver for the year timeline.
#
# The controller owns the current year and the playback flag. It never draws
# anything itself: it calls render(year) and tells subscribers that its state
# changed. Ticks come from a single-slot repeating timer:
#   - PolledTimer: ticked by whoever owns the event loop (Streamlit fragment
#     reruns, tests)
#   - AsyncioTimer: re-arms itself with loop.call_later

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

DEFAULT_PERIOD = 0.5  # seconds between ticks

RenderFn = Callable[[int], None]


class TimerError(RuntimeError):
    """A timer was started while it already had an active schedule."""


class TimelineError(RuntimeError):
    """Playback state and timer state disagree."""


class Timer(Protocol):
    @property
    def active(self) -> bool: ...

    def start(self, period: float, callback: Callable[[], None]) -> None: ...

    def cancel(self) -> None: ...


class PolledTimer:
    """
    Repeating timer whose ticks are delivered by an outside driver.

    poll() fires at most one tick per call, and only once a period has passed
    since the previous tick (or since start). `slack` is the fraction of a
    period a poll may arrive early and still count.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, slack: float = 0.0):
        self._clock = clock
        self.slack = slack
        self._callback: Optional[Callable[[], None]] = None
        self.period: Optional[float] = None
        self._last = 0.0

    @property
    def active(self) -> bool:
        return self._callback is not None

    def start(self, period: float, callback: Callable[[], None]) -> None:
        if self.active:
            raise TimerError("timer is already running")
        self.period = period
        self._callback = callback
        self._last = self._clock()

    def cancel(self) -> None:
        self._callback = None
        self.period = None

    def due(self, now: Optional[float] = None) -> bool:
        if not self.active:
            return False
        now = self._clock() if now is None else now
        return now - self._last >= self.period * (1.0 - self.slack)

    def poll(self, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        if not self.due(now):
            return False
        self._last = now
        self.fire()
        return True

    def fire(self) -> bool:
        """Deliver one tick right away. Returns False when idle."""
        if self._callback is None:
            return False
        self._callback()
        return True


class AsyncioTimer:
    """Repeating timer on an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    def start(self, period: float, callback: Callable[[], None]) -> None:
        if self.active:
            raise TimerError("timer is already running")
        loop = self._loop or asyncio.get_running_loop()

        def _fire():
            # re-arm first so a callback that cancels leaves nothing behind
            self._handle = loop.call_later(period, _fire)
            callback()

        self._handle = loop.call_later(period, _fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


@dataclass(frozen=True)
class TimelineState:
    current_year: int
    is_playing: bool
    min_year: int
    max_year: int


Listener = Callable[[TimelineState], None]


class TimelineController:
    """Owns the authoritative current year and the play/pause flag."""

    def __init__(
        self,
        year_range: Tuple[int, int],
        render: RenderFn,
        timer: Optional[Timer] = None,
        period: float = DEFAULT_PERIOD,
    ):
        min_year, max_year = (int(y) for y in year_range)
        if min_year > max_year:
            raise ValueError(f"empty year range: {min_year} > {max_year}")
        self.min_year = min_year
        self.max_year = max_year
        self.period = period
        self._render = render
        self._timer = timer if timer is not None else PolledTimer()
        self._listeners: List[Listener] = []

        self.current_year = min_year
        # last year handed to render(); what the slider shows
        self.shown_year: Optional[int] = None
        self.is_playing = False

    @classmethod
    def for_view(cls, view, render: RenderFn, **kwargs) -> "TimelineController":
        year_range = view.year_range()
        if year_range is None:
            raise ValueError("cannot drive a timeline over an empty data view")
        return cls(year_range, render, **kwargs)

    # -----------------------------
    # Read-only helpers for the UI
    # -----------------------------
    @property
    def timer(self) -> Timer:
        return self._timer

    @property
    def state(self) -> TimelineState:
        return TimelineState(self.current_year, self.is_playing, self.min_year, self.max_year)

    @property
    def slider_value(self) -> int:
        year = self.current_year if self.shown_year is None else self.shown_year
        return self.clamp(year)

    @property
    def button_label(self) -> str:
        return "Pause" if self.is_playing else "Play"

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        state = self.state
        for listener in list(self._listeners):
            listener(state)

    def clamp(self, year) -> int:
        try:
            value = int(year)
        except (TypeError, ValueError, OverflowError):
            # Strings like "2001.0" still count as a year
            try:
                value = float(year)
            except (TypeError, ValueError):
                value = self.current_year
            else:
                value = self.current_year if math.isnan(value) else value
                if math.isinf(value):
                    value = self.max_year if value > 0 else self.min_year
                value = int(value)
        return min(max(value, self.min_year), self.max_year)

    # -----------------------------
    # Operations
    # -----------------------------
    def set_year(self, year) -> int:
        self.current_year = self.clamp(year)
        self.shown_year = self.current_year
        self._render(self.current_year)
        self._notify()
        return self.current_year

    def toggle_play(self) -> bool:
        if self.is_playing:
            self._stop("paused")
        else:
            self._start()
        return self.is_playing

    def close(self) -> None:
        if self.is_playing or self._timer.active:
            self._stop("closed")

    def _start(self) -> None:
        if self._timer.active:
            raise TimelineError("playback timer is already active")
        # Play resumes from the slider, i.e. the last year drawn
        self.current_year = self.slider_value
        self._timer.start(self.period, self._tick)
        self.is_playing = True
        logger.info("Playback started at %s", self.current_year)
        self._notify()

    def _stop(self, reason: str) -> None:
        self._timer.cancel()
        self.is_playing = False
        logger.info("Playback %s at %s", reason, self.current_year)
        self._notify()

    def _tick(self) -> None:
        if not self.is_playing:
            return
        if self.current_year <= self.max_year:
            logger.debug("Tick: rendering %s", self.current_year)
            self.shown_year = self.current_year
            self._render(self.current_year)
            self.current_year += 1
            self._notify()
        else:
            # Stops one tick after the last in-range render
            self._stop("reached the end")
