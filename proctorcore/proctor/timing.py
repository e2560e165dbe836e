"""
Timer Schedulers - Single-shot delayed callbacks for debounce timers

AsyncioScheduler runs callbacks on the event loop in real time.
ManualScheduler keeps a virtual clock that only moves when advanced,
which makes recorded sessions replayable and debounce behavior
deterministic.
"""

import asyncio
import heapq
import itertools
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional, Tuple

from .models import as_utc, utcnow

logger = logging.getLogger(__name__)


class AsyncioScheduler:
    """Schedules callbacks with loop.call_later; clock is wall-clock UTC."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def now(self) -> datetime:
        return utcnow()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        # Resolved per call so sessions created outside a loop still bind to the running one
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback, *args)


class ManualTimer:
    """Handle returned by ManualScheduler.call_later"""

    __slots__ = ("due", "callback", "args", "cancelled")

    def __init__(self, due: datetime, callback: Callable[..., Any], args: Tuple[Any, ...]):
        self.due = due
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Virtual-clock scheduler.

    Time only moves through advance()/advance_to(); timers due on or
    before the target fire in due order, with the clock set to each
    timer's due time while it runs.
    """

    def __init__(self, start: Optional[datetime] = None):
        self._now = as_utc(start) if start is not None else utcnow()
        self._queue: List[Tuple[datetime, int, ManualTimer]] = []
        self._sequence = itertools.count()

    def now(self) -> datetime:
        return self._now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ManualTimer:
        timer = ManualTimer(self._now + timedelta(seconds=delay), callback, args)
        heapq.heappush(self._queue, (timer.due, next(self._sequence), timer))
        return timer

    def advance(self, seconds: float) -> None:
        """Move the clock forward by a number of seconds"""
        self.advance_to(self._now + timedelta(seconds=seconds))

    def advance_to(self, moment: datetime) -> None:
        """Move the clock to `moment`, firing every timer due until then"""
        moment = as_utc(moment)
        while self._queue and self._queue[0][0] <= moment:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = max(self._now, due)
            timer.callback(*timer.args)
        if moment > self._now:
            self._now = moment

    @property
    def pending(self) -> int:
        """Number of timers still waiting to fire"""
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)
