"""
Focus Debouncer - Turns noisy per-tick face counts into stable focus events

Three independent conditions are evaluated on every face observation:

- NOT_FOCUSED: a single-shot timer is armed while exactly one face is
  visible; when it fires the subject is marked `lost` and one event is
  emitted. Any tick with a count other than one cancels the timer and
  clears `lost`.
- ABSENT: zero faces for strictly longer than the absence window marks
  the subject `absent` and emits one event. Any face clears it.
- MULTIPLE_SUBJECTS: emitted on the tick the count rises above one.
  Cleared when it drops back to one or zero.

Events are edge-triggered: clearing a condition never emits anything.
"""

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from ...config import settings
from ..models import EventKind, FaceObservation, FocusState, as_utc
from ..utils.observation_checks import check_face_observation, require_valid

logger = logging.getLogger(__name__)

# emit(kind, occurred_at, label=None, window_seconds=None)
EmitFn = Callable[..., None]


class FocusDebouncer:
    """
    Hysteresis state machine over FaceObservations.

    Owns the session's single FocusState. Every transition happens under
    one lock, whether it is triggered by an observation or by the focus
    timer firing. Each armed timer carries a generation number; a timer
    whose generation is no longer current when it fires is discarded, so
    a cancelled timer can never emit after the state was reset.

    By default the focus timer is armed once when a single-face streak
    starts, so a steady single face yields one NOT_FOCUSED after the
    window. Restarting the timer on every single-face observation, which
    never fires while observations arrive faster than the window, is
    available with `rearm_each_tick` or `FOCUS_REARM_EACH_TICK`.
    """

    def __init__(
        self,
        emit: EmitFn,
        scheduler,
        focus_seconds: Optional[float] = None,
        absence_seconds: Optional[float] = None,
        rearm_each_tick: Optional[bool] = None
    ):
        """
        Initialize focus debouncer.

        Args:
            emit: Called with (kind, occurred_at, window_seconds=...) per event
            scheduler: Provides now() and call_later(delay, callback, *args)
            focus_seconds: Single-face hold time before NOT_FOCUSED fires
            absence_seconds: Zero-face time that must be exceeded for ABSENT
            rearm_each_tick: Restart the focus timer on every single-face tick
        """
        self._emit = emit
        self._scheduler = scheduler
        self.focus_seconds = settings.FOCUS_LOST_SECONDS if focus_seconds is None else focus_seconds
        self.absence_seconds = settings.ABSENCE_SECONDS if absence_seconds is None else absence_seconds
        self.rearm_each_tick = (
            settings.FOCUS_REARM_EACH_TICK if rearm_each_tick is None else rearm_each_tick
        )

        self._lock = threading.RLock()
        self._state = FocusState()
        self._absence_start: Optional[datetime] = None
        self._focus_timer = None
        self._generation = 0
        self._closed = False

        self._observation_count = 0
        self._rejected_count = 0
        self._stale_timer_count = 0

    @property
    def state(self) -> FocusState:
        """Immutable snapshot of the current focus state"""
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def observe(self, observation: FaceObservation) -> FocusState:
        """
        Apply one face observation.

        Raises:
            InvalidObservationError: the observation is malformed; no
                state was changed.

        Returns:
            The focus state after the observation
        """
        try:
            require_valid(check_face_observation(observation), "face")
        except ValueError:
            self._rejected_count += 1
            raise

        with self._lock:
            if self._closed:
                logger.debug("Face observation ignored: debouncer closed")
                return self._state

            count = observation.count
            now = as_utc(observation.observed_at)
            self._observation_count += 1

            self._update_focus(count)
            self._update_absence(count, now)
            self._update_multiple(count, now)

            return self._state

    # ============== Conditions ==============

    def _update_focus(self, count: int):
        if count == 1:
            if self.rearm_each_tick:
                self._arm_focus_timer()
            elif self._focus_timer is None and not self._state.lost:
                self._arm_focus_timer()
            return

        self._cancel_focus_timer()
        if self._state.lost:
            self._state = replace(self._state, lost=False)

    def _update_absence(self, count: int, now: datetime):
        if count == 0:
            if self._absence_start is None:
                self._absence_start = now
            elif not self._state.absent:
                elapsed = (now - self._absence_start).total_seconds()
                if elapsed > self.absence_seconds:
                    self._state = replace(self._state, absent=True)
                    self._emit(EventKind.ABSENT, now, window_seconds=self.absence_seconds)
            return

        self._absence_start = None
        if self._state.absent:
            self._state = replace(self._state, absent=False)

    def _update_multiple(self, count: int, now: datetime):
        if count > 1:
            if not self._state.multiple:
                self._state = replace(self._state, multiple=True)
                self._emit(EventKind.MULTIPLE_SUBJECTS, now)
        elif self._state.multiple:
            self._state = replace(self._state, multiple=False)

    # ============== Focus Timer ==============

    def _arm_focus_timer(self):
        self._cancel_focus_timer()
        generation = self._generation
        self._focus_timer = self._scheduler.call_later(
            self.focus_seconds, self._on_focus_timer, generation
        )

    def _cancel_focus_timer(self):
        if self._focus_timer is not None:
            self._focus_timer.cancel()
            self._focus_timer = None
        self._generation += 1

    def _on_focus_timer(self, generation: int):
        with self._lock:
            if self._closed or generation != self._generation:
                self._stale_timer_count += 1
                logger.debug(f"Discarding stale focus timer (generation {generation})")
                return

            self._focus_timer = None
            if self._state.lost:
                return

            self._state = replace(self._state, lost=True)
            self._emit(
                EventKind.NOT_FOCUSED,
                self._scheduler.now(),
                window_seconds=self.focus_seconds
            )

    # ============== Lifecycle ==============

    def close(self):
        """Cancel any pending timer; later observations and timers are ignored"""
        with self._lock:
            self._closed = True
            self._cancel_focus_timer()

    def get_metrics(self) -> Dict[str, Any]:
        """Get debouncer counters"""
        return {
            "observations": self._observation_count,
            "rejected": self._rejected_count,
            "stale_timers": self._stale_timer_count,
            "focus_timer_armed": self._focus_timer is not None,
            "focus_seconds": self.focus_seconds,
            "absence_seconds": self.absence_seconds,
        }
