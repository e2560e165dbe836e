"""
Event Log - Append-only record of compliance events for one session
"""

import logging
import threading
from collections import Counter
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from ...config import settings
from ..models import Event, EventKind, as_utc

logger = logging.getLogger(__name__)


class EventLog:
    """
    Ordered, append-only sequence of events.

    append() is the only mutator and is serialized by a lock, so the two
    producers can record events concurrently. Append order is the total
    order of the log. Readers get snapshots, never the live list.
    Once closed the log refuses further appends.

    With a `clock`, each event is stamped at append time, never earlier
    than the event before it, so append order is also time order even
    when an observation arrives late. The `on_append` callback runs under
    the lock and sees events in log order.
    """

    def __init__(
        self,
        session_id: str,
        on_append: Optional[Callable[[Event], None]] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.session_id = session_id
        self._events: List[Event] = []
        self._lock = threading.Lock()
        self._closed = False
        self._on_append = on_append
        self._clock = clock

    def append(self, event: Event) -> bool:
        """
        Append an event.

        Returns:
            True if recorded, False if the log is already closed
        """
        with self._lock:
            if self._closed:
                logger.debug(f"Dropping {event.kind.value} for closed log {self.session_id}")
                return False
            if self._clock is not None:
                stamp = as_utc(self._clock())
                if self._events and stamp < self._events[-1].occurred_at:
                    stamp = self._events[-1].occurred_at
                event = replace(event, occurred_at=stamp)
            self._events.append(event)

            if self._on_append is not None:
                self._on_append(event)
        return True

    def snapshot(self) -> Tuple[Event, ...]:
        """Current contents in append order"""
        with self._lock:
            return tuple(self._events)

    def recent(self, limit: Optional[int] = None) -> Tuple[Event, ...]:
        """The last `limit` events in append order (RECENT_EVENTS_LIMIT by default)"""
        if limit is None:
            limit = settings.RECENT_EVENTS_LIMIT
        if limit <= 0:
            return ()
        with self._lock:
            return tuple(self._events[-limit:])

    def count(self, kind: EventKind) -> int:
        with self._lock:
            return sum(1 for event in self._events if event.kind is kind)

    def counts(self) -> Dict[EventKind, int]:
        """Occurrence count for every event kind (zeros included)"""
        with self._lock:
            tally = Counter(event.kind for event in self._events)
        return {kind: tally.get(kind, 0) for kind in EventKind}

    def close(self):
        with self._lock:
            self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
