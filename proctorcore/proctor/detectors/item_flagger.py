"""
Item Flagger - Flags prohibited items in object detections

Level-triggered on purpose: an item that stays visible for N ticks
produces N events, and each is deducted from the score.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from ...config import settings
from ..models import EventKind, ObjectObservation, as_utc
from ..utils.observation_checks import check_object_observation, require_valid

logger = logging.getLogger(__name__)


def normalize_label(label: str) -> str:
    return label.strip().lower()


class ItemFlagger:
    """
    Emits one PROHIBITED_ITEM event per qualifying detection per tick.

    A detection qualifies when its normalized label is in the prohibited
    set and its confidence is strictly above the threshold.
    """

    def __init__(
        self,
        emit: Callable[..., None],
        prohibited_items: Optional[Iterable[str]] = None,
        confidence_threshold: Optional[float] = None
    ):
        """
        Initialize item flagger.

        Args:
            emit: Called with (kind, occurred_at, label=...) per flagged item
            prohibited_items: Labels to flag (case-insensitive)
            confidence_threshold: Confidence a detection must exceed
        """
        self._emit = emit
        items = settings.PROHIBITED_ITEMS if prohibited_items is None else prohibited_items
        self.prohibited_items: Set[str] = {normalize_label(item) for item in items}
        self.confidence_threshold = (
            settings.ITEM_CONFIDENCE_THRESHOLD
            if confidence_threshold is None else confidence_threshold
        )
        self._closed = False

        self._observation_count = 0
        self._rejected_count = 0
        self._flagged_count = 0

    def observe(self, observation: ObjectObservation) -> List[str]:
        """
        Flag prohibited items in one object observation.

        Raises:
            InvalidObservationError: the observation is malformed; nothing
                was emitted.

        Returns:
            Labels flagged on this tick, in detection order
        """
        try:
            require_valid(check_object_observation(observation), "object")
        except ValueError:
            self._rejected_count += 1
            raise

        if self._closed:
            logger.debug("Object observation ignored: flagger closed")
            return []

        self._observation_count += 1
        now = as_utc(observation.observed_at)
        flagged = []

        for detection in observation.detections:
            label = normalize_label(detection.label)
            if label in self.prohibited_items and detection.confidence > self.confidence_threshold:
                flagged.append(label)
                self._emit(EventKind.PROHIBITED_ITEM, now, label=label)

        self._flagged_count += len(flagged)
        return flagged

    def close(self):
        self._closed = True

    def get_metrics(self) -> Dict[str, Any]:
        """Get flagger counters"""
        return {
            "observations": self._observation_count,
            "rejected": self._rejected_count,
            "flagged": self._flagged_count,
            "prohibited_items": sorted(self.prohibited_items),
            "confidence_threshold": self.confidence_threshold,
        }
