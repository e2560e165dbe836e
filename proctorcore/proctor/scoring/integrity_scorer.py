"""
Integrity Scorer - Computes integrity score from the event log
"""

import logging
from collections import Counter
from typing import Dict, Any, Iterable, Optional

from ...config import settings
from ..models import Event, EventKind

logger = logging.getLogger(__name__)


class IntegrityScorer:
    """
    Computes a deduction-based integrity score from recorded events.

    Formula:
        integrity_score = max(0, 100
            - 2 * not_focused
            - 5 * multiple_subjects
            - 5 * absent
            - 5 * prohibited_item)

    Counts are occurrence counts of each event kind (every prohibited
    item event counts, whatever its label). Only the event log is read,
    so the same snapshot always yields the same score.
    """

    MAX_SCORE = 100

    def __init__(self, weights: Optional[Dict[EventKind, int]] = None):
        """
        Initialize scorer with optional custom weights.

        Args:
            weights: Optional dict overriding default deductions per event kind
        """
        self.weights: Dict[EventKind, int] = {
            EventKind.NOT_FOCUSED: settings.NOT_FOCUSED_DEDUCTION,
            EventKind.MULTIPLE_SUBJECTS: settings.MULTIPLE_SUBJECTS_DEDUCTION,
            EventKind.ABSENT: settings.ABSENT_DEDUCTION,
            EventKind.PROHIBITED_ITEM: settings.PROHIBITED_ITEM_DEDUCTION,
        }
        if weights:
            self.weights.update(weights)

        negative = [kind.value for kind, weight in self.weights.items() if weight < 0]
        if negative:
            logger.warning(f"Negative deductions configured for {negative}")

    @staticmethod
    def count_events(events: Iterable[Event]) -> Dict[EventKind, int]:
        """Occurrence count per event kind (zeros included)"""
        tally = Counter(event.kind for event in events)
        return {kind: tally.get(kind, 0) for kind in EventKind}

    def compute(self, events: Iterable[Event]) -> int:
        """
        Compute integrity score from events.

        Args:
            events: Event log snapshot

        Returns:
            Integrity score (0-100, higher is better)
        """
        counts = self.count_events(events)
        deductions = sum(self.weights.get(kind, 0) * count for kind, count in counts.items())

        final_score = max(0, min(self.MAX_SCORE, self.MAX_SCORE - deductions))

        logger.debug(f"Computed integrity score: {final_score} (deductions={deductions})")
        return final_score

    def compute_breakdown(self, events: Iterable[Event]) -> Dict[str, Any]:
        """
        Compute integrity score with detailed breakdown.

        Args:
            events: Event log snapshot

        Returns:
            Dict with score and per-kind deductions
        """
        counts = self.count_events(events)
        deductions = {}
        total = 0

        for kind, count in counts.items():
            weight = self.weights.get(kind, 0)
            deduction = weight * count
            deductions[kind.value] = {
                "count": count,
                "weight": weight,
                "deduction": deduction
            }
            total += deduction

        return {
            "integrity_score": max(0, min(self.MAX_SCORE, self.MAX_SCORE - total)),
            "raw_score": self.MAX_SCORE - total,
            "deductions": deductions,
            "total_deduction": total
        }
