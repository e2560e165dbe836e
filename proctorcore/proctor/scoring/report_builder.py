"""
Report Builder - Combines session metadata, events and score into a report
"""

import math
from datetime import datetime
from typing import Iterable, Optional

from ..models import Event, Report, SessionInfo, as_utc, utcnow
from .integrity_scorer import IntegrityScorer


def build_report(
    session: SessionInfo,
    events: Iterable[Event],
    scorer: Optional[IntegrityScorer] = None,
    now: Optional[datetime] = None
) -> Report:
    """
    Build an integrity report.

    Duration is measured up to `now` (request time), so a report can be
    requested while the session is still running.

    Args:
        session: Session metadata
        events: Event log snapshot
        scorer: Scorer to use (default weights when omitted)
        now: Report time; defaults to the current UTC time

    Returns:
        Report with counts per event kind and the final score
    """
    scorer = scorer or IntegrityScorer()
    events = tuple(events)
    now = as_utc(now) if now is not None else utcnow()

    elapsed = (now - as_utc(session.started_at)).total_seconds()
    duration_seconds = max(0, math.floor(elapsed))

    return Report(
        session_id=session.id,
        subject_label=session.subject_label,
        duration_seconds=duration_seconds,
        event_counts=scorer.count_events(events),
        final_score=scorer.compute(events),
    )

