"""
Session Replay - Runs a recorded observation trace through a session

A trace is JSON Lines, one observation per line:

    {"type": "face", "t": 0.0, "count": 1}
    {"type": "object", "t": 2.0, "detections": [{"label": "phone", "confidence": 0.9}]}

`t` is seconds since session start. An absolute `observed_at` ISO
timestamp may be given instead. Replay uses a virtual clock, so the
focus timer fires at exactly the recorded times and the result is the
same on every run. Lines need not be in time order; they are replayed
sorted by time, ties in file order.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .models import FaceObservation, ObjectObservation, Report, as_utc, utcnow
from .session import ProctorSession
from .timing import ManualScheduler

logger = logging.getLogger(__name__)

Observation = Union[FaceObservation, ObjectObservation]


@dataclass
class TraceRecord:
    """One parsed trace line"""
    producer: str
    offset: Optional[float]
    observed_at: Optional[datetime]
    payload: Dict[str, Any]


def parse_trace(lines: Iterable[str]) -> List[TraceRecord]:
    """
    Parse trace lines.

    Blank lines and `#` comments are skipped, as are records of an unknown
    type (logged). Lines that are not JSON objects raise ValueError.
    """
    records = []
    for number, line in enumerate(lines, start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise ValueError(f"Line {number}: invalid JSON ({e.msg})") from e
        if not isinstance(data, dict):
            raise ValueError(f"Line {number}: expected a JSON object")

        producer = data.get("type")
        if producer not in ("face", "object"):
            logger.warning(f"Line {number}: skipping record of unknown type {producer!r}")
            continue

        observed_at = None
        if data.get("observed_at") is not None:
            observed_at = as_utc(datetime.fromisoformat(str(data["observed_at"])))

        offset = data.get("t")
        if offset is None and observed_at is None:
            raise ValueError(f"Line {number}: record needs 't' or 'observed_at'")

        records.append(TraceRecord(
            producer=producer,
            offset=float(offset) if offset is not None else None,
            observed_at=observed_at,
            payload=data,
        ))
    return records


def _to_observation(record: TraceRecord, start: datetime) -> Tuple[datetime, Observation]:
    at = record.observed_at or start + timedelta(seconds=record.offset)

    if record.producer == "face":
        return at, FaceObservation(count=record.payload.get("count"), observed_at=at)

    pairs = [
        (item.get("label"), item.get("confidence"))
        for item in record.payload.get("detections") or []
    ]
    return at, ObjectObservation.from_pairs(pairs, observed_at=at)


def replay(
    records: Iterable[TraceRecord],
    subject_id: str = "replay",
    subject_label: str = "Replay",
    start: Optional[datetime] = None,
    duration: Optional[float] = None,
    **session_options: Any
) -> Tuple[ProctorSession, Report]:
    """
    Replay trace records through a fresh session.

    Args:
        records: Parsed trace
        subject_id, subject_label: Session subject
        start: Session start; defaults to the first absolute timestamp in
            the trace, else the current time
        duration: Seconds after start at which the session is finalized;
            defaults to the last observation
        **session_options: Passed to ProctorSession (focus_seconds, ...)

    Returns:
        The finalized session and its report
    """
    records = list(records)
    if start is None:
        absolute = [r.observed_at for r in records if r.observed_at is not None]
        start = min(absolute) if absolute else utcnow()
    start = as_utc(start)

    scheduler = ManualScheduler(start=start)
    session = ProctorSession(
        subject_id=subject_id,
        subject_label=subject_label,
        scheduler=scheduler,
        started_at=start,
        **session_options
    )

    # Stable sort, so lines with equal times keep their file order
    timeline = sorted(
        ((record.producer,) + _to_observation(record, start) for record in records),
        key=lambda item: item[1],
    )
    for producer, at, observation in timeline:
        # Timers due before this observation fire first
        scheduler.advance_to(at)
        if producer == "face":
            session.process_face_observation(observation)
        else:
            session.process_object_observation(observation)

    if duration is not None:
        scheduler.advance_to(start + timedelta(seconds=duration))

    report = session.finalize(scheduler.now())
    logger.info(f"Replayed {len(records)} observations for session {session.id}")

    return session, report
