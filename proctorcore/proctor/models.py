"""
Proctoring Data Model - Observations, focus state, events and reports
"""

import csv
import io
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC so observation times stay comparable"""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def new_session_id() -> str:
    """Generate a short session ID (EXM_ + 6 hex chars)"""
    return f"EXM_{uuid.uuid4().hex[:6].upper()}"


# ============== Observations ==============

@dataclass(frozen=True)
class FaceObservation:
    """Number of faces seen on one sampling tick"""
    count: int
    observed_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class Detection:
    """A single labeled object detection"""
    label: str
    confidence: float


@dataclass(frozen=True)
class ObjectObservation:
    """All object detections from one sampling tick"""
    detections: Tuple[Detection, ...] = ()
    observed_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_pairs(cls, pairs, observed_at: Optional[datetime] = None) -> "ObjectObservation":
        """Build from an iterable of (label, confidence) pairs"""
        detections = tuple(Detection(label, confidence) for label, confidence in pairs)
        if observed_at is None:
            return cls(detections=detections)
        return cls(detections=detections, observed_at=observed_at)


# ============== Focus State ==============

@dataclass(frozen=True)
class FocusState:
    """
    Stable (debounced) focus conditions.

    Replaced wholesale on every transition; consumers only ever see
    an immutable snapshot.
    """
    lost: bool = False
    absent: bool = False
    multiple: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return {"lost": self.lost, "absent": self.absent, "multiple": self.multiple}


# ============== Events ==============

class EventKind(str, Enum):
    """Kinds of compliance events recorded in the event log"""
    NOT_FOCUSED = "not_focused"
    ABSENT = "absent"
    MULTIPLE_SUBJECTS = "multiple_subjects"
    PROHIBITED_ITEM = "prohibited_item"


EVENT_DESCRIPTIONS: Dict[EventKind, str] = {
    EventKind.NOT_FOCUSED: "User not focused > {seconds}s",
    EventKind.ABSENT: "No face > {seconds}s",
    EventKind.MULTIPLE_SUBJECTS: "Multiple faces detected",
    EventKind.PROHIBITED_ITEM: "Suspicious item detected: {label}",
}


@dataclass(frozen=True)
class Event:
    """An immutable entry of the event log"""
    kind: EventKind
    occurred_at: datetime
    session_id: str
    subject_id: str
    label: Optional[str] = None
    # Debounce window that produced the event (focus/absence only)
    window_seconds: Optional[float] = None
    # Time of the observation or timer that triggered it; occurred_at is the
    # time it was appended to the log
    observed_at: Optional[datetime] = None

    @property
    def description(self) -> str:
        """Human-readable log line"""
        template = EVENT_DESCRIPTIONS[self.kind]
        seconds = self.window_seconds
        if seconds is not None and float(seconds).is_integer():
            seconds = int(seconds)
        return template.format(seconds=seconds, label=self.label)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "description": self.description,
            "occurred_at": self.occurred_at.isoformat(),
            "session_id": self.session_id,
            "subject_id": self.subject_id,
            "label": self.label,
            "observed_at": self.observed_at.isoformat() if self.observed_at else None,
        }


# ============== Session & Report ==============

@dataclass(frozen=True)
class SessionInfo:
    """Immutable metadata for one proctoring session"""
    subject_id: str
    subject_label: str
    id: str = field(default_factory=new_session_id)
    started_at: datetime = field(default_factory=utcnow)


REPORT_ROW_LABELS: Dict[EventKind, str] = {
    EventKind.NOT_FOCUSED: "Focus Lost Count",
    EventKind.MULTIPLE_SUBJECTS: "Multiple Faces Count",
    EventKind.ABSENT: "No Face Count",
    EventKind.PROHIBITED_ITEM: "Suspicious Items Count",
}


@dataclass(frozen=True)
class Report:
    """
    Derived integrity report for a session.

    Never stored; rebuilding it from the same event log snapshot gives
    the same result.
    """
    session_id: str
    subject_label: str
    duration_seconds: int
    event_counts: Dict[EventKind, int]
    final_score: int

    @property
    def duration_display(self) -> str:
        minutes, seconds = divmod(self.duration_seconds, 60)
        return f"{minutes}m {seconds}s"

    def to_rows(self) -> List[Tuple[str, Any]]:
        """Header-less key/value rows, in report order"""
        rows: List[Tuple[str, Any]] = [
            ("Candidate Name", self.subject_label),
            ("Interview Duration", self.duration_display),
        ]
        for kind, row_label in REPORT_ROW_LABELS.items():
            rows.append((row_label, self.event_counts.get(kind, 0)))
        rows.append(("Final Integrity Score", self.final_score))
        return rows

    def to_csv(self) -> str:
        """Render the rows as comma-separated `key,value` lines"""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerows(self.to_rows())
        return buffer.getvalue().rstrip("\n")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "subject_label": self.subject_label,
            "duration_seconds": self.duration_seconds,
            "event_counts": {kind.value: count for kind, count in self.event_counts.items()},
            "final_score": self.final_score,
        }
