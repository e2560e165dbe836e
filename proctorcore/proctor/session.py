"""
Proctor Session - Manages a single proctoring session
"""

import logging
import math
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from ..config import settings
from .detectors import FocusDebouncer, ItemFlagger
from .errors import InvalidObservationError
from .metrics import EventLog
from .models import (
    Event,
    EventKind,
    FaceObservation,
    FocusState,
    ObjectObservation,
    Report,
    SessionInfo,
    as_utc,
    new_session_id,
)
from .sampling import ObservationPump
from .scoring import IntegrityScorer, build_report
from .timing import AsyncioScheduler
from .utils.logging import (
    log_event_recorded,
    log_observation_rejected,
    log_session_end,
    log_session_start,
)

logger = logging.getLogger(__name__)


class ProctorSession:
    """
    Manages a single proctoring session.

    Owns the session's one FocusState (inside the focus debouncer) and its
    one EventLog. Both producers feed the same session: face observations
    go to the debouncer, object observations to the item flagger, and
    every event they emit is appended to the log. Scores and reports are
    always derived from a log snapshot.
    """

    def __init__(
        self,
        subject_id: str,
        subject_label: str,
        session_id: Optional[str] = None,
        scheduler=None,
        started_at: Optional[datetime] = None,
        focus_seconds: Optional[float] = None,
        absence_seconds: Optional[float] = None,
        rearm_each_tick: Optional[bool] = None,
        prohibited_items: Optional[Iterable[str]] = None,
        confidence_threshold: Optional[float] = None,
        weights: Optional[Dict[EventKind, int]] = None
    ):
        """
        Initialize a new proctoring session.

        Args:
            subject_id: ID of the person being proctored
            subject_label: Display name used in reports
            session_id: Optional custom session ID (auto-generated if not provided)
            scheduler: Timer scheduler; real event loop timers by default
            started_at: Session start; defaults to the scheduler clock
            focus_seconds, absence_seconds, rearm_each_tick: Debouncer overrides
            prohibited_items, confidence_threshold: Item flagger overrides
            weights: Scoring deduction overrides
        """
        self.scheduler = scheduler or AsyncioScheduler()
        self.info = SessionInfo(
            subject_id=subject_id,
            subject_label=subject_label,
            id=session_id or new_session_id(),
            started_at=as_utc(started_at) if started_at is not None else self.scheduler.now(),
        )
        self.is_active = True

        self.event_log = EventLog(
            session_id=self.info.id,
            on_append=self._on_event_appended,
            clock=self.scheduler.now,
        )
        self.debouncer = FocusDebouncer(
            emit=self._record,
            scheduler=self.scheduler,
            focus_seconds=focus_seconds,
            absence_seconds=absence_seconds,
            rearm_each_tick=rearm_each_tick,
        )
        self.flagger = ItemFlagger(
            emit=self._record,
            prohibited_items=prohibited_items,
            confidence_threshold=confidence_threshold,
        )
        self.scorer = IntegrityScorer(weights=weights)

        self._pumps: List[ObservationPump] = []
        self._final_report: Optional[Report] = None

        log_session_start(self.id, subject_id, subject_label)

    @property
    def id(self) -> str:
        return self.info.id

    @property
    def subject_id(self) -> str:
        return self.info.subject_id

    @property
    def subject_label(self) -> str:
        return self.info.subject_label

    @property
    def started_at(self) -> datetime:
        return self.info.started_at

    # ============== Event Recording ==============

    def _record(
        self,
        kind: EventKind,
        occurred_at: datetime,
        label: Optional[str] = None,
        window_seconds: Optional[float] = None
    ):
        # The log restamps occurred_at with its clock at append time
        event = Event(
            kind=kind,
            occurred_at=occurred_at,
            observed_at=occurred_at,
            session_id=self.id,
            subject_id=self.subject_id,
            label=label,
            window_seconds=window_seconds,
        )
        self.event_log.append(event)

    def _on_event_appended(self, event: Event):
        log_event_recorded(self.id, event.kind.value, event.description)

    # ============== Observations ==============

    def process_face_observation(self, observation: FaceObservation) -> Dict[str, Any]:
        """
        Apply one face count observation.

        Returns:
            Dict with processed, issues, focus_state and current_score
        """
        if not self.is_active:
            logger.debug(f"Face observation after close ignored for session {self.id}")
            return self._observation_result(False, ["session_closed"])

        try:
            self.debouncer.observe(observation)
        except InvalidObservationError as e:
            log_observation_rejected(self.id, "face", e.issues)
            return self._observation_result(False, e.issues)

        return self._observation_result(True, [])

    def process_object_observation(self, observation: ObjectObservation) -> Dict[str, Any]:
        """
        Apply one object detection observation.

        Returns:
            Dict with processed, issues, flagged labels, focus_state and current_score
        """
        if not self.is_active:
            logger.debug(f"Object observation after close ignored for session {self.id}")
            result = self._observation_result(False, ["session_closed"])
            result["flagged"] = []
            return result

        try:
            flagged = self.flagger.observe(observation)
        except InvalidObservationError as e:
            log_observation_rejected(self.id, "object", e.issues)
            result = self._observation_result(False, e.issues)
            result["flagged"] = []
            return result

        result = self._observation_result(True, [])
        result["flagged"] = flagged
        return result

    def _observation_result(self, processed: bool, issues: List[str]) -> Dict[str, Any]:
        return {
            "processed": processed,
            "issues": list(issues),
            "focus_state": self.focus_state.to_dict(),
            "current_score": self.current_score(),
        }

    # ============== Queries ==============

    @property
    def focus_state(self) -> FocusState:
        return self.debouncer.state

    def events(self) -> Tuple[Event, ...]:
        return self.event_log.snapshot()

    def recent_events(self, limit: Optional[int] = None) -> Tuple[Event, ...]:
        """Most recent events, oldest first"""
        return self.event_log.recent(limit)

    def current_score(self) -> int:
        return self.scorer.compute(self.events())

    def score_breakdown(self) -> Dict[str, Any]:
        return self.scorer.compute_breakdown(self.events())

    def duration_seconds(self, now: Optional[datetime] = None) -> int:
        now = as_utc(now) if now is not None else self.scheduler.now()
        return max(0, math.floor((now - self.started_at).total_seconds()))

    def build_report(self, now: Optional[datetime] = None) -> Report:
        """
        Build a report from the current log snapshot.

        After finalize() the stored final report is returned.
        """
        if self._final_report is not None:
            return self._final_report
        return build_report(
            self.info,
            self.events(),
            scorer=self.scorer,
            now=now if now is not None else self.scheduler.now(),
        )

    def get_status(self) -> Dict[str, Any]:
        """Snapshot of the session for status endpoints"""
        return {
            "session_id": self.id,
            "subject_id": self.subject_id,
            "subject_label": self.subject_label,
            "is_active": self.is_active,
            "focus_state": self.focus_state.to_dict(),
            "current_score": self.current_score(),
            "event_count": len(self.event_log),
            "duration_seconds": self.duration_seconds(),
            "producers": [pump.get_metrics() for pump in self._pumps],
        }

    # ============== Observation Sources ==============

    def attach_sources(
        self,
        face_source: Optional[Callable[[], Any]] = None,
        object_source: Optional[Callable[[], Any]] = None,
        face_setup: Optional[Callable[[], Awaitable[Any]]] = None,
        object_setup: Optional[Callable[[], Awaitable[Any]]] = None,
        face_interval: Optional[float] = None,
        object_interval: Optional[float] = None
    ) -> List[ObservationPump]:
        """
        Attach periodic observation sources.

        Each source gets its own pump, so the two producers run on
        independent cadences. Call start() to begin sampling.
        """
        if face_source is not None:
            self._pumps.append(ObservationPump(
                name="face",
                source=face_source,
                handler=self.process_face_observation,
                interval=settings.FACE_SAMPLE_INTERVAL if face_interval is None else face_interval,
                session_id=self.id,
                setup=face_setup,
            ))
        if object_source is not None:
            self._pumps.append(ObservationPump(
                name="object",
                source=object_source,
                handler=self.process_object_observation,
                interval=settings.OBJECT_SAMPLE_INTERVAL if object_interval is None else object_interval,
                session_id=self.id,
                setup=object_setup,
            ))
        return list(self._pumps)

    @property
    def pumps(self) -> List[ObservationPump]:
        return list(self._pumps)

    def start(self):
        """Start all attached pumps (needs a running event loop)"""
        if not self.is_active:
            return
        for pump in self._pumps:
            pump.start()

    # ============== Teardown ==============

    def close(self):
        """
        Stop accepting input.

        Cancels the pending focus timer and closes the event log; nothing
        is appended afterwards. Pumps still running should be stopped with
        shutdown().
        """
        if not self.is_active and self.event_log.closed:
            return
        self.is_active = False
        self.debouncer.close()
        self.flagger.close()
        self.event_log.close()
        logger.info(f"Session {self.id} closed")

    def finalize(self, now: Optional[datetime] = None) -> Report:
        """
        Close the session and build the final report.

        Calling it again returns the same report.
        """
        if self._final_report is not None:
            return self._final_report

        self.close()
        report = build_report(
            self.info,
            self.events(),
            scorer=self.scorer,
            now=now if now is not None else self.scheduler.now(),
        )
        self._final_report = report

        log_session_end(self.id, report.final_score, len(self.event_log), report.duration_seconds)
        logger.info(f"Session {self.id} finalized: score={report.final_score}")

        return report

    async def shutdown(self, now: Optional[datetime] = None) -> Report:
        """Stop pumps, then finalize"""
        for pump in self._pumps:
            await pump.stop()
        return self.finalize(now)
