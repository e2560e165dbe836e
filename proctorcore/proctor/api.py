"""
Proctoring API - FastAPI endpoints for session integrity monitoring

Endpoints:
- POST /api/proctor/start - Start a proctoring session
- POST /api/proctor/faces - Submit a face count observation
- POST /api/proctor/objects - Submit object detections
- GET /api/proctor/status/{session_id} - Get session status
- GET /api/proctor/events/{session_id} - Get recorded events
- GET /api/proctor/report/{session_id} - Get the integrity report
- GET /api/proctor/report/{session_id}/csv - Download the report as CSV
- POST /api/proctor/stop - Stop session and get final report
"""

import asyncio
import logging
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel, Field

from ..config import settings
from .errors import SessionClosedError
from .models import FaceObservation, ObjectObservation, Report, utcnow
from .session import ProctorSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/proctor", tags=["Proctoring"])

# In-memory session storage
_sessions: Dict[str, ProctorSession] = {}


# ============== Request/Response Models ==============

class StartSessionRequest(BaseModel):
    """Request to start a proctoring session"""
    subject_id: str = Field(..., description="ID of the person being proctored")
    subject_label: str = Field(..., description="Display name used in reports")
    session_id: Optional[str] = Field(None, description="Optional custom session ID")


class StartSessionResponse(BaseModel):
    """Response after starting a session"""
    session_id: str
    status: str
    message: str


class FaceObservationRequest(BaseModel):
    """Face count from one sampling tick"""
    session_id: str
    count: int = Field(..., description="Number of faces detected")
    observed_at: Optional[datetime] = Field(None, description="Observation time (default: now)")


class DetectionModel(BaseModel):
    label: str
    confidence: float


class ObjectObservationRequest(BaseModel):
    """Object detections from one sampling tick"""
    session_id: str
    detections: List[DetectionModel] = Field(default_factory=list)
    observed_at: Optional[datetime] = Field(None, description="Observation time (default: now)")


class FocusStateModel(BaseModel):
    lost: bool
    absent: bool
    multiple: bool


class ObservationResponse(BaseModel):
    """Result of applying one observation"""
    processed: bool
    issues: List[str] = []
    focus_state: FocusStateModel
    current_score: int
    flagged: Optional[List[str]] = None


class EventModel(BaseModel):
    kind: str
    description: str
    occurred_at: datetime
    session_id: str
    subject_id: str
    label: Optional[str] = None
    observed_at: Optional[datetime] = None


class EventsResponse(BaseModel):
    session_id: str
    total: int
    events: List[EventModel]


class SessionStatusResponse(BaseModel):
    """Current session status"""
    session_id: str
    subject_id: str
    subject_label: str
    is_active: bool
    focus_state: FocusStateModel
    current_score: int
    event_count: int
    duration_seconds: int


class ReportResponse(BaseModel):
    """Integrity report"""
    session_id: str
    subject_label: str
    duration_seconds: int
    duration_display: str
    event_counts: Dict[str, int]
    final_score: int


class StopSessionRequest(BaseModel):
    """Request to stop a proctoring session"""
    session_id: str


# ============== Helpers ==============

def _get_session(session_id: str, require_active: bool = False) -> ProctorSession:
    session = _sessions.get(session_id)

    if not session:
        raise HTTPException(status_code=404, detail="Session not found")

    if require_active and not session.is_active:
        # Mapped to 400 by the application exception handler
        raise SessionClosedError(session_id)

    return session


def _report_response(report: Report) -> ReportResponse:
    data = report.to_dict()
    return ReportResponse(duration_display=report.duration_display, **data)


def _discard_session(session_id: str):
    if _sessions.pop(session_id, None) is not None:
        logger.info(f"Cleaned up session: {session_id}")


def _schedule_cleanup(session_id: str):
    """Drop a stopped session after a delay so late requests still see it"""
    asyncio.get_running_loop().call_later(
        settings.SESSION_CLEANUP_DELAY, _discard_session, session_id
    )


# ============== API Endpoints ==============

@router.post("/start", response_model=StartSessionResponse)
async def start_session(request: StartSessionRequest):
    """
    Start a new proctoring session.

    Observations are pushed to /faces and /objects by the client.
    """
    if request.session_id and request.session_id in _sessions:
        raise HTTPException(status_code=409, detail="Session already exists")

    session = ProctorSession(
        subject_id=request.subject_id,
        subject_label=request.subject_label,
        session_id=request.session_id
    )
    _sessions[session.id] = session

    logger.info(f"Started proctoring session: {session.id}")

    return StartSessionResponse(
        session_id=session.id,
        status="active",
        message="Proctoring session started successfully"
    )


@router.post("/faces", response_model=ObservationResponse)
async def submit_faces(request: FaceObservationRequest):
    """
    Apply one face count observation.

    A malformed observation is reported with processed=false and its
    issues; it never changes the session state.
    """
    session = _get_session(request.session_id, require_active=True)

    observation = FaceObservation(
        count=request.count,
        observed_at=request.observed_at or utcnow()
    )
    return ObservationResponse(**session.process_face_observation(observation))


@router.post("/objects", response_model=ObservationResponse)
async def submit_objects(request: ObjectObservationRequest):
    """Apply one object detection observation"""
    session = _get_session(request.session_id, require_active=True)

    observation = ObjectObservation.from_pairs(
        ((d.label, d.confidence) for d in request.detections),
        observed_at=request.observed_at
    )
    return ObservationResponse(**session.process_object_observation(observation))


@router.get("/status/{session_id}", response_model=SessionStatusResponse)
async def get_session_status(session_id: str):
    """
    Get current status of a proctoring session.
    """
    session = _get_session(session_id)
    status = session.get_status()
    status.pop("producers", None)
    return SessionStatusResponse(**status)


@router.get("/events/{session_id}", response_model=EventsResponse)
async def get_session_events(session_id: str, limit: Optional[int] = Query(None, ge=0)):
    """
    Get recorded events in append order.

    With `limit`, only the most recent `limit` events are returned.
    """
    session = _get_session(session_id)
    events = session.events() if limit is None else session.recent_events(limit)

    return EventsResponse(
        session_id=session.id,
        total=len(session.event_log),
        events=[EventModel(**event.to_dict()) for event in events]
    )


@router.get("/report/{session_id}", response_model=ReportResponse)
async def get_report(session_id: str):
    """Build the integrity report; may be requested mid-session"""
    session = _get_session(session_id)
    return _report_response(session.build_report())


@router.get("/report/{session_id}/csv")
async def download_report_csv(session_id: str):
    """Download the integrity report as CSV"""
    session = _get_session(session_id)
    report = session.build_report()

    return Response(
        content=report.to_csv() + "\n",
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{session.id}_proctoring_report.csv"'
        }
    )


@router.post("/stop", response_model=ReportResponse)
async def stop_session(request: StopSessionRequest):
    """
    Stop a proctoring session and get the final report.

    The session stays readable for SESSION_CLEANUP_DELAY seconds.
    """
    session = _get_session(request.session_id)

    report = await session.shutdown()
    _schedule_cleanup(session.id)

    return _report_response(report)


# ============== Health Check ==============

@router.get("/health")
async def health_check():
    """Health check for proctoring module"""
    return {
        "status": "healthy",
        "active_sessions": sum(1 for s in _sessions.values() if s.is_active),
        "tracked_sessions": len(_sessions),
        "module": "proctoring"
    }
