"""
Proctoring Logger - Logs proctoring events and results
"""

import logging
from typing import Dict, Any, List, Optional

logger = logging.getLogger(__name__)


def log_proctor_event(
    session_id: str,
    event_type: str,
    details: Optional[Dict[str, Any]] = None,
    level: str = "info"
):
    """
    Log a proctoring event.

    Args:
        session_id: Proctoring session ID
        event_type: Type of event (session_start, event_recorded, session_end, etc.)
        details: Optional event details
        level: Log level (debug, info, warning, error)
    """
    message = f"[PROCTOR] session={session_id} event={event_type}"

    if details:
        detail_str = " ".join(f"{k}={v}" for k, v in details.items())
        message += f" {detail_str}"

    if level == "debug":
        logger.debug(message)
    elif level == "warning":
        logger.warning(message)
    elif level == "error":
        logger.error(message)
    else:
        logger.info(message)


def log_session_start(session_id: str, subject_id: str, subject_label: str):
    """Log session start event"""
    log_proctor_event(
        session_id=session_id,
        event_type="session_start",
        details={
            "subject_id": subject_id,
            "subject_label": subject_label
        }
    )


def log_session_end(session_id: str, integrity_score: int, event_total: int, duration_seconds: int):
    """Log session end event"""
    log_proctor_event(
        session_id=session_id,
        event_type="session_end",
        details={
            "integrity_score": integrity_score,
            "events": event_total,
            "duration_seconds": duration_seconds
        }
    )


def log_event_recorded(session_id: str, kind: str, description: str):
    """Log an event appended to the session log"""
    log_proctor_event(
        session_id=session_id,
        event_type="event_recorded",
        details={
            "kind": kind,
            "description": f'"{description}"'
        },
        level="warning"
    )


def log_observation_rejected(session_id: str, producer: str, issues: List[str]):
    """Log a malformed observation that was not applied"""
    log_proctor_event(
        session_id=session_id,
        event_type="observation_rejected",
        details={
            "producer": producer,
            "issues": ",".join(issues)
        },
        level="warning"
    )


def log_tick_skipped(session_id: str, producer: str, skipped_total: int):
    """Log a tick dropped because the previous one was still in flight"""
    log_proctor_event(
        session_id=session_id,
        event_type="tick_skipped",
        details={
            "producer": producer,
            "skipped_total": skipped_total
        },
        level="debug"
    )


def log_producer_error(session_id: str, producer: str, error: Exception):
    """Log a failing observation source"""
    log_proctor_event(
        session_id=session_id,
        event_type="producer_error",
        details={
            "producer": producer,
            "error": repr(error)
        },
        level="error"
    )
