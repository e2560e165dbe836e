"""
Proctoring Errors
"""

from typing import List, Optional


class ProctorError(Exception):
    """Base class for proctoring errors"""


class InvalidObservationError(ProctorError, ValueError):
    """An observation failed validation and was not applied"""

    def __init__(self, issues: List[str], producer: Optional[str] = None):
        self.issues = list(issues)
        self.producer = producer
        prefix = f"{producer} observation" if producer else "Observation"
        super().__init__(f"{prefix} rejected: {', '.join(self.issues)}")


class SessionClosedError(ProctorError):
    """The session no longer accepts observations"""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} is not active")
