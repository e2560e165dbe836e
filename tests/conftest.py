"""
Pytest Configuration for Proctoring Service Tests
"""
import os
import sys
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

START = datetime(2024, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


def at(seconds: float) -> datetime:
    """Timestamp `seconds` after the test session start"""
    return START + timedelta(seconds=seconds)


class EmitRecorder:
    """Collects events emitted by a detector"""

    def __init__(self):
        self.calls = []

    def __call__(self, kind, occurred_at, label=None, window_seconds=None):
        self.calls.append({
            "kind": kind,
            "occurred_at": occurred_at,
            "label": label,
            "window_seconds": window_seconds,
        })

    def kinds(self):
        return [call["kind"] for call in self.calls]


@pytest.fixture(scope='function')
def scheduler():
    """Virtual clock starting at START"""
    from proctorcore.proctor.timing import ManualScheduler
    return ManualScheduler(start=START)


@pytest.fixture(scope='function')
def recorder():
    """Emit callback that records every event"""
    return EmitRecorder()


@pytest.fixture(scope='function')
def session(scheduler):
    """Proctoring session on the virtual clock with default settings"""
    from proctorcore.proctor.session import ProctorSession
    return ProctorSession(
        subject_id="student-42",
        subject_label="Jane Doe",
        session_id="EXM_TEST01",
        scheduler=scheduler,
    )


@pytest.fixture(scope='session')
def app():
    """Create FastAPI app for testing"""
    from proctorcore.main import app
    return app


@pytest.fixture(scope='function')
def client(app):
    """FastAPI test client; sessions are dropped after each test"""
    from proctorcore.proctor import api

    with TestClient(app) as test_client:
        yield test_client

    api._sessions.clear()
