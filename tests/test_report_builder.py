"""
Tests for the Report Builder and report rendering
"""

from conftest import START, at


def make_session_info():
    from proctorcore.proctor.models import SessionInfo
    return SessionInfo(
        subject_id="student-42",
        subject_label="Jane Doe",
        id="EXM_TEST01",
        started_at=START,
    )


class TestBuildReport:
    """Tests for build_report"""

    def test_empty_log(self):
        """No events: all counts zero and a perfect score"""
        from proctorcore.proctor.scoring import build_report

        report = build_report(make_session_info(), [], now=at(90))

        assert report.final_score == 100
        assert set(report.event_counts.values()) == {0}
        assert report.duration_seconds == 90

    def test_counts_and_score(self):
        from proctorcore.proctor.models import Event, EventKind
        from proctorcore.proctor.scoring import build_report

        events = [
            Event(EventKind.NOT_FOCUSED, at(5), "EXM_TEST01", "student-42"),
            Event(EventKind.NOT_FOCUSED, at(30), "EXM_TEST01", "student-42"),
            Event(EventKind.MULTIPLE_SUBJECTS, at(40), "EXM_TEST01", "student-42"),
        ]
        report = build_report(make_session_info(), events, now=at(125.9))

        assert report.event_counts[EventKind.NOT_FOCUSED] == 2
        assert report.event_counts[EventKind.MULTIPLE_SUBJECTS] == 1
        assert report.final_score == 91
        assert report.duration_seconds == 125
        assert report.duration_display == "2m 5s"

    def test_duration_never_negative(self):
        from proctorcore.proctor.scoring import build_report

        report = build_report(make_session_info(), [], now=at(-3))
        assert report.duration_seconds == 0


class TestReportRendering:
    """Tests for Report rows and CSV output"""

    def test_rows(self):
        from proctorcore.proctor.models import Event, EventKind
        from proctorcore.proctor.scoring import build_report

        events = [Event(EventKind.PROHIBITED_ITEM, at(2), "EXM_TEST01", "student-42", label="phone")]
        report = build_report(make_session_info(), events, now=at(61))

        assert report.to_rows() == [
            ("Candidate Name", "Jane Doe"),
            ("Interview Duration", "1m 1s"),
            ("Focus Lost Count", 0),
            ("Multiple Faces Count", 0),
            ("No Face Count", 0),
            ("Suspicious Items Count", 1),
            ("Final Integrity Score", 95),
        ]

    def test_csv(self):
        from proctorcore.proctor.scoring import build_report

        report = build_report(make_session_info(), [], now=at(0))

        assert report.to_csv().splitlines() == [
            "Candidate Name,Jane Doe",
            "Interview Duration,0m 0s",
            "Focus Lost Count,0",
            "Multiple Faces Count,0",
            "No Face Count,0",
            "Suspicious Items Count,0",
            "Final Integrity Score,100",
        ]

    def test_csv_quotes_names_with_commas(self):
        from proctorcore.proctor.models import SessionInfo
        from proctorcore.proctor.scoring import build_report

        info = SessionInfo(subject_id="s", subject_label="Doe, Jane", started_at=START)
        report = build_report(info, [], now=at(0))

        assert report.to_csv().splitlines()[0] == 'Candidate Name,"Doe, Jane"'

    def test_to_dict(self):
        from proctorcore.proctor.scoring import build_report

        data = build_report(make_session_info(), [], now=at(10)).to_dict()

        assert data["session_id"] == "EXM_TEST01"
        assert data["final_score"] == 100
        assert data["event_counts"] == {
            "not_focused": 0,
            "absent": 0,
            "multiple_subjects": 0,
            "prohibited_item": 0,
        }
