#!/usr/bin/env python3
"""
Replay a Recorded Proctoring Session

Runs a JSON Lines observation trace through a session on a virtual clock
and prints the integrity report.

Usage:
    python scripts/replay_session.py trace.jsonl
    python scripts/replay_session.py trace.jsonl --name "Jane Doe" --duration 600
    python scripts/replay_session.py trace.jsonl --json --events
"""

import sys
import json
import logging
import argparse
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from proctorcore.proctor.replay import parse_trace, replay
from proctorcore.utils.logging import setup_logger


def main():
    parser = argparse.ArgumentParser(description="Replay a recorded proctoring session")
    parser.add_argument("trace", type=Path, help="JSON Lines observation trace")
    parser.add_argument("--name", default="Replay", help="Candidate name for the report")
    parser.add_argument("--subject-id", default="replay", help="Subject ID")
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Finalize the session this many seconds after start (default: last observation)"
    )
    parser.add_argument("--focus-seconds", type=float, default=None, help="Override focus window")
    parser.add_argument("--absence-seconds", type=float, default=None, help="Override absence window")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON instead of CSV")
    parser.add_argument("--events", action="store_true", help="Also print the event log")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show proctoring logs")

    args = parser.parse_args()

    setup_logger("proctorcore", logging.DEBUG if args.verbose else logging.WARNING)

    if not args.trace.exists():
        print(f"Trace not found: {args.trace}", file=sys.stderr)
        sys.exit(1)

    try:
        with args.trace.open(encoding="utf-8") as handle:
            records = parse_trace(handle)
    except ValueError as e:
        print(f"Invalid trace: {e}", file=sys.stderr)
        sys.exit(1)

    session, report = replay(
        records,
        subject_id=args.subject_id,
        subject_label=args.name,
        duration=args.duration,
        focus_seconds=args.focus_seconds,
        absence_seconds=args.absence_seconds,
    )

    if args.events:
        for event in session.events():
            print(f"{event.occurred_at.isoformat()}  {event.description}")
        print()

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(report.to_csv())


if __name__ == "__main__":
    main()
