"""
Proctoring Module

Monitors session integrity from periodic observations:
- Sustained single-face focus loss
- Face absence
- Multiple-person presence
- Prohibited objects

Produces an Integrity Score (0-100) and a report for each session.
"""

from .api import router

__all__ = ["router"]
