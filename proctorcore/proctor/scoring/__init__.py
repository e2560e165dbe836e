"""Scoring modules"""

from .integrity_scorer import IntegrityScorer
from .report_builder import build_report

__all__ = ["IntegrityScorer", "build_report"]
