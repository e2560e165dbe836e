"""
Proctoring Integrity Service

Debounced attention and compliance monitoring for remote sessions.
"""

__version__ = "1.0.0"
