"""Observation consumers for proctoring"""

from .focus_debouncer import FocusDebouncer
from .item_flagger import ItemFlagger

__all__ = [
    "FocusDebouncer",
    "ItemFlagger"
]
