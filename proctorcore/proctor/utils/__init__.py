"""Utility modules"""

from .observation_checks import check_face_observation, check_object_observation
from .logging import log_proctor_event

__all__ = ["check_face_observation", "check_object_observation", "log_proctor_event"]
