"""
Observation Checks - Validates observations before they reach state machines
"""

import logging
import math
from datetime import datetime
from numbers import Real
from typing import Any, Dict, List

from ..errors import InvalidObservationError
from ..models import FaceObservation, ObjectObservation

logger = logging.getLogger(__name__)


def _timestamp_issues(observed_at: Any) -> List[str]:
    if not isinstance(observed_at, datetime):
        return ["invalid_timestamp"]
    return []


def check_face_observation(observation: FaceObservation) -> Dict[str, Any]:
    """
    Check a face observation.

    Args:
        observation: Face count for one tick

    Returns:
        Dict with:
            - is_valid: bool
            - issues: List of problems found
    """
    issues = []

    count = getattr(observation, "count", None)
    # bool is an int subclass but never a face count
    if isinstance(count, bool) or not isinstance(count, int):
        issues.append("count_not_integer")
    elif count < 0:
        issues.append("negative_count")

    issues.extend(_timestamp_issues(getattr(observation, "observed_at", None)))

    return {"is_valid": len(issues) == 0, "issues": issues}


def check_object_observation(observation: ObjectObservation) -> Dict[str, Any]:
    """
    Check an object observation.

    Every detection needs a non-empty label and a confidence in [0, 1].
    One bad detection invalidates the whole observation.

    Returns:
        Dict with:
            - is_valid: bool
            - issues: List of problems found (indexed per detection)
    """
    issues = []

    detections = getattr(observation, "detections", None)
    if detections is None or isinstance(detections, (str, bytes)):
        issues.append("detections_not_sequence")
        detections = ()

    for index, detection in enumerate(detections):
        label = getattr(detection, "label", None)
        confidence = getattr(detection, "confidence", None)

        if not isinstance(label, str) or not label.strip():
            issues.append(f"detection[{index}]:empty_label")

        if isinstance(confidence, bool) or not isinstance(confidence, Real):
            issues.append(f"detection[{index}]:confidence_not_number")
        elif math.isnan(confidence) or not 0.0 <= confidence <= 1.0:
            issues.append(f"detection[{index}]:confidence_out_of_range")

    issues.extend(_timestamp_issues(getattr(observation, "observed_at", None)))

    return {"is_valid": len(issues) == 0, "issues": issues}


def require_valid(check: Dict[str, Any], producer: str) -> None:
    """Raise InvalidObservationError if a check failed"""
    if not check["is_valid"]:
        logger.debug(f"{producer} observation issues: {check['issues']}")
        raise InvalidObservationError(check["issues"], producer=producer)
