"""
Proctoring Integrity Service Configuration

Debounce windows, prohibited item policy, deduction weights and
sampling cadences. Every value can be overridden from the environment
or a local .env file.
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Configuration for the proctoring integrity service."""

    # API Settings
    APP_NAME: str = "Proctoring Integrity Service"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    PORT: int = 8001

    # Focus debouncer
    FOCUS_LOST_SECONDS: float = 5.0
    # Legacy arming: every single-face tick restarts the focus timer
    FOCUS_REARM_EACH_TICK: bool = False
    ABSENCE_SECONDS: float = 10.0

    # Item flagger ("cell phone" is what COCO-trained detectors report)
    PROHIBITED_ITEMS: List[str] = ["phone", "cell phone", "book", "laptop"]
    ITEM_CONFIDENCE_THRESHOLD: float = 0.6

    # Deductions per recorded event
    NOT_FOCUSED_DEDUCTION: int = 2
    MULTIPLE_SUBJECTS_DEDUCTION: int = 5
    ABSENT_DEDUCTION: int = 5
    PROHIBITED_ITEM_DEDUCTION: int = 5

    # Sampling cadences (seconds)
    FACE_SAMPLE_INTERVAL: float = 1.0
    OBJECT_SAMPLE_INTERVAL: float = 2.0

    # Live event panel size
    RECENT_EVENTS_LIMIT: int = 15

    # Delay before a stopped session is dropped from memory
    SESSION_CLEANUP_DELAY: float = 60.0

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
