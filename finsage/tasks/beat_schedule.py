# finsage/tasks/beat_schedule.py
"""Celery Beat schedule for FinSage."""

from datetime import timedelta
from typing import Any, Dict, Optional

from ..core.config import settings


def get_beat_schedule(interval_minutes: Optional[int] = None) -> Dict[str, Dict[str, Any]]:
    minutes = interval_minutes or settings.sweeper_interval_minutes
    return {
        "auto-end-sessions": {
            "task": "finsage.tasks.session_sweeper.auto_end_sessions",
            "schedule": timedelta(minutes=minutes),
            "options": {
                "queue": "maintenance",
                # A missed run is covered by the next one
                "expires": minutes * 60,
            },
        },
    }
