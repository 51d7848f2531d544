# finsage/tasks/session_sweeper.py
"""Periodic completion of sessions whose scheduled time has passed."""

import logging
from typing import Any, Dict

from ..database import SessionLocal
from ..services.session_sweeper_service import SessionSweeperService
from .celery_app import BaseTask, celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    base=BaseTask,
    name="finsage.tasks.session_sweeper.auto_end_sessions",
    bind=True,
    max_retries=2,
)
def auto_end_sessions(self) -> Dict[str, Any]:
    db = SessionLocal()
    try:
        return SessionSweeperService(db).run()
    finally:
        db.close()
