# finsage/tasks/email.py
"""Asynchronous delivery of notification emails."""

import logging
from typing import Any, Dict, List, Union

from ..database import SessionLocal
from ..services.email import EmailService
from .celery_app import BaseTask, celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    base=BaseTask,
    name="finsage.tasks.email.send_notification_email",
    bind=True,
    max_retries=3,
)
def send_notification_email(
    self, to: Union[str, List[str]], subject: str, html_content: str
) -> Dict[str, Any]:
    """
    Send one already-rendered notification email.

    Returns:
        dict: Provider response
    """
    db = SessionLocal()
    try:
        result = EmailService(db).send_email(to, subject, html_content)
    except Exception as exc:
        logger.error(f"Failed to send notification email '{subject}': {exc}")
        raise self.retry(exc=exc, countdown=60 * (2**self.request.retries))
    finally:
        db.close()
    return {"status": "success", "provider_response": result}
