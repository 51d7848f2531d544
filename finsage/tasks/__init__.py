"""
Celery tasks package for FinSage.

- Session auto-expiry sweeper (beat)
- Notification email delivery
"""

from .celery_app import BaseTask, celery_app
from .email import send_notification_email
from .session_sweeper import auto_end_sessions

__all__ = ["BaseTask", "auto_end_sessions", "celery_app", "send_notification_email"]
