# finsage/services/template_service.py
"""Jinja2 rendering for transactional email templates."""

from datetime import datetime, timezone
import logging
from pathlib import Path
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, TemplateNotFound

from ..core.config import settings
from ..core.constants import BRAND_NAME
from ..core.exceptions import ServiceException

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


class TemplateService:
    """
    Renders templates under ``finsage/templates`` with a shared base context.

    Autoescaping is on: user-supplied text such as credit-request reasons
    and inquiry messages ends up in admin inboxes.
    """

    def __init__(self) -> None:
        self.env = Environment(
            loader=FileSystemLoader(TEMPLATE_DIR),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def get_common_context(self) -> Dict[str, Any]:
        return {
            "brand_name": BRAND_NAME,
            "current_year": datetime.now(timezone.utc).year,
            "frontend_url": settings.frontend_url,
            "support_email": settings.support_email,
        }

    def render_template(self, template_name: str, context: Dict[str, Any]) -> str:
        try:
            template = self.env.get_template(template_name)
        except TemplateNotFound as exc:
            logger.error("Email template not found: %s", template_name)
            raise ServiceException(f"Template not found: {template_name}") from exc
        return template.render(**{**self.get_common_context(), **context})

    def smoke_check(self) -> int:
        """Compile every email template; raises on the first syntax error."""
        names = self.env.list_templates(filter_func=lambda name: name.startswith("email/"))
        for name in names:
            self.env.get_template(name)
        return len(names)
