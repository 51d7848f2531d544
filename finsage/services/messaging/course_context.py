# finsage/services/messaging/course_context.py
"""
Course context for messages.

Messages carry the course they belong to in ``course_item_id``. Older rows
carried it as a ``[Course: <title>] `` prefix in the body instead; those are
parsed once by ``backfill_course_context`` and never string-matched again.
"""

import logging
import re
from typing import Optional, Set, Tuple

from sqlalchemy.orm import Session

from ...core.enums import UserRole
from ...repositories.factory import RepositoryFactory

logger = logging.getLogger(__name__)

COURSE_TAG_PATTERN = re.compile(r"^\[Course: (?P<title>[^\]]+)\]\s?")


def parse_course_tag(body: str) -> Tuple[Optional[str], str]:
    """
    Split a legacy course tag off a message body.

    Returns:
        Tuple of (course title or None, body without the tag)
    """
    match = COURSE_TAG_PATTERN.match(body or "")
    if not match:
        return None, body
    return match.group("title").strip(), body[match.end() :]


def is_visible_in_context(
    message_course_item_id: Optional[str],
    sender_role: Optional[str],
    context_item_id: Optional[str],
) -> bool:
    """
    Visibility of a message to a client viewing one course context.

    Admin messages are always visible. Otherwise a course view shows that
    course's messages and the general view shows messages without a course.
    """
    if sender_role == UserRole.ADMIN.value:
        return True
    if context_item_id is None:
        return message_course_item_id is None
    return message_course_item_id == context_item_id


def backfill_course_context(db: Session, batch_size: int = 500) -> int:
    """
    Move legacy body tags into ``course_item_id``.

    Titles are resolved against the catalog once; messages whose title no
    longer exists are left untouched. Commits per batch and returns the
    number of messages rewritten.
    """
    message_repository = RepositoryFactory.create_message_repository(db)
    title_index = RepositoryFactory.create_catalog_repository(db).get_title_index()

    total = 0
    unresolved: Set[str] = set()
    while True:
        limit = batch_size + len(unresolved)
        batch = message_repository.find_legacy_tagged(limit=limit)
        pending = [message for message in batch if message.id not in unresolved]
        if not pending:
            break
        for message in pending:
            title, stripped = parse_course_tag(message.content)
            item = title_index.get(title) if title else None
            if item is None:
                unresolved.add(message.id)
                continue
            message.course_item_id = item.id
            message.content = stripped
            total += 1
        db.commit()
        if len(batch) < limit:
            break

    if unresolved:
        logger.warning("[BACKFILL] %d tagged messages reference unknown course titles", len(unresolved))
    logger.info("[BACKFILL] Course context populated on %d messages", total)
    return total
