"""
Tests for course-context parsing, visibility and the legacy backfill.
"""

from datetime import datetime, timedelta, timezone

import pytest

from finsage.core.enums import UserRole
from finsage.models.message import Message
from finsage.services.messaging.course_context import (
    backfill_course_context,
    is_visible_in_context,
    parse_course_tag,
)


@pytest.mark.parametrize(
    "body,expected",
    [
        ("[Course: Money Basics] When is the next class?", ("Money Basics", "When is the next class?")),
        ("[Course: Money Basics]No space", ("Money Basics", "No space")),
        ("Plain message", (None, "Plain message")),
        ("See [Course: Money Basics] later", (None, "See [Course: Money Basics] later")),
    ],
)
def test_parse_course_tag(body, expected):
    assert parse_course_tag(body) == expected


class TestVisibility:
    def test_admin_messages_visible_everywhere(self):
        assert is_visible_in_context("course-1", "admin", None)
        assert is_visible_in_context("course-2", "admin", "course-1")
        assert is_visible_in_context(None, "admin", "course-1")

    def test_coach_messages_follow_course_context(self):
        assert not is_visible_in_context("course-2", "coach", "course-1")
        assert not is_visible_in_context("course-2", "coach", None)
        assert not is_visible_in_context(None, "coach", "course-1")
        assert is_visible_in_context("course-1", "coach", "course-1")
        assert is_visible_in_context(None, "coach", None)

    def test_general_view_hides_course_messages(self):
        assert is_visible_in_context(None, "client", None)
        assert not is_visible_in_context("course-1", "client", None)

    def test_course_view_shows_only_that_course(self):
        assert is_visible_in_context("course-1", "client", "course-1")
        assert not is_visible_in_context("course-2", "client", "course-1")
        assert not is_visible_in_context(None, "client", "course-1")

    def test_unknown_role_gets_no_bypass(self):
        assert not is_visible_in_context("course-1", "auditor", None)


def test_backfill_moves_tags_into_course_item_id(db, make_item, client_caller):
    from finsage.services.conversation_service import ConversationService

    item = make_item(title="Money Basics")
    conversation, _ = ConversationService(db).get_or_create_conversation(client_caller)
    start = datetime(2026, 3, 1, tzinfo=timezone.utc)
    rows = [
        "[Course: Money Basics] First question",
        "[Course: Retired Course] Orphaned",
        "Untagged",
    ]
    for offset, content in enumerate(rows):
        db.add(
            Message(
                conversation_id=conversation.id,
                sender_id=client_caller.user_id,
                sender_role=UserRole.CLIENT.value,
                content=content,
                created_at=start + timedelta(minutes=offset),
                read_by=[],
            )
        )
    db.commit()

    rewritten = backfill_course_context(db, batch_size=1)

    assert rewritten == 1
    by_content = {m.content: m for m in db.query(Message).all()}
    assert by_content["First question"].course_item_id == item.id
    assert by_content["[Course: Retired Course] Orphaned"].course_item_id is None
    assert by_content["Untagged"].course_item_id is None
    assert backfill_course_context(db) == 0
