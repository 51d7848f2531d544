# alembic/versions/002_backfill_course_context.py
"""Backfill messages.course_item_id from legacy "[Course: <title>]" body tags

Revision ID: 002_backfill_course_context
Revises: 001_initial_schema
Create Date: 2026-10-01 00:00:01.000000
"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy.orm import Session

# revision identifiers, used by Alembic.
revision: str = "002_backfill_course_context"
down_revision: Union[str, None] = "001_initial_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    from finsage.services.messaging.course_context import backfill_course_context

    print("Moving legacy course tags into messages.course_item_id...")
    session = Session(bind=op.get_bind())
    try:
        rewritten = backfill_course_context(session)
    finally:
        session.close()
    print(f"Backfilled course context on {rewritten} messages")


def downgrade() -> None:
    # Stripped body prefixes are not restored; course_item_id stays populated
    pass
