"""
Чат по встрече.

Создаёт таблицу:
- meeting_messages
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0002_meeting_messages"
down_revision = "0001_init"
branch_labels = None
depends_on = None

_MESSAGE_ROLE = sa.Enum("user", "assistant", name="messagerole")


def upgrade() -> None:
    op.create_table(
        "meeting_messages",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("job_id", sa.String(length=64), sa.ForeignKey("jobs.id"), nullable=False),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("role", _MESSAGE_ROLE, nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_meeting_messages_job_id", "meeting_messages", ["job_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_meeting_messages_job_id", table_name="meeting_messages")
    op.drop_table("meeting_messages")
    _MESSAGE_ROLE.drop(op.get_bind(), checkfirst=True)
