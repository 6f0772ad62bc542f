"""
Инициальная миграция.

Создаёт таблицы:
- jobs
- job_chunks
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

_JOB_STATUS = sa.Enum(
    "recording", "uploading", "uploaded", "processing", "ready", "error", name="jobstatus"
)
_CHUNK_STATUS = sa.Enum(
    "uploading", "uploaded", "processing", "processed", "error", name="chunkstatus"
)


def upgrade() -> None:
    op.create_table(
        "jobs",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("status", _JOB_STATUS, nullable=False),
        sa.Column("audio_bucket", sa.String(length=128), nullable=True),
        sa.Column("audio_path", sa.String(length=512), nullable=True),
        sa.Column("audio_mime", sa.String(length=128), nullable=True),
        sa.Column("title", sa.String(length=512), nullable=True),
        sa.Column("transcript_text", sa.Text(), nullable=True),
        sa.Column("transcript_json", sa.JSON(), nullable=True),
        sa.Column("summary_json", sa.JSON(), nullable=True),
        sa.Column("decisions_json", sa.JSON(), nullable=True),
        sa.Column("key_topics_json", sa.JSON(), nullable=True),
        sa.Column("action_items_json", sa.JSON(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("model", sa.String(length=128), nullable=True),
    )
    op.create_index("ix_jobs_owner_id", "jobs", ["owner_id"], unique=False)

    op.create_table(
        "job_chunks",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("job_id", sa.String(length=64), sa.ForeignKey("jobs.id"), nullable=False),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("audio_bucket", sa.String(length=128), nullable=False),
        sa.Column("audio_path", sa.String(length=512), nullable=False),
        sa.Column("audio_mime", sa.String(length=128), nullable=True),
        sa.Column("audio_size_bytes", sa.Integer(), nullable=True),
        sa.Column("status", _CHUNK_STATUS, nullable=False),
        sa.Column("transcript_text", sa.Text(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("claimed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("job_id", "seq", name="uq_job_chunks_job_seq"),
    )
    op.create_index("ix_job_chunks_job_id", "job_chunks", ["job_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_job_chunks_job_id", table_name="job_chunks")
    op.drop_table("job_chunks")
    op.drop_index("ix_jobs_owner_id", table_name="jobs")
    op.drop_table("jobs")
    _CHUNK_STATUS.drop(op.get_bind(), checkfirst=True)
    _JOB_STATUS.drop(op.get_bind(), checkfirst=True)
