"""
ORM-модели базы данных.

Назначение:
- Хранение состояния встреч (jobs)
- Хранение аудио-чанков и их транскриптов (job_chunks)
- История вопросов по встрече (meeting_messages)
- Единственный источник истины для оркестратора (никаких in-memory кэшей)
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from meeting_notes_agent.common.time import utc_now
from meeting_notes_agent.domain.enums import ChunkStatus, JobStatus, MessageRole


# =============================================================================
# BASE
# =============================================================================
class Base(DeclarativeBase):
    pass


# =============================================================================
# JOB
# =============================================================================
class Job(Base):
    """
    Встреча: одна запись и её сквозная обработка.
    """

    __tablename__ = "jobs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now, nullable=False
    )

    status: Mapped[JobStatus] = mapped_column(Enum(JobStatus), nullable=False)

    # Аудио одним файлом (используется только если чанков нет)
    audio_bucket: Mapped[str | None] = mapped_column(String(128), nullable=True)
    audio_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    audio_mime: Mapped[str | None] = mapped_column(String(128), nullable=True)

    title: Mapped[str | None] = mapped_column(String(512), nullable=True)
    transcript_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    transcript_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    summary_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    decisions_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    key_topics_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    action_items_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    model: Mapped[str | None] = mapped_column(String(128), nullable=True)

    chunks: Mapped[list[Chunk]] = relationship(
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="Chunk.seq",
    )
    messages: Mapped[list[MeetingMessage]] = relationship(
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="MeetingMessage.created_at",
    )


# =============================================================================
# CHUNKS
# =============================================================================
class Chunk(Base):
    """
    Аудио-чанк встречи. seq задаёт порядок склейки транскрипта.
    """

    __tablename__ = "job_chunks"
    __table_args__ = (UniqueConstraint("job_id", "seq", name="uq_job_chunks_job_seq"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    job_id: Mapped[str] = mapped_column(ForeignKey("jobs.id"), nullable=False, index=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)

    seq: Mapped[int] = mapped_column(Integer, nullable=False)

    audio_bucket: Mapped[str] = mapped_column(String(128), nullable=False)
    audio_path: Mapped[str] = mapped_column(String(512), nullable=False)
    audio_mime: Mapped[str | None] = mapped_column(String(128), nullable=True)
    audio_size_bytes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    status: Mapped[ChunkStatus] = mapped_column(Enum(ChunkStatus), nullable=False)
    transcript_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    # error может содержать префикс "retry:<n>|", основной счётчик в retry_count
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now, nullable=False
    )

    job: Mapped[Job] = relationship(back_populates="chunks")


# =============================================================================
# CHAT
# =============================================================================
class MeetingMessage(Base):
    """
    Сообщение чата по встрече (вопрос пользователя или ответ модели).
    """

    __tablename__ = "meeting_messages"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    job_id: Mapped[str] = mapped_column(ForeignKey("jobs.id"), nullable=False, index=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)

    role: Mapped[MessageRole] = mapped_column(Enum(MessageRole), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    job: Mapped[Job] = relationship(back_populates="messages")
