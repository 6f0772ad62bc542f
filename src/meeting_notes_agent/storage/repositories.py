"""
Репозитории (DAO слой).

Правила:
- Никакой бизнес-логики
- Только CRUD и запросы
- Условные UPDATE (compare-and-swap): единственный примитив взаимного
  исключения между параллельными вызовами оркестратора
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from meeting_notes_agent.common.ids import new_uuid
from meeting_notes_agent.common.time import utc_now
from meeting_notes_agent.domain.enums import ChunkStatus, JobStatus, MessageRole

from .models import Chunk, Job, MeetingMessage


# =============================================================================
# JOB REPOSITORY
# =============================================================================
class JobRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, job_id: str, *, owner_id: str | None = None) -> Job | None:
        job = self.session.get(Job, job_id)
        if job is None:
            return None
        if owner_id is not None and job.owner_id != owner_id:
            return None
        return job

    def add(self, job: Job) -> Job:
        self.session.add(job)
        return job

    def update(self, job_id: str, **fields: Any) -> int:
        fields.setdefault("updated_at", utc_now())
        res = self.session.execute(
            update(Job)
            .where(Job.id == job_id)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        return int(res.rowcount or 0)

    def list_pending(self, *, limit: int = 1) -> list[Job]:
        """
        Встречи, которые ждут обработки (для периодического sweep).
        """
        stmt = (
            select(Job)
            .where(Job.status.in_([JobStatus.uploaded, JobStatus.processing]))
            .order_by(Job.created_at)
            .limit(max(1, limit))
        )
        return list(self.session.scalars(stmt))


# =============================================================================
# CHUNK REPOSITORY
# =============================================================================
class ChunkRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _by_job(self, job_id: str, owner_id: str | None):
        stmt = select(Chunk).where(Chunk.job_id == job_id)
        if owner_id is not None:
            stmt = stmt.where(Chunk.owner_id == owner_id)
        return stmt

    def get(self, chunk_id: str) -> Chunk | None:
        return self.session.get(Chunk, chunk_id)

    def has_any(self, job_id: str, *, owner_id: str | None = None) -> bool:
        stmt = self._by_job(job_id, owner_id).with_only_columns(Chunk.id).limit(1)
        return self.session.execute(stmt).first() is not None

    def list_by_job(self, job_id: str, *, owner_id: str | None = None) -> list[Chunk]:
        stmt = self._by_job(job_id, owner_id).order_by(Chunk.seq)
        return list(self.session.scalars(stmt))

    def list_claimable(self, job_id: str, *, owner_id: str | None, limit: int) -> list[Chunk]:
        """
        Кандидаты на claim: uploaded и без транскрипта, по возрастанию seq.
        """
        stmt = (
            self._by_job(job_id, owner_id)
            .where(Chunk.status == ChunkStatus.uploaded, Chunk.transcript_text.is_(None))
            .order_by(Chunk.seq)
            .limit(max(1, limit))
        )
        return list(self.session.scalars(stmt))

    def claim(self, chunk_id: str, *, now: datetime | None = None) -> Chunk | None:
        """
        Атомарно: uploaded/без транскрипта -> processing.

        Возвращает строку, если UPDATE затронул ровно её, иначе None
        (другой вызов успел раньше, это не ошибка).
        """
        ts = now or utc_now()
        res = self.session.execute(
            update(Chunk)
            .where(
                Chunk.id == chunk_id,
                Chunk.status == ChunkStatus.uploaded,
                Chunk.transcript_text.is_(None),
            )
            .values(status=ChunkStatus.processing, claimed_at=ts, updated_at=ts)
            .execution_options(synchronize_session=False)
        )
        if (res.rowcount or 0) != 1:
            return None
        stmt = (
            select(Chunk)
            .where(Chunk.id == chunk_id)
            .execution_options(populate_existing=True)
        )
        return self.session.scalars(stmt).one()

    def update(self, chunk_id: str, **fields: Any) -> int:
        fields.setdefault("updated_at", utc_now())
        res = self.session.execute(
            update(Chunk)
            .where(Chunk.id == chunk_id)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        return int(res.rowcount or 0)

    def list_stale_processing(self, job_id: str, *, claimed_before: datetime) -> list[Chunk]:
        stmt = (
            self._by_job(job_id, None)
            .where(
                Chunk.status == ChunkStatus.processing,
                (Chunk.claimed_at.is_(None)) | (Chunk.claimed_at < claimed_before),
            )
            .order_by(Chunk.seq)
        )
        return list(self.session.scalars(stmt))

    def release_stale(
        self, chunk_id: str, *, seen_claimed_at: datetime | None, **fields: Any
    ) -> bool:
        """
        Условный возврат зависшего claim: срабатывает, только если строка
        всё ещё processing с тем же claimed_at, что мы видели.
        """
        cond = [Chunk.id == chunk_id, Chunk.status == ChunkStatus.processing]
        if seen_claimed_at is None:
            cond.append(Chunk.claimed_at.is_(None))
        else:
            cond.append(Chunk.claimed_at == seen_claimed_at)
        fields.setdefault("updated_at", utc_now())
        res = self.session.execute(
            update(Chunk)
            .where(*cond)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        return (res.rowcount or 0) == 1

    def upsert_by_job_seq(
        self,
        *,
        job_id: str,
        owner_id: str,
        seq: int,
        audio_bucket: str,
        audio_path: str,
        audio_mime: str | None,
        audio_size_bytes: int | None,
    ) -> Chunk:
        """
        Идемпотентная регистрация чанка по (job_id, seq): статус uploading.
        """
        existing = self.session.scalars(
            select(Chunk).where(Chunk.job_id == job_id, Chunk.seq == seq)
        ).one_or_none()
        if existing is None:
            chunk = Chunk(
                id=new_uuid(),
                job_id=job_id,
                owner_id=owner_id,
                seq=seq,
                audio_bucket=audio_bucket,
                audio_path=audio_path,
                audio_mime=audio_mime,
                audio_size_bytes=audio_size_bytes,
                status=ChunkStatus.uploading,
                retry_count=0,
            )
            self.session.add(chunk)
            self.session.flush()
            return chunk

        existing.owner_id = owner_id
        existing.audio_bucket = audio_bucket
        existing.audio_path = audio_path
        existing.audio_mime = audio_mime
        existing.audio_size_bytes = audio_size_bytes
        existing.status = ChunkStatus.uploading
        existing.transcript_text = None
        existing.error = None
        existing.retry_count = 0
        existing.claimed_at = None
        self.session.flush()
        return existing


# =============================================================================
# MESSAGE REPOSITORY
# =============================================================================
class MessageRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(
        self, *, job_id: str, owner_id: str, role: MessageRole, content: str
    ) -> MeetingMessage:
        msg = MeetingMessage(
            id=new_uuid(),
            job_id=job_id,
            owner_id=owner_id,
            role=role,
            content=content,
        )
        self.session.add(msg)
        self.session.flush()
        return msg

    def list_by_job(self, job_id: str, *, owner_id: str, limit: int = 200) -> list[MeetingMessage]:
        stmt = (
            select(MeetingMessage)
            .where(MeetingMessage.job_id == job_id, MeetingMessage.owner_id == owner_id)
            .order_by(MeetingMessage.created_at)
            .limit(max(1, limit))
        )
        return list(self.session.scalars(stmt))
