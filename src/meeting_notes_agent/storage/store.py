"""
Хранилище для оркестратора: операции БД, которые ему нужны, по одной
короткой транзакции на вызов.

Оркестратор дергает эти методы из asyncio.to_thread, поэтому каждый метод
открывает свою сессию (Session не потокобезопасна).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from meeting_notes_agent.common.time import utc_now

from .db import db_session
from .models import Chunk, Job
from .repositories import ChunkRepository, JobRepository


class JobStore(Protocol):
    def get_job(self, job_id: str, owner_id: str | None = None) -> Job | None: ...

    def update_job(self, job_id: str, **fields: Any) -> None: ...

    def list_pending_jobs(self, limit: int) -> list[Job]: ...

    def has_chunks(self, job_id: str, owner_id: str | None = None) -> bool: ...

    def list_chunks(self, job_id: str, owner_id: str | None = None) -> list[Chunk]: ...

    def list_claimable_chunks(
        self, job_id: str, owner_id: str | None, limit: int
    ) -> list[Chunk]: ...

    def claim_chunk(self, chunk_id: str) -> Chunk | None: ...

    def update_chunk(self, chunk_id: str, **fields: Any) -> None: ...

    def list_stale_chunks(self, job_id: str, claimed_before: datetime) -> list[Chunk]: ...

    def release_stale_chunk(
        self, chunk_id: str, seen_claimed_at: datetime | None, **fields: Any
    ) -> bool: ...


class SqlJobStore:
    """
    JobStore поверх SQLAlchemy-репозиториев.
    """

    def get_job(self, job_id: str, owner_id: str | None = None) -> Job | None:
        with db_session() as session:
            return JobRepository(session).get(job_id, owner_id=owner_id)

    def update_job(self, job_id: str, **fields: Any) -> None:
        with db_session() as session:
            JobRepository(session).update(job_id, **fields)

    def list_pending_jobs(self, limit: int) -> list[Job]:
        with db_session() as session:
            return JobRepository(session).list_pending(limit=limit)

    def has_chunks(self, job_id: str, owner_id: str | None = None) -> bool:
        with db_session() as session:
            return ChunkRepository(session).has_any(job_id, owner_id=owner_id)

    def list_chunks(self, job_id: str, owner_id: str | None = None) -> list[Chunk]:
        with db_session() as session:
            return ChunkRepository(session).list_by_job(job_id, owner_id=owner_id)

    def list_claimable_chunks(self, job_id: str, owner_id: str | None, limit: int) -> list[Chunk]:
        with db_session() as session:
            return ChunkRepository(session).list_claimable(job_id, owner_id=owner_id, limit=limit)

    def claim_chunk(self, chunk_id: str) -> Chunk | None:
        with db_session() as session:
            return ChunkRepository(session).claim(chunk_id, now=utc_now())

    def update_chunk(self, chunk_id: str, **fields: Any) -> None:
        with db_session() as session:
            ChunkRepository(session).update(chunk_id, **fields)

    def list_stale_chunks(self, job_id: str, claimed_before: datetime) -> list[Chunk]:
        with db_session() as session:
            return ChunkRepository(session).list_stale_processing(
                job_id, claimed_before=claimed_before
            )

    def release_stale_chunk(
        self, chunk_id: str, seen_claimed_at: datetime | None, **fields: Any
    ) -> bool:
        with db_session() as session:
            return ChunkRepository(session).release_stale(
                chunk_id, seen_claimed_at=seen_claimed_at, **fields
            )
