"""
Ingest-сервис для аудио-чанков.

Жизненный цикл чанка со стороны загрузки:
1) register_chunk: строка (job_id, seq) в статусе uploading и путь в blob
2) bytes кладутся в blob-хранилище (клиентом или ingest_chunk_bytes)
3) mark_chunk_uploaded: uploaded, чанк становится кандидатом на claim

Повторная регистрация того же seq перезаписывает чанк (новая загрузка).
"""

from __future__ import annotations

from dataclasses import dataclass

from meeting_notes_agent.common.config import get_settings
from meeting_notes_agent.common.errors import NotFoundError, ValidationError
from meeting_notes_agent.common.logging import get_project_logger
from meeting_notes_agent.domain.enums import ChunkStatus
from meeting_notes_agent.storage import blob
from meeting_notes_agent.storage.db import db_session
from meeting_notes_agent.storage.models import Chunk
from meeting_notes_agent.storage.repositories import ChunkRepository, JobRepository

log = get_project_logger()


@dataclass
class ChunkRegistration:
    chunk_id: str
    job_id: str
    seq: int
    bucket: str
    path: str


def register_chunk(
    *,
    job_id: str,
    owner_id: str,
    seq: int,
    mime_type: str,
    size_bytes: int | None = None,
) -> ChunkRegistration:
    if seq < 0:
        raise ValidationError("seq must be non-negative", {"seq": seq})
    if not (mime_type or "").strip():
        raise ValidationError("mime_type is required")

    with db_session() as session:
        job = JobRepository(session).get(job_id, owner_id=owner_id)
        if job is None:
            raise NotFoundError("Meeting not found", {"job_id": job_id})

        bucket = job.audio_bucket or get_settings().audio_bucket
        chunk = ChunkRepository(session).upsert_by_job_seq(
            job_id=job_id,
            owner_id=owner_id,
            seq=seq,
            audio_bucket=bucket,
            audio_path=blob.chunk_object_path(owner_id, job_id, seq, mime_type),
            audio_mime=mime_type,
            audio_size_bytes=size_bytes,
        )
        reg = ChunkRegistration(
            chunk_id=chunk.id,
            job_id=job_id,
            seq=seq,
            bucket=chunk.audio_bucket,
            path=chunk.audio_path,
        )

    log.info("chunk_registered", extra={"payload": {"job_id": job_id, "seq": seq}})
    return reg


def mark_chunk_uploaded(
    *,
    chunk_id: str,
    job_id: str,
    owner_id: str,
    size_bytes: int | None = None,
) -> None:
    with db_session() as session:
        repo = ChunkRepository(session)
        chunk: Chunk | None = repo.get(chunk_id)
        if chunk is None or chunk.job_id != job_id or chunk.owner_id != owner_id:
            raise NotFoundError("Chunk not found", {"chunk_id": chunk_id, "job_id": job_id})
        fields: dict = {"status": ChunkStatus.uploaded, "error": None}
        if size_bytes is not None:
            fields["audio_size_bytes"] = size_bytes
        repo.update(chunk_id, **fields)


def ingest_chunk_bytes(
    *,
    job_id: str,
    owner_id: str,
    seq: int,
    audio: bytes,
    mime_type: str,
) -> ChunkRegistration:
    """Регистрация + запись bytes + uploaded одним вызовом (серверная загрузка)."""
    reg = register_chunk(
        job_id=job_id,
        owner_id=owner_id,
        seq=seq,
        mime_type=mime_type,
        size_bytes=len(audio),
    )
    blob.put_bytes(reg.bucket, reg.path, audio)
    mark_chunk_uploaded(
        chunk_id=reg.chunk_id, job_id=job_id, owner_id=owner_id, size_bytes=len(audio)
    )
    return reg
