"""
Сервисный слой: встречи (jobs).

Назначение:
- создание встречи
- завершение загрузки (uploaded), после которого возможна финализация
- привязка аудио одним файлом (путь без чанков)
"""

from __future__ import annotations

from meeting_notes_agent.common.config import get_settings
from meeting_notes_agent.common.errors import NotFoundError
from meeting_notes_agent.common.ids import new_job_id
from meeting_notes_agent.common.logging import get_project_logger
from meeting_notes_agent.domain.enums import JobStatus
from meeting_notes_agent.storage import blob
from meeting_notes_agent.storage.db import db_session
from meeting_notes_agent.storage.models import Job
from meeting_notes_agent.storage.repositories import JobRepository

log = get_project_logger()


def create_job(
    *,
    owner_id: str,
    title: str | None = None,
    status: JobStatus = JobStatus.recording,
    job_id: str | None = None,
) -> Job:
    job = Job(
        id=job_id or new_job_id(),
        owner_id=owner_id,
        title=title,
        status=status,
    )
    with db_session() as session:
        JobRepository(session).add(job)
    log.info("job_created", extra={"payload": {"job_id": job.id, "status": job.status.value}})
    return job


def mark_job_uploaded(job_id: str, owner_id: str | None = None) -> Job:
    """
    Клиент закончил загрузку: встреча переходит в uploaded, error очищается.

    Статус сбрасывается из любого состояния (в т.ч. ready/error): повторная
    загрузка запускает обработку заново.
    """
    with db_session() as session:
        repo = JobRepository(session)
        job = repo.get(job_id, owner_id=owner_id)
        if job is None:
            raise NotFoundError("Meeting not found", {"job_id": job_id})
        previous = job.status
        job.status = JobStatus.uploaded
        job.error = None

    log.info(
        "job_uploaded",
        extra={"payload": {"job_id": job_id, "previous_status": previous.value}},
    )
    return job


def attach_single_file(
    job_id: str,
    *,
    bucket: str,
    path: str,
    mime_type: str | None,
    owner_id: str | None = None,
) -> Job:
    with db_session() as session:
        repo = JobRepository(session)
        job = repo.get(job_id, owner_id=owner_id)
        if job is None:
            raise NotFoundError("Meeting not found", {"job_id": job_id})
        job.audio_bucket = bucket
        job.audio_path = path
        job.audio_mime = mime_type
    return job


def ingest_single_file_bytes(
    job_id: str, *, owner_id: str, audio: bytes, mime_type: str | None
) -> Job:
    """Сохранить файл встречи целиком и отметить загрузку завершённой."""
    bucket = get_settings().audio_bucket
    path = blob.job_audio_path(owner_id, job_id, mime_type)
    blob.put_bytes(bucket, path, audio)
    attach_single_file(job_id, bucket=bucket, path=path, mime_type=mime_type, owner_id=owner_id)
    return mark_job_uploaded(job_id, owner_id)
