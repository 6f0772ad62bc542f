"""
HTTP роуты загрузки встречи.

- POST /v1/jobs                                  создать встречу (recording)
- POST /v1/jobs/{job_id}/chunks                  зарегистрировать чанк (uploading)
- POST /v1/jobs/{job_id}/chunks/uploaded         чанк загружен (uploaded)
- PUT  /v1/jobs/{job_id}/chunks/{seq}/audio      серверная загрузка bytes чанка
- PUT  /v1/jobs/{job_id}/audio                   встреча одним файлом
- POST /v1/jobs/{job_id}/uploaded                запись завершена

Владелец передаётся в X-Owner-Id.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Header, Request

from apps.api_gateway.deps import http_error, required_owner_dep
from meeting_notes_agent.common.errors import AppError
from meeting_notes_agent.contracts.http_api import (
    ChunkRegisterRequest,
    ChunkRegisterResponse,
    ChunkUploadedRequest,
    JobCreateRequest,
    JobResponse,
    OkResponse,
)
from meeting_notes_agent.services import chunk_ingest_service, job_service

router = APIRouter()

DEFAULT_UPLOAD_MIME = "application/octet-stream"


@router.post("/jobs", response_model=JobResponse)
def create_job(
    req: JobCreateRequest,
    owner_id: str = Depends(required_owner_dep),
) -> JobResponse:
    job = job_service.create_job(owner_id=owner_id, title=req.title)
    return JobResponse(id=job.id, status=job.status.value, title=job.title)


@router.post(
    "/jobs/{job_id}/chunks",
    response_model=ChunkRegisterResponse,
)
def register_chunk(
    job_id: str,
    req: ChunkRegisterRequest,
    owner_id: str = Depends(required_owner_dep),
) -> ChunkRegisterResponse:
    try:
        reg = chunk_ingest_service.register_chunk(
            job_id=job_id,
            owner_id=owner_id,
            seq=req.seq,
            mime_type=req.mime_type,
            size_bytes=req.size_bytes,
        )
    except AppError as e:
        raise http_error(e) from e
    return ChunkRegisterResponse(chunk_id=reg.chunk_id, bucket=reg.bucket, path=reg.path)


@router.post("/jobs/{job_id}/chunks/uploaded", response_model=OkResponse)
def chunk_uploaded(
    job_id: str,
    req: ChunkUploadedRequest,
    owner_id: str = Depends(required_owner_dep),
) -> OkResponse:
    try:
        chunk_ingest_service.mark_chunk_uploaded(
            chunk_id=req.chunk_id,
            job_id=job_id,
            owner_id=owner_id,
            size_bytes=req.size_bytes,
        )
    except AppError as e:
        raise http_error(e) from e
    return OkResponse()


@router.put(
    "/jobs/{job_id}/chunks/{seq}/audio",
    response_model=ChunkRegisterResponse,
)
async def upload_chunk_audio(
    job_id: str,
    seq: int,
    request: Request,
    owner_id: str = Depends(required_owner_dep),
    content_type: str | None = Header(default=None, alias="Content-Type"),
) -> ChunkRegisterResponse:
    audio = await request.body()
    try:
        reg = await asyncio.to_thread(
            chunk_ingest_service.ingest_chunk_bytes,
            job_id=job_id,
            owner_id=owner_id,
            seq=seq,
            audio=audio,
            mime_type=content_type or DEFAULT_UPLOAD_MIME,
        )
    except AppError as e:
        raise http_error(e) from e
    return ChunkRegisterResponse(chunk_id=reg.chunk_id, bucket=reg.bucket, path=reg.path)


@router.put("/jobs/{job_id}/audio", response_model=JobResponse)
async def upload_job_audio(
    job_id: str,
    request: Request,
    owner_id: str = Depends(required_owner_dep),
    content_type: str | None = Header(default=None, alias="Content-Type"),
) -> JobResponse:
    audio = await request.body()
    try:
        job = await asyncio.to_thread(
            job_service.ingest_single_file_bytes,
            job_id,
            owner_id=owner_id,
            audio=audio,
            mime_type=content_type or DEFAULT_UPLOAD_MIME,
        )
    except AppError as e:
        raise http_error(e) from e
    return JobResponse(id=job.id, status=job.status.value, title=job.title)


@router.post("/jobs/{job_id}/uploaded", response_model=OkResponse)
def job_uploaded(
    job_id: str,
    owner_id: str = Depends(required_owner_dep),
) -> OkResponse:
    try:
        job_service.mark_job_uploaded(job_id, owner_id)
    except AppError as e:
        raise http_error(e) from e
    return OkResponse()
