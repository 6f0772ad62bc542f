"""
HTTP API контракты (Pydantic-модели).

Назначение:
- валидация входа/выхода на уровне FastAPI
- стабильные camelCase-структуры для клиента (поллинг обработки)
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _ApiModel(BaseModel):
    # принимаем и snake_case, и camelCase; наружу отдаём alias
    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# ЗАПРОСЫ
# =============================================================================
class JobCreateRequest(_ApiModel):
    title: str | None = None


class ChunkRegisterRequest(_ApiModel):
    seq: int = Field(ge=0)
    mime_type: str = Field(alias="mimeType", min_length=1)
    size_bytes: int | None = Field(default=None, alias="sizeBytes", ge=0)


class ChunkUploadedRequest(_ApiModel):
    chunk_id: str = Field(alias="chunkId", min_length=1)
    size_bytes: int | None = Field(default=None, alias="sizeBytes", ge=0)


class ChatRequest(_ApiModel):
    message: str = Field(min_length=1, max_length=4000)


# =============================================================================
# ОТВЕТЫ
# =============================================================================
class OkResponse(_ApiModel):
    ok: bool = True


class JobResponse(_ApiModel):
    id: str
    status: str
    title: str | None = None


class ChunkRegisterResponse(_ApiModel):
    chunk_id: str = Field(alias="chunkId")
    bucket: str
    path: str


class ProcessJobResponse(_ApiModel):
    """
    Ответ поллингу. Незаданные поля не выводятся (response_model_exclude_none).
    """

    status: str
    waiting_uploads: int | None = Field(default=None, alias="waitingUploads")
    processed_chunk_seq: int | None = Field(default=None, alias="processedChunkSeq")
    processed_chunks: int | None = Field(default=None, alias="processedChunks")
    total_chunks: int | None = Field(default=None, alias="totalChunks")
    remaining_chunks: int | None = Field(default=None, alias="remainingChunks")
    should_continue: bool | None = Field(default=None, alias="shouldContinue")
    processed_this_run: int | None = Field(default=None, alias="processedThisRun")


class SweepResponse(_ApiModel):
    ok: bool = True
    processed_meetings: int = Field(alias="processedMeetings")
    ready: int
    processing: int
    failed: int
    results: list[dict[str, Any]] = Field(default_factory=list)


class ChatMessageResponse(_ApiModel):
    id: str
    role: str
    content: str
    created_at: datetime = Field(alias="createdAt")


class ChatResponse(_ApiModel):
    user: ChatMessageResponse
    assistant: ChatMessageResponse


class ChatHistoryResponse(_ApiModel):
    messages: list[ChatMessageResponse] = Field(default_factory=list)
