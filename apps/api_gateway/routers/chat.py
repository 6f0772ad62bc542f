"""
HTTP роуты чата по встрече.

- POST /v1/jobs/{job_id}/chat      вопрос по встрече -> ответ модели
- GET  /v1/jobs/{job_id}/messages  история (последние 200 сообщений)
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends

from apps.api_gateway.deps import http_error, required_owner_dep
from meeting_notes_agent.common.errors import AppError
from meeting_notes_agent.contracts.http_api import (
    ChatHistoryResponse,
    ChatMessageResponse,
    ChatRequest,
    ChatResponse,
)
from meeting_notes_agent.llm.orchestrator import GenerationOrchestrator, build_generative_provider
from meeting_notes_agent.services import chat_service
from meeting_notes_agent.storage.models import MeetingMessage

router = APIRouter()


def generator_dep() -> GenerationOrchestrator:
    return GenerationOrchestrator(build_generative_provider())


def _message_out(msg: MeetingMessage) -> ChatMessageResponse:
    return ChatMessageResponse(
        id=msg.id, role=msg.role.value, content=msg.content, created_at=msg.created_at
    )


@router.post("/jobs/{job_id}/chat", response_model=ChatResponse)
async def chat(
    job_id: str,
    req: ChatRequest,
    owner_id: str = Depends(required_owner_dep),
    generator: GenerationOrchestrator = Depends(generator_dep),
) -> ChatResponse:
    try:
        exchange = await asyncio.to_thread(
            chat_service.ask_meeting,
            job_id,
            owner_id=owner_id,
            message=req.message,
            generator=generator,
        )
    except AppError as e:
        raise http_error(e) from e
    return ChatResponse(
        user=_message_out(exchange.user),
        assistant=_message_out(exchange.assistant),
    )


@router.get("/jobs/{job_id}/messages", response_model=ChatHistoryResponse)
def messages(
    job_id: str,
    owner_id: str = Depends(required_owner_dep),
) -> ChatHistoryResponse:
    try:
        rows = chat_service.list_messages(job_id, owner_id=owner_id)
    except AppError as e:
        raise http_error(e) from e
    return ChatHistoryResponse(messages=[_message_out(m) for m in rows])
