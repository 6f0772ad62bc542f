"""
Сервисный слой: чат по встрече.

Пользователь задаёт вопрос, модель отвечает только по содержимому встречи
(summary + транскрипт). Вопрос сохраняется до вызова модели, ответ после.
Ошибка модели не откатывает сохранённый вопрос.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from meeting_notes_agent.common.errors import NotFoundError, ValidationError
from meeting_notes_agent.common.logging import get_project_logger
from meeting_notes_agent.common.metrics import track_stage_latency
from meeting_notes_agent.domain.enums import MessageRole
from meeting_notes_agent.llm.base import Part
from meeting_notes_agent.llm.orchestrator import GenerationOrchestrator, build_generative_provider
from meeting_notes_agent.llm.prompts import meeting_chat_prompt, meeting_chat_system_prompt
from meeting_notes_agent.storage.db import db_session
from meeting_notes_agent.storage.models import Job, MeetingMessage
from meeting_notes_agent.storage.repositories import JobRepository, MessageRepository

log = get_project_logger()

MAX_MESSAGE_LEN = 4000
CHAT_TEMPERATURE = 0.3
HISTORY_LIMIT = 200


@dataclass
class ChatExchange:
    user: MeetingMessage
    assistant: MeetingMessage


def summary_text(summary_json: Any) -> str:
    if isinstance(summary_json, dict) and isinstance(summary_json.get("summary"), str):
        return summary_json["summary"]
    return ""


def _load_job(repo: JobRepository, job_id: str, owner_id: str) -> Job:
    job = repo.get(job_id, owner_id=owner_id)
    if job is None:
        raise NotFoundError("Meeting not found", {"job_id": job_id})
    return job


def ask_meeting(
    job_id: str,
    *,
    owner_id: str,
    message: str,
    generator: GenerationOrchestrator | None = None,
) -> ChatExchange:
    if not message or len(message) > MAX_MESSAGE_LEN:
        raise ValidationError(
            f"message must be 1..{MAX_MESSAGE_LEN} characters", {"length": len(message or "")}
        )

    with db_session() as session:
        job = _load_job(JobRepository(session), job_id, owner_id)
        summary = summary_text(job.summary_json)
        transcript = job.transcript_text or ""
        user_msg = MessageRepository(session).add(
            job_id=job_id, owner_id=owner_id, role=MessageRole.user, content=message
        )

    gen = generator or GenerationOrchestrator(build_generative_provider())
    prompt = meeting_chat_prompt(meeting_chat_system_prompt(summary, transcript), message)
    try:
        with track_stage_latency("chat", "answer"):
            answer = gen.generate_text(parts=[Part.of_text(prompt)], temperature=CHAT_TEMPERATURE)
    except Exception as e:
        log.error(
            "chat_failed",
            extra={"payload": {"job_id": job_id, "err": str(e)[:300]}},
        )
        raise

    with db_session() as session:
        assistant_msg = MessageRepository(session).add(
            job_id=job_id, owner_id=owner_id, role=MessageRole.assistant, content=answer
        )

    log.info(
        "chat_answered",
        extra={
            "payload": {
                "job_id": job_id,
                "question_len": len(message),
                "answer_len": len(answer),
                "model": gen.model,
            }
        },
    )
    return ChatExchange(user=user_msg, assistant=assistant_msg)


def list_messages(
    job_id: str, *, owner_id: str, limit: int = HISTORY_LIMIT
) -> list[MeetingMessage]:
    with db_session() as session:
        _load_job(JobRepository(session), job_id, owner_id)
        return MessageRepository(session).list_by_job(job_id, owner_id=owner_id, limit=limit)
