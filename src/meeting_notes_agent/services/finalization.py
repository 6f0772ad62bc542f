"""
Финализация встречи из транскриптов чанков.

Алгоритм:
1) собрать транскрипты чанков по seq (пустые пропускаются)
2) суммаризация полного транскрипта по JSON-схеме
3) сохранить итог и перевести встречу в ready

Ошибки здесь фатальны для встречи: пустая склейка (EmptyMergeError)
и ошибка генерации пробрасываются в оркестратор.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from meeting_notes_agent.common.errors import EmptyMergeError
from meeting_notes_agent.common.logging import get_project_logger
from meeting_notes_agent.common.metrics import track_stage_latency
from meeting_notes_agent.domain.enums import JobStatus
from meeting_notes_agent.llm.base import Part
from meeting_notes_agent.llm.orchestrator import GenerationOrchestrator
from meeting_notes_agent.llm.prompts import (
    MEETING_SUMMARY_SCHEMA,
    meeting_summary_from_transcript_prompt,
)
from meeting_notes_agent.processing.merge import merge_chunk_transcripts
from meeting_notes_agent.storage.models import Job
from meeting_notes_agent.storage.store import JobStore

log = get_project_logger()


@dataclass
class MeetingNotes:
    title: str | None = None
    summary: str | None = None
    decisions: list[Any] = field(default_factory=list)
    key_topics: list[Any] = field(default_factory=list)
    action_items: list[Any] = field(default_factory=list)

    def to_job_fields(self) -> dict[str, Any]:
        """Поля jobs в том виде, в каком их читает клиент."""
        return {
            "title": self.title,
            "summary_json": {"summary": self.summary},
            "decisions_json": {"decisions": self.decisions},
            "key_topics_json": {"keyTopics": self.key_topics},
            "action_items_json": {"actionItems": self.action_items},
        }


def _as_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, list) else []


def normalize_meeting_notes(parsed: dict[str, Any], previous_title: str | None) -> MeetingNotes:
    """
    Нормализация ответа модели:
    - title: непустая строка, иначе прежний заголовок встречи
    - summary: строка или None
    - списки: по умолчанию пустые
    """
    raw_title = parsed.get("title")
    title = raw_title.strip() if isinstance(raw_title, str) and raw_title.strip() else previous_title
    summary = parsed.get("summary")
    return MeetingNotes(
        title=title,
        summary=summary if isinstance(summary, str) else None,
        decisions=_as_list(parsed.get("decisions")),
        key_topics=_as_list(parsed.get("keyTopics")),
        action_items=_as_list(parsed.get("actionItems")),
    )


def finalize_from_chunk_transcripts(
    store: JobStore, generator: GenerationOrchestrator, job: Job
) -> MeetingNotes:
    chunks = store.list_chunks(job.id, owner_id=job.owner_id)
    full_transcript = merge_chunk_transcripts(chunks)
    if not full_transcript:
        raise EmptyMergeError(details={"job_id": job.id, "chunks": len(chunks)})

    with track_stage_latency("orchestrator", "finalize"):
        parsed = generator.generate_json(
            parts=[Part.of_text(meeting_summary_from_transcript_prompt(full_transcript))],
            schema=MEETING_SUMMARY_SCHEMA,
            temperature=0.1,
        )
    notes = normalize_meeting_notes(parsed, job.title)

    store.update_job(
        job.id,
        **notes.to_job_fields(),
        status=JobStatus.ready,
        transcript_text=full_transcript,
        transcript_json={"source": "chunked", "chunks": len(chunks)},
        model=generator.model,
        error=None,
    )
    log.info(
        "job_finalized",
        extra={
            "payload": {
                "job_id": job.id,
                "source": "chunked",
                "chunks": len(chunks),
                "chars": len(full_transcript),
            }
        },
    )
    return notes
