"""
Обработка встречи, записанной одним файлом (без чанков).

Модель получает весь файл и за один вызов возвращает транскрипт
и структурированные заметки (MEETING_EXTRACT_SCHEMA).
"""

from __future__ import annotations

from collections.abc import Callable

from meeting_notes_agent.common.errors import StorageError
from meeting_notes_agent.common.logging import get_project_logger
from meeting_notes_agent.common.metrics import track_stage_latency
from meeting_notes_agent.domain.enums import JobStatus
from meeting_notes_agent.llm.base import Part
from meeting_notes_agent.llm.orchestrator import GenerationOrchestrator
from meeting_notes_agent.llm.prompts import MEETING_EXTRACT_SCHEMA, meeting_extract_prompt
from meeting_notes_agent.storage import blob
from meeting_notes_agent.storage.models import Job
from meeting_notes_agent.storage.store import JobStore

from .chunk_worker import DEFAULT_MIME
from .finalization import MeetingNotes, normalize_meeting_notes

log = get_project_logger()


def has_single_file_audio(job: Job) -> bool:
    return bool(job.audio_bucket and job.audio_path)


def process_single_file(
    store: JobStore,
    generator: GenerationOrchestrator,
    job: Job,
    *,
    blob_reader: Callable[[str, str], bytes] = blob.get_bytes,
) -> MeetingNotes:
    if not has_single_file_audio(job):
        raise StorageError("Failed to download audio", {"job_id": job.id})

    audio = blob_reader(job.audio_bucket, job.audio_path)
    mime_type = job.audio_mime or DEFAULT_MIME

    with track_stage_latency("orchestrator", "single_file"):
        file = generator.upload_file(
            data=audio, mime_type=mime_type, display_name=f"{job.id}.audio"
        )
        parsed = generator.generate_json(
            parts=[Part.of_text(meeting_extract_prompt()), Part.of_file(file)],
            schema=MEETING_EXTRACT_SCHEMA,
            temperature=0.1,
        )

    notes = normalize_meeting_notes(parsed, job.title)
    transcript = parsed.get("transcriptText")

    store.update_job(
        job.id,
        **notes.to_job_fields(),
        status=JobStatus.ready,
        transcript_text=transcript if isinstance(transcript, str) else None,
        transcript_json=parsed,
        model=generator.model,
        error=None,
    )
    log.info(
        "job_finalized",
        extra={"payload": {"job_id": job.id, "source": "single_file", "bytes": len(audio)}},
    )
    return notes
