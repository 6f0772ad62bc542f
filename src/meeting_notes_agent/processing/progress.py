"""
Подсчёт прогресса по чанкам встречи.

Чистая функция: по снимку статусов чанков считает агрегированные счётчики,
которые используются и для решений оркестратора, и для ответа клиенту.

Порядок классификации (первое совпадение выигрывает):
    error -> errored
    uploading -> waiting_uploads
    processing -> in_flight
    processed ИЛИ непустой транскрипт -> processed
    uploaded -> queued
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from meeting_notes_agent.domain.enums import ChunkStatus


@dataclass(frozen=True)
class ChunkProgress:
    total: int = 0
    waiting_uploads: int = 0
    queued: int = 0
    in_flight: int = 0
    processed: int = 0
    errored: int = 0

    @property
    def remaining(self) -> int:
        return self.waiting_uploads + self.queued + self.in_flight

    @property
    def has_errors(self) -> bool:
        return self.errored > 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "waitingUploads": self.waiting_uploads,
            "queued": self.queued,
            "inFlight": self.in_flight,
            "processed": self.processed,
            "errored": self.errored,
            "remaining": self.remaining,
            "hasErrors": self.has_errors,
        }


def _field(chunk: Any, name: str) -> Any:
    if isinstance(chunk, Mapping):
        return chunk.get(name)
    return getattr(chunk, name, None)


def has_transcript(chunk: Any) -> bool:
    return bool((_field(chunk, "transcript_text") or "").strip())


def compute_chunk_progress(chunks: Iterable[Any]) -> ChunkProgress:
    total = 0
    waiting_uploads = 0
    queued = 0
    in_flight = 0
    processed = 0
    errored = 0

    for chunk in chunks:
        total += 1
        status = _field(chunk, "status")
        if status == ChunkStatus.error:
            errored += 1
        elif status == ChunkStatus.uploading:
            waiting_uploads += 1
        elif status == ChunkStatus.processing:
            in_flight += 1
        elif status == ChunkStatus.processed or has_transcript(chunk):
            processed += 1
        elif status == ChunkStatus.uploaded:
            queued += 1

    return ChunkProgress(
        total=total,
        waiting_uploads=waiting_uploads,
        queued=queued,
        in_flight=in_flight,
        processed=processed,
        errored=errored,
    )
