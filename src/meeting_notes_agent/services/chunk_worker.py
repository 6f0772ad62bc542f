"""
Обработка одного захваченного (claimed) чанка.

Алгоритм:
1) скачать bytes чанка из blob-хранилища
2) транскрибировать через STT
3) сохранить processed + текст

Любая ошибка внутри поглощается: чанк либо возвращается в очередь
(uploaded + "retry:<n>|msg"), либо после исчерпания попыток уходит в error.
Наружу воркер ничего не бросает, решение об аварии встречи принимает
оркестратор по следующему снимку прогресса.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

from meeting_notes_agent.common.errors import error_message
from meeting_notes_agent.common.logging import get_project_logger
from meeting_notes_agent.common.metrics import record_chunk_result, track_stage_latency
from meeting_notes_agent.domain.enums import ChunkStatus
from meeting_notes_agent.processing.retry import current_retry_count, next_failure_state
from meeting_notes_agent.storage import blob
from meeting_notes_agent.storage.models import Chunk
from meeting_notes_agent.storage.store import JobStore
from meeting_notes_agent.stt.base import STTProvider

log = get_project_logger()

DEFAULT_MIME = "application/octet-stream"

BlobReader = Callable[[str, str], bytes]


@dataclass(frozen=True)
class ChunkOutcome:
    seq: int
    ok: bool
    retry_count: int = 0


def _transcribe(
    chunk: Chunk,
    *,
    job_id: str,
    stt: STTProvider,
    blob_reader: BlobReader,
) -> str:
    audio = blob_reader(chunk.audio_bucket, chunk.audio_path)
    with track_stage_latency("orchestrator", "transcribe_chunk"):
        res = stt.transcribe_chunk(
            audio=audio,
            mime_type=chunk.audio_mime or DEFAULT_MIME,
            display_name=f"{job_id}-chunk-{chunk.seq}",
        )
    return (res.text or "").strip()


async def process_claimed_chunk(
    store: JobStore,
    stt: STTProvider,
    chunk: Chunk,
    *,
    job_id: str,
    blob_reader: BlobReader = blob.get_bytes,
) -> ChunkOutcome:
    try:
        text = await asyncio.to_thread(
            _transcribe, chunk, job_id=job_id, stt=stt, blob_reader=blob_reader
        )
        await asyncio.to_thread(
            store.update_chunk,
            chunk.id,
            status=ChunkStatus.processed,
            transcript_text=text,
            error=None,
            claimed_at=None,
        )
    except Exception as e:
        return await _record_failure(store, chunk, job_id=job_id, err=e)

    record_chunk_result("processed")
    log.info(
        "chunk_processed",
        extra={"payload": {"job_id": job_id, "seq": chunk.seq, "chars": len(text)}},
    )
    return ChunkOutcome(seq=chunk.seq, ok=True, retry_count=int(chunk.retry_count or 0))


async def _record_failure(
    store: JobStore, chunk: Chunk, *, job_id: str, err: BaseException
) -> ChunkOutcome:
    previous = current_retry_count(retry_count=chunk.retry_count, error=chunk.error)
    state = next_failure_state(previous, error_message(err, "Chunk processing failed"))

    try:
        await asyncio.to_thread(
            store.update_chunk,
            chunk.id,
            status=state.status,
            error=state.error,
            retry_count=state.retry_count,
            claimed_at=None,
        )
    except Exception as e:
        # строка останется processing; её вернёт в очередь stale-reaper
        log.error(
            "chunk_failure_not_recorded",
            extra={"payload": {"job_id": job_id, "seq": chunk.seq, "err": str(e)[:300]}},
        )

    event = "chunk_failed" if state.exhausted else "chunk_requeued"
    record_chunk_result("failed" if state.exhausted else "requeued")
    log.warning(
        event,
        extra={
            "payload": {
                "job_id": job_id,
                "seq": chunk.seq,
                "retry_count": state.retry_count,
                "err": str(err)[:300],
            }
        },
    )
    return ChunkOutcome(seq=chunk.seq, ok=False, retry_count=state.retry_count)
