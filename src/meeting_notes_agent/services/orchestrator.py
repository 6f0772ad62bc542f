"""
Оркестратор обработки встречи по чанкам.

Один вызов process_job делает столько работы, сколько помещается в
loop budget, и возвращает прогресс. Клиент (поллинг) и cron sweep
вызывают его повторно, пока встреча не станет ready/error.

Состояние между вызовами живёт только в БД:
- чанки забираются через условный claim (см. claim_service)
- каждая итерация заново читает снимок чанков
- неудачи чанков пишутся в строку чанка (retry marker / error)

Итерация цикла:
1) снимок чанков -> прогресс
2) есть error-чанк -> авария встречи
3) есть очередь -> claim + обработка, следующая итерация без паузы
4) всё готово и запись завершена -> финализация -> ready
5) ждём догрузки чанков (idle wait) или возвращаем processing
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from typing import Any

from meeting_notes_agent.common.config import get_settings
from meeting_notes_agent.common.errors import (
    ErrCode,
    FatalChunkError,
    NotFoundError,
    ProcessingFailedError,
    error_message,
)
from meeting_notes_agent.common.logging import get_project_logger
from meeting_notes_agent.common.metrics import record_job_result, track_stage_latency
from meeting_notes_agent.common.processing_config import ProcessingConfig
from meeting_notes_agent.common.time import monotonic
from meeting_notes_agent.domain.enums import ChunkStatus, JobStatus
from meeting_notes_agent.domain.state_machine import can_finalize_chunked, should_enter_processing
from meeting_notes_agent.llm.orchestrator import GenerationOrchestrator, build_generative_provider
from meeting_notes_agent.processing.concurrency import map_with_concurrency
from meeting_notes_agent.processing.progress import ChunkProgress, compute_chunk_progress
from meeting_notes_agent.processing.retry import strip_retry_prefix
from meeting_notes_agent.storage import blob
from meeting_notes_agent.storage.models import Chunk, Job
from meeting_notes_agent.storage.store import JobStore, SqlJobStore
from meeting_notes_agent.stt.base import STTProvider

from .chunk_worker import BlobReader, ChunkOutcome, process_claimed_chunk
from .claim_service import claim_chunks_for_processing
from .finalization import finalize_from_chunk_transcripts
from .single_file import has_single_file_audio, process_single_file
from .stale_claims import requeue_stale_chunks

log = get_project_logger()

_PAYLOAD_KEYS = {
    "status": "status",
    "waiting_uploads": "waitingUploads",
    "processed_chunk_seq": "processedChunkSeq",
    "processed_chunks": "processedChunks",
    "total_chunks": "totalChunks",
    "remaining_chunks": "remainingChunks",
    "should_continue": "shouldContinue",
    "processed_this_run": "processedThisRun",
}


@dataclass
class ProcessResult:
    status: str
    waiting_uploads: int | None = None
    processed_chunk_seq: int | None = None
    processed_chunks: int | None = None
    total_chunks: int | None = None
    remaining_chunks: int | None = None
    should_continue: bool | None = None
    processed_this_run: int | None = None

    def to_payload(self) -> dict[str, Any]:
        """Ответ поллингу: camelCase, незаданные поля не выводятся."""
        return {
            _PAYLOAD_KEYS[key]: value for key, value in asdict(self).items() if value is not None
        }


def chunk_failure_message(chunks: list[Chunk]) -> str:
    failed = next((c for c in chunks if c.status == ChunkStatus.error), None)
    if failed is None:
        return "One or more chunks failed."
    return f"Chunk #{failed.seq} failed: {strip_retry_prefix(failed.error) or 'processing error'}"


class ChunkProcessingOrchestrator:
    def __init__(
        self,
        config: ProcessingConfig,
        store: JobStore,
        stt: STTProvider,
        generator: GenerationOrchestrator,
        *,
        clock: Callable[[], float] = monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        blob_reader: BlobReader = blob.get_bytes,
    ) -> None:
        self.config = config
        self.store = store
        self.stt = stt
        self.generator = generator
        self.clock = clock
        self.sleep = sleep
        self.blob_reader = blob_reader

    # -------------------------------------------------------------------------
    # Public
    # -------------------------------------------------------------------------
    async def process_job(self, job_id: str, owner_id: str | None = None) -> ProcessResult:
        started = self.clock()

        job = await asyncio.to_thread(self.store.get_job, job_id, owner_id)
        if job is None:
            raise NotFoundError("Meeting not found", {"job_id": job_id})

        if job.status == JobStatus.ready:
            record_job_result("ready")
            return ProcessResult(status=JobStatus.ready.value)

        can_finalize = can_finalize_chunked(job.status)
        try:
            if should_enter_processing(job.status):
                await asyncio.to_thread(
                    self.store.update_job, job.id, status=JobStatus.processing, error=None
                )
            result = await self._run(job, can_finalize=can_finalize, started=started)
        except Exception as e:
            raise await self._fail(job, e) from e

        record_job_result(result.status)
        return result

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------
    def _elapsed(self, started: float) -> float:
        return self.clock() - started

    def _has_time(self, started: float) -> bool:
        return self._elapsed(started) < self.config.loop_budget_sec

    async def _run(self, job: Job, *, can_finalize: bool, started: float) -> ProcessResult:
        await asyncio.to_thread(
            requeue_stale_chunks, self.store, job.id, self.config.stale_claim_sec
        )

        if await asyncio.to_thread(self.store.has_chunks, job.id, job.owner_id):
            return await self._run_chunked(job, can_finalize=can_finalize, started=started)

        if not has_single_file_audio(job):
            return ProcessResult(
                status=JobStatus.processing.value, waiting_uploads=1, should_continue=True
            )

        await asyncio.to_thread(
            process_single_file, self.store, self.generator, job, blob_reader=self.blob_reader
        )
        return ProcessResult(status=JobStatus.ready.value)

    async def _snapshot(self, job: Job) -> tuple[list[Chunk], ChunkProgress]:
        chunks = await asyncio.to_thread(self.store.list_chunks, job.id, job.owner_id)
        return chunks, compute_chunk_progress(chunks)

    async def _process_claimed(self, job: Job, claimed: list[Chunk]) -> list[ChunkOutcome]:
        async def _one(chunk: Chunk, _idx: int) -> ChunkOutcome:
            return await process_claimed_chunk(
                self.store, self.stt, chunk, job_id=job.id, blob_reader=self.blob_reader
            )

        return await map_with_concurrency(claimed, self.config.chunk_concurrency, _one)

    async def _run_chunked(
        self, job: Job, *, can_finalize: bool, started: float
    ) -> ProcessResult:
        cfg = self.config
        processed_this_run = 0
        max_seq: int | None = None

        while self._has_time(started):
            chunks, progress = await self._snapshot(job)

            if progress.has_errors:
                raise FatalChunkError(chunk_failure_message(chunks), {"job_id": job.id})

            if progress.total == 0:
                break

            if progress.queued > 0:
                with track_stage_latency("orchestrator", "claim"):
                    claimed = await claim_chunks_for_processing(
                        self.store,
                        job_id=job.id,
                        owner_id=job.owner_id,
                        limit=min(progress.queued, cfg.max_chunks_per_pass),
                        concurrency=cfg.chunk_concurrency,
                    )
                if claimed:
                    log.info(
                        "chunk_claimed",
                        extra={
                            "payload": {
                                "job_id": job.id,
                                "seqs": [c.seq for c in claimed],
                            }
                        },
                    )
                    outcomes = await self._process_claimed(job, claimed)
                    successful = [o.seq for o in outcomes if o.ok]
                    processed_this_run += len(successful)
                    if successful:
                        newest = max(successful)
                        max_seq = newest if max_seq is None else max(max_seq, newest)
                    continue

            if can_finalize and progress.remaining == 0:
                await asyncio.to_thread(
                    finalize_from_chunk_transcripts, self.store, self.generator, job
                )
                return ProcessResult(
                    status=JobStatus.ready.value,
                    processed_this_run=processed_this_run,
                    processed_chunk_seq=max_seq,
                    total_chunks=progress.total,
                    processed_chunks=progress.processed,
                    remaining_chunks=0,
                    waiting_uploads=0,
                )

            if progress.queued == 0 and progress.waiting_uploads > 0 and self._has_time(started):
                await self.sleep(cfg.idle_wait_sec)
                continue

            return self._processing_result(
                progress,
                can_finalize=can_finalize,
                processed_this_run=processed_this_run,
                max_seq=max_seq,
            )

        if not self._has_time(started):
            log.info(
                "orchestrator_budget_exhausted",
                extra={
                    "payload": {
                        "job_id": job.id,
                        "processed_this_run": processed_this_run,
                        "budget_ms": cfg.loop_budget_ms,
                    }
                },
            )

        _, progress = await self._snapshot(job)
        return self._processing_result(
            progress,
            can_finalize=can_finalize,
            processed_this_run=processed_this_run,
            max_seq=max_seq,
        )

    def _processing_result(
        self,
        progress: ChunkProgress,
        *,
        can_finalize: bool,
        processed_this_run: int,
        max_seq: int | None,
    ) -> ProcessResult:
        return ProcessResult(
            status=JobStatus.processing.value,
            processed_this_run=processed_this_run,
            processed_chunk_seq=max_seq,
            total_chunks=progress.total,
            processed_chunks=progress.processed,
            remaining_chunks=progress.remaining,
            waiting_uploads=progress.waiting_uploads,
            should_continue=progress.queued > 0 or (can_finalize and progress.remaining == 0),
        )

    async def _fail(self, job: Job, err: BaseException) -> ProcessingFailedError:
        """Пометить встречу error и вернуть ошибку для вызывающего."""
        message = error_message(err)
        try:
            await asyncio.to_thread(
                self.store.update_job,
                job.id,
                status=JobStatus.error,
                error=message,
                model=self.generator.model,
            )
        except Exception as e:
            log.error(
                "job_error_not_recorded",
                extra={"payload": {"job_id": job.id, "err": str(e)[:300]}},
            )

        record_job_result("error")
        log.error(
            "job_failed",
            extra={
                "payload": {
                    "job_id": job.id,
                    "code": getattr(err, "code", ErrCode.UNKNOWN),
                    "err": message[:300],
                }
            },
        )
        return ProcessingFailedError(
            message, {"job_id": job.id, "cause": getattr(err, "code", ErrCode.UNKNOWN)}
        )


# =============================================================================
# FACTORY
# =============================================================================
def build_stt_provider(generator: GenerationOrchestrator) -> STTProvider:
    if (get_settings().generative_provider or "").strip().lower() == "mock":
        from meeting_notes_agent.stt.mock import MockSTTProvider

        return MockSTTProvider()

    from meeting_notes_agent.stt.generative import GenerativeSTTProvider

    return GenerativeSTTProvider(generator)


def build_orchestrator(config: ProcessingConfig | None = None) -> ChunkProcessingOrchestrator:
    generator = GenerationOrchestrator(build_generative_provider())
    return ChunkProcessingOrchestrator(
        config or ProcessingConfig.from_settings(get_settings()),
        SqlJobStore(),
        build_stt_provider(generator),
        generator,
    )


def process_job_sync(
    job_id: str,
    owner_id: str | None = None,
    *,
    orchestrator: ChunkProcessingOrchestrator | None = None,
) -> ProcessResult:
    """Синхронная обёртка для воркеров и sync-эндпоинтов."""
    orch = orchestrator or build_orchestrator()
    return asyncio.run(orch.process_job(job_id, owner_id))
