"""
Claim чанков для обработки.

Единственное место, где два параллельных вызова оркестратора (поллинг
клиента + cron sweep, два пересекающихся поллинга) могли бы взять один и
тот же чанк. Корректность держится на условном UPDATE в хранилище:
строка переходит uploaded -> processing, только если на момент записи она
всё ещё uploaded и без транскрипта. Проигравший получает None.

Алгоритм:
1) берём до max(limit, concurrency) * 3 кандидатов по seq (запас на гонки)
2) параллельно (concurrency) пытаемся claim каждого
3) оставляем успешные, обрезаем до limit
"""

from __future__ import annotations

import asyncio

from meeting_notes_agent.common.logging import get_project_logger
from meeting_notes_agent.common.metrics import record_claim_result
from meeting_notes_agent.domain.enums import ChunkStatus
from meeting_notes_agent.processing.concurrency import map_with_concurrency
from meeting_notes_agent.storage.models import Chunk
from meeting_notes_agent.storage.store import JobStore

log = get_project_logger()

CANDIDATE_HEADROOM = 3


async def claim_chunks_for_processing(
    store: JobStore,
    *,
    job_id: str,
    owner_id: str | None,
    limit: int,
    concurrency: int,
) -> list[Chunk]:
    if limit <= 0:
        return []

    fanout = max(1, concurrency)
    candidates = await asyncio.to_thread(
        store.list_claimable_chunks, job_id, owner_id, max(limit, fanout) * CANDIDATE_HEADROOM
    )
    if not candidates:
        return []

    won = 0
    attempted = 0

    async def _claim(candidate: Chunk, _idx: int) -> Chunk | None:
        nonlocal won, attempted
        if won >= limit:
            return None
        attempted += 1
        row = await asyncio.to_thread(store.claim_chunk, candidate.id)
        if row is not None:
            won += 1
        return row

    claimed_or_none = await map_with_concurrency(candidates, fanout, _claim)

    claimed = [c for c in claimed_or_none if c is not None]
    missed = attempted - len(claimed)
    record_claim_result(claimed=len(claimed), missed=missed)
    if missed:
        log.debug(
            "chunk_claim_missed",
            extra={"payload": {"job_id": job_id, "missed": missed}},
        )

    excess = claimed[limit:]
    for chunk in excess:
        await asyncio.to_thread(_release, store, chunk)
    return claimed[:limit]


def _release(store: JobStore, chunk: Chunk) -> None:
    # параллельные попытки могли взять больше limit: возвращаем лишнее
    store.release_stale_chunk(
        chunk.id,
        chunk.claimed_at,
        status=ChunkStatus.uploaded,
        claimed_at=None,
    )
