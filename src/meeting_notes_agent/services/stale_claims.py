"""
Возврат зависших claim.

Если вызов оркестратора умер между claim и записью результата, чанк
остаётся в processing навсегда. Такие чанки (claimed_at старше порога)
считаются неудачной попыткой с сообщением "claim expired": возвращаются
в uploaded с маркером ретрая или, после исчерпания попыток, уходят в error.

Возврат условный (status=processing и тот же claimed_at), поэтому из
нескольких параллельных вызовов зависший чанк заберёт ровно один.
"""

from __future__ import annotations

from datetime import timedelta

from meeting_notes_agent.common.logging import get_project_logger
from meeting_notes_agent.common.metrics import record_chunk_result
from meeting_notes_agent.common.time import utc_now
from meeting_notes_agent.processing.retry import current_retry_count, next_failure_state
from meeting_notes_agent.storage.store import JobStore

log = get_project_logger()

STALE_CLAIM_MESSAGE = "claim expired"


def requeue_stale_chunks(store: JobStore, job_id: str, stale_after_sec: float) -> int:
    """Возвращает число чанков, которые этот вызов снял с зависшего claim."""
    cutoff = utc_now() - timedelta(seconds=max(0.0, stale_after_sec))
    reaped = 0

    for chunk in store.list_stale_chunks(job_id, cutoff):
        previous = current_retry_count(retry_count=chunk.retry_count, error=chunk.error)
        state = next_failure_state(previous, STALE_CLAIM_MESSAGE)
        released = store.release_stale_chunk(
            chunk.id,
            chunk.claimed_at,
            status=state.status,
            error=state.error,
            retry_count=state.retry_count,
            claimed_at=None,
        )
        if not released:
            continue

        reaped += 1
        record_chunk_result("reaped")
        log.warning(
            "stale_chunk_requeued",
            extra={
                "payload": {
                    "job_id": job_id,
                    "seq": chunk.seq,
                    "status": state.status.value,
                    "retry_count": state.retry_count,
                }
            },
        )
    return reaped
