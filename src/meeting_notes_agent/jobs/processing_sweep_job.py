"""
Processing sweep job.

Назначение:
- добивать встречи, которые клиент перестал поллить (закрыл вкладку)
- запускать оркестратор для старейших uploaded/processing встреч

Ошибка одной встречи не останавливает sweep: встреча уже помечена error
оркестратором, здесь она только учитывается в failed.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from meeting_notes_agent.common.config import get_settings
from meeting_notes_agent.common.errors import error_message
from meeting_notes_agent.common.logging import get_project_logger
from meeting_notes_agent.common.processing_config import cron_batch_size
from meeting_notes_agent.services.orchestrator import (
    ChunkProcessingOrchestrator,
    build_orchestrator,
)

log = get_project_logger()


@dataclass
class SweepResult:
    processed_meetings: int = 0
    ready: int = 0
    processing: int = 0
    failed: int = 0
    results: list[dict[str, Any]] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "ok": True,
            "processedMeetings": self.processed_meetings,
            "ready": self.ready,
            "processing": self.processing,
            "failed": self.failed,
            "results": self.results,
        }


async def sweep(orchestrator: ChunkProcessingOrchestrator, *, limit: int) -> SweepResult:
    jobs = await asyncio.to_thread(orchestrator.store.list_pending_jobs, limit)
    out = SweepResult(processed_meetings=len(jobs))

    for job in jobs:
        try:
            res = await orchestrator.process_job(job.id)
        except Exception as e:
            out.failed += 1
            out.results.append({"id": job.id, "status": "error", "message": error_message(e)})
            continue

        if res.status == "ready":
            out.ready += 1
        else:
            out.processing += 1
        out.results.append({"id": job.id, **res.to_payload()})

    return out


def run(
    *,
    limit: int | None = None,
    orchestrator: ChunkProcessingOrchestrator | None = None,
) -> SweepResult:
    batch = int(limit) if limit is not None else cron_batch_size(get_settings())
    log.info("sweep_started", extra={"payload": {"limit": batch}})

    result = asyncio.run(sweep(orchestrator or build_orchestrator(), limit=max(1, batch)))

    log.info(
        "sweep_done",
        extra={
            "payload": {
                "processed_meetings": result.processed_meetings,
                "ready": result.ready,
                "processing": result.processing,
                "failed": result.failed,
            }
        },
    )
    return result
