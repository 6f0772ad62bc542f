"""
HTTP роуты обработки.

- POST /v1/jobs/{job_id}/process  один проход оркестратора (поллинг клиента)
- GET  /v1/cron/process           периодический sweep (Bearer CRON_SECRET)

Клиент повторяет POST, пока status != ready или пока shouldContinue=true.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from apps.api_gateway.deps import cron_auth_dep, http_error, owner_dep
from meeting_notes_agent.common.errors import AppError
from meeting_notes_agent.common.logging import get_project_logger
from meeting_notes_agent.contracts.http_api import ProcessJobResponse, SweepResponse
from meeting_notes_agent.jobs.processing_sweep_job import run as run_sweep
from meeting_notes_agent.services.orchestrator import (
    ChunkProcessingOrchestrator,
    build_orchestrator,
)

log = get_project_logger()

router = APIRouter()


def orchestrator_dep() -> ChunkProcessingOrchestrator:
    return build_orchestrator()


@router.post(
    "/jobs/{job_id}/process",
    response_model=ProcessJobResponse,
    response_model_exclude_none=True,
)
async def process_job(
    job_id: str,
    owner_id: str | None = Depends(owner_dep),
    orchestrator: ChunkProcessingOrchestrator = Depends(orchestrator_dep),
) -> ProcessJobResponse:
    try:
        result = await orchestrator.process_job(job_id, owner_id)
    except AppError as e:
        raise http_error(e) from e
    return ProcessJobResponse.model_validate(result.to_payload())


@router.get(
    "/cron/process",
    response_model=SweepResponse,
    dependencies=[Depends(cron_auth_dep)],
)
def cron_process(
    orchestrator: ChunkProcessingOrchestrator = Depends(orchestrator_dep),
) -> SweepResponse:
    result = run_sweep(orchestrator=orchestrator)
    return SweepResponse.model_validate(result.to_payload())
