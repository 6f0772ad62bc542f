"""
Метрики Prometheus для сервиса.

Назначение:
- Экспорт /metrics
- Счётчики по чанкам, claim-попыткам и встречам
- Гистограмма задержек стадий (claim / transcribe / finalize / pass)
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import FastAPI, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# =============================================================================
# СЧЁТЧИКИ И МЕТРИКИ
# =============================================================================
REQUESTS_TOTAL = Counter(
    "agent_requests_total",
    "Общее количество HTTP запросов",
    ["service", "route", "method", "status"],
)

HTTP_REQUEST_LATENCY_MS = Histogram(
    "agent_http_request_latency_ms",
    "Задержка HTTP запроса (мс)",
    ["service", "route", "method"],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
)

PIPELINE_STAGE_LATENCY_MS = Histogram(
    "agent_pipeline_stage_latency_ms",
    "Задержка выполнения стадий обработки (мс)",
    ["service", "stage"],
    buckets=(10, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000, 60000, 120000),
)

CHUNKS_TOTAL = Counter(
    "agent_chunks_total",
    "Результаты обработки чанков",
    ["result"],  # processed|requeued|failed|reaped
)

CHUNK_CLAIMS_TOTAL = Counter(
    "agent_chunk_claims_total",
    "Попытки claim чанков",
    ["result"],  # claimed|missed
)

JOBS_TOTAL = Counter(
    "agent_jobs_total",
    "Итоги вызовов оркестратора",
    ["result"],  # ready|processing|error
)


@contextmanager
def track_stage_latency(service: str, stage: str) -> Iterator[None]:
    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        PIPELINE_STAGE_LATENCY_MS.labels(service=service, stage=stage).observe(elapsed_ms)


def record_chunk_result(result: str) -> None:
    CHUNKS_TOTAL.labels(result=result).inc()


def record_claim_result(*, claimed: int, missed: int) -> None:
    if claimed:
        CHUNK_CLAIMS_TOTAL.labels(result="claimed").inc(claimed)
    if missed:
        CHUNK_CLAIMS_TOTAL.labels(result="missed").inc(missed)


def record_job_result(result: str) -> None:
    JOBS_TOTAL.labels(result=result).inc()


# =============================================================================
# ENDPOINT /metrics
# =============================================================================
def setup_metrics_endpoint(app: FastAPI, service: str = "api-gateway") -> None:
    """
    Регистрирует endpoint /metrics для Prometheus.
    """

    @app.middleware("http")
    async def http_metrics(request: Request, call_next):
        route = request.url.path
        method = request.method
        started = time.perf_counter()

        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        status_code = str(response.status_code)

        REQUESTS_TOTAL.labels(
            service=service,
            route=route,
            method=method,
            status=status_code,
        ).inc()
        HTTP_REQUEST_LATENCY_MS.labels(
            service=service,
            route=route,
            method=method,
        ).observe(elapsed_ms)
        return response

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
