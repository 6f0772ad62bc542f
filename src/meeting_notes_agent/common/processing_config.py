"""
Конфигурация оркестратора чанков.

Явная структура, которая передаётся в оркестратор при создании
(а не глобальные ENV-переменные, читаемые по месту).

Правила разбора значения:
- число -> отбрасываем дробную часть -> клампим в [min, max]
- не число / пусто -> значение по умолчанию
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .config import Settings

# (default, min, max)
CHUNK_CONCURRENCY = (4, 1, 8)
MAX_CHUNKS_PER_PASS = (24, 1, 160)
LOOP_BUDGET_MS = (180_000, 10_000, 240_000)
IDLE_WAIT_MS = (1_000, 200, 5_000)
STALE_CLAIM_MS = (600_000, 60_000, 3_600_000)
CRON_MEETING_BATCH_SIZE = (1, 1, 20)

# camelCase ключ -> ENV-ключ
_KEYS = {
    "chunkConcurrency": "PROCESSING_CHUNK_CONCURRENCY",
    "maxChunksPerPass": "PROCESSING_MAX_CHUNKS_PER_PASS",
    "loopBudgetMs": "PROCESSING_LOOP_BUDGET_MS",
    "idleWaitMs": "PROCESSING_IDLE_WAIT_MS",
    "staleClaimMs": "PROCESSING_STALE_CLAIM_MS",
}


def parse_bounded_int(value: Any, fallback: int, lo: int, hi: int) -> int:
    if value is None or isinstance(value, bool):
        return fallback
    try:
        parsed = float(str(value).strip())
    except ValueError:
        return fallback
    if not math.isfinite(parsed):
        return fallback
    as_int = math.trunc(parsed)
    if as_int < lo:
        return lo
    if as_int > hi:
        return hi
    return as_int


def _bounded(value: Any, bounds: tuple[int, int, int]) -> int:
    default, lo, hi = bounds
    return parse_bounded_int(value, default, lo, hi)


@dataclass(frozen=True)
class ProcessingConfig:
    chunk_concurrency: int = CHUNK_CONCURRENCY[0]
    max_chunks_per_pass: int = MAX_CHUNKS_PER_PASS[0]
    loop_budget_ms: int = LOOP_BUDGET_MS[0]
    idle_wait_ms: int = IDLE_WAIT_MS[0]
    stale_claim_ms: int = STALE_CLAIM_MS[0]

    @property
    def loop_budget_sec(self) -> float:
        return self.loop_budget_ms / 1000.0

    @property
    def idle_wait_sec(self) -> float:
        return self.idle_wait_ms / 1000.0

    @property
    def stale_claim_sec(self) -> float:
        return self.stale_claim_ms / 1000.0

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None = None) -> ProcessingConfig:
        """
        Принимает camelCase-ключи (chunkConcurrency, ...) или ENV-имена
        (PROCESSING_CHUNK_CONCURRENCY, ...). camelCase имеет приоритет.
        """
        raw = raw or {}

        def pick(key: str) -> Any:
            if key in raw:
                return raw[key]
            return raw.get(_KEYS[key])

        return cls(
            chunk_concurrency=_bounded(pick("chunkConcurrency"), CHUNK_CONCURRENCY),
            max_chunks_per_pass=_bounded(pick("maxChunksPerPass"), MAX_CHUNKS_PER_PASS),
            loop_budget_ms=_bounded(pick("loopBudgetMs"), LOOP_BUDGET_MS),
            idle_wait_ms=_bounded(pick("idleWaitMs"), IDLE_WAIT_MS),
            stale_claim_ms=_bounded(pick("staleClaimMs"), STALE_CLAIM_MS),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> ProcessingConfig:
        return cls.from_mapping(
            {
                "chunkConcurrency": settings.processing_chunk_concurrency,
                "maxChunksPerPass": settings.processing_max_chunks_per_pass,
                "loopBudgetMs": settings.processing_loop_budget_ms,
                "idleWaitMs": settings.processing_idle_wait_ms,
                "staleClaimMs": settings.processing_stale_claim_ms,
            }
        )

    def as_dict(self) -> dict[str, int]:
        return {
            "chunkConcurrency": self.chunk_concurrency,
            "maxChunksPerPass": self.max_chunks_per_pass,
            "loopBudgetMs": self.loop_budget_ms,
            "idleWaitMs": self.idle_wait_ms,
            "staleClaimMs": self.stale_claim_ms,
        }


def cron_batch_size(settings: Settings) -> int:
    return _bounded(settings.cron_meeting_batch_size, CRON_MEETING_BATCH_SIZE)
