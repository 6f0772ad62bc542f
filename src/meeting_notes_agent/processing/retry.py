"""
Ретраи обработки чанков.

Назначение:
- ограниченное число попыток на чанк (MAX_CHUNK_ATTEMPTS)
- до исчерпания: чанк возвращается в uploaded с маркером "retry:<n>|<msg>"
- после: чанк переходит в error с "чистым" сообщением

Важно:
- основной счётчик в колонке retry_count; префикс в error поддерживается
  для совместимости со старыми строками (берётся максимум из двух)
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from meeting_notes_agent.domain.enums import ChunkStatus

MAX_CHUNK_ATTEMPTS = 3
MAX_ERROR_LEN = 800

_RETRY_PREFIX_RE = re.compile(r"^retry:(\d+)\|", re.IGNORECASE)
_RETRY_STRIP_RE = re.compile(r"^retry:\d+\|(.*)$", re.IGNORECASE | re.DOTALL)


def parse_retry_count(raw: str | None) -> int:
    if not raw:
        return 0
    match = _RETRY_PREFIX_RE.match(raw)
    if not match:
        return 0
    n = int(match.group(1))
    return n if n > 0 else 0


def strip_retry_prefix(raw: str | None) -> str:
    if not raw:
        return ""
    match = _RETRY_STRIP_RE.match(raw)
    return (match.group(1) if match else raw).strip()


def format_retry_error(count: int, message: str) -> str:
    return f"retry:{count}|{message}"


@dataclass(frozen=True)
class FailureTransition:
    status: ChunkStatus
    error: str
    retry_count: int

    @property
    def exhausted(self) -> bool:
        return self.status == ChunkStatus.error


def current_retry_count(*, retry_count: int | None, error: str | None) -> int:
    return max(int(retry_count or 0), parse_retry_count(error))


def next_failure_state(previous_count: int, message: str) -> FailureTransition:
    """
    Следующее состояние чанка после неудачной попытки.
    """
    clean = (message or "Chunk processing failed")[:MAX_ERROR_LEN]
    attempts = max(0, previous_count) + 1
    if attempts >= MAX_CHUNK_ATTEMPTS:
        return FailureTransition(status=ChunkStatus.error, error=clean, retry_count=attempts)
    return FailureTransition(
        status=ChunkStatus.uploaded,
        error=format_retry_error(attempts, clean),
        retry_count=attempts,
    )
