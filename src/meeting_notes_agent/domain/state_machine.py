"""
Машина состояний встречи.

recording -> uploading -> uploaded -> processing -> {ready | error}

Назначение:
- централизованные правила входа в processing и финализации
- предсказуемое поведение при повторных вызовах оркестратора

Завершение загрузки (uploaded) допустимо из любого статуса: повторная
загрузка сбрасывает встречу и запускает обработку заново.
"""

from __future__ import annotations

from .enums import JobStatus

# Аудио ещё пишется/догружается: собирать итог из чанков рано
_ACCUMULATING = {JobStatus.recording, JobStatus.uploading}


def _as_status(status: JobStatus | str) -> JobStatus:
    return status if isinstance(status, JobStatus) else JobStatus(status)


def can_finalize_chunked(status: JobStatus | str) -> bool:
    """
    Финализация из чанков разрешена, только если аудио больше не поступает.
    """
    return _as_status(status) not in _ACCUMULATING


def should_enter_processing(status: JobStatus | str) -> bool:
    """
    uploaded -> processing, а также повторный вход processing -> processing.
    """
    return _as_status(status) in {JobStatus.uploaded, JobStatus.processing}
