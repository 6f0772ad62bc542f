"""
Доменные перечисления (enum).

Используются во всей системе:
- жизненный цикл встречи (job)
- состояние отдельного аудио-чанка
- роли сообщений чата по встрече
"""

from __future__ import annotations

import enum


class JobStatus(str, enum.Enum):
    """
    Статус встречи.
    """

    recording = "recording"
    uploading = "uploading"
    uploaded = "uploaded"
    processing = "processing"
    ready = "ready"
    error = "error"


class ChunkStatus(str, enum.Enum):
    """
    Статус аудио-чанка.
    """

    uploading = "uploading"
    uploaded = "uploaded"
    processing = "processing"
    processed = "processed"
    error = "error"


class MessageRole(str, enum.Enum):
    """
    Автор сообщения в чате по встрече.
    """

    user = "user"
    assistant = "assistant"
