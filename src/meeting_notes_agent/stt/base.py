"""
Базовый интерфейс STT (Speech-to-Text).

Назначение:
- единый контракт для транскрипции одного аудио-чанка
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass
class STTResult:
    text: str
    model: str | None = None


class STTProvider(Protocol):
    def transcribe_chunk(self, *, audio: bytes, mime_type: str, display_name: str) -> STTResult: ...
