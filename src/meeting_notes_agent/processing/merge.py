"""
Склейка транскриптов чанков в единый текст встречи.

Формат:
- порядок строго по seq
- пустые транскрипты пропускаются
- между чанками пустая строка
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

CHUNK_SEPARATOR = "\n\n"


def merge_chunk_transcripts(chunks: Iterable[Any]) -> str:
    ordered = sorted(chunks, key=lambda c: c.seq)
    texts = [(c.transcript_text or "").strip() for c in ordered]
    return CHUNK_SEPARATOR.join(t for t in texts if t)
