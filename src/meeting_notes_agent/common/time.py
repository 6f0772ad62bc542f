"""
Утилиты времени.

Назначение:
- единое "сейчас" для записей в БД (naive UTC, как в колонках DateTime)
- монотонные часы для бюджета оркестратора
"""

from __future__ import annotations

import time
from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Текущее время в UTC без tzinfo (для колонок DateTime).
    """
    return datetime.now(UTC).replace(tzinfo=None)


def monotonic() -> float:
    return time.monotonic()
