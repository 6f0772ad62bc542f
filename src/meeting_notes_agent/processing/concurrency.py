"""
Ограниченный по параллельности async map.

- results[i] соответствует items[i] вне зависимости от порядка завершения
- одновременно выполняется не больше limit вызовов fn
- min(limit, n) воркеров разбирают общий курсор индексов
- исключение из fn пробрасывается вызывающему, остальные воркеры отменяются
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def map_with_concurrency(
    items: Sequence[T],
    limit: int,
    fn: Callable[[T, int], Awaitable[R]],
) -> list[R]:
    n = len(items)
    if n == 0:
        return []

    max_workers = max(1, int(limit or 1))
    output: list[R | None] = [None] * n
    cursor = 0

    async def worker() -> None:
        nonlocal cursor
        while True:
            idx = cursor
            cursor += 1
            if idx >= n:
                return
            output[idx] = await fn(items[idx], idx)

    runners = [asyncio.ensure_future(worker()) for _ in range(min(max_workers, n))]
    try:
        await asyncio.gather(*runners)
    except BaseException:
        for r in runners:
            r.cancel()
        await asyncio.gather(*runners, return_exceptions=True)
        raise

    return output  # type: ignore[return-value]
