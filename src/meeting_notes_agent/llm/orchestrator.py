from __future__ import annotations

import json
import time
from collections.abc import Callable
from typing import Any, TypeVar

from meeting_notes_agent.common.config import get_settings
from meeting_notes_agent.common.errors import AppError, ErrCode, ProviderError
from meeting_notes_agent.common.logging import get_llm_logger

from .base import GenerativeProvider, Part, UploadedFile

log = get_llm_logger()

T = TypeVar("T")


class GenerationOrchestrator:
    """Обёртка над провайдером: транспортные ретраи, парсинг JSON, единые ошибки.

    Важная идея: здесь нет логики провайдера, только orchestration.
    Ретраи здесь: короткие повторы одного HTTP-вызова. Попытки обработки
    чанка считаются отдельно (processing/retry.py).
    """

    def __init__(
        self,
        provider: GenerativeProvider,
        *,
        retries: int | None = None,
        backoff_ms: int | None = None,
    ) -> None:
        s = get_settings()
        self.provider = provider
        self.retries = max(0, int(s.llm_retries if retries is None else retries))
        self.backoff_ms = max(0, int(s.llm_retry_backoff_ms if backoff_ms is None else backoff_ms))

    @property
    def model(self) -> str:
        return getattr(self.provider, "model", "unknown")

    def _retry(self, op: str, fn: Callable[..., T], **kwargs: Any) -> T:
        last_err: BaseException | None = None
        for attempt in range(self.retries + 1):
            try:
                return fn(**kwargs)
            except Exception as e:
                last_err = e
                log.warning(
                    "llm_call_failed",
                    extra={"payload": {"op": op, "attempt": attempt + 1, "err": str(e)[:300]}},
                )
                if attempt >= self.retries:
                    break
                time.sleep(self.backoff_ms / 1000.0)

        assert last_err is not None
        if isinstance(last_err, AppError):
            raise last_err
        raise ProviderError(
            ErrCode.LLM_PROVIDER_ERROR,
            str(last_err) or f"{op} failed",
            {"op": op},
        ) from last_err

    def upload_file(self, *, data: bytes, mime_type: str, display_name: str) -> UploadedFile:
        return self._retry(
            "upload_file",
            self.provider.upload_file,
            data=data,
            mime_type=mime_type,
            display_name=display_name,
        )

    def generate_text(self, *, parts: list[Part], temperature: float = 0.4) -> str:
        return self._retry(
            "generate_text", self.provider.generate_text, parts=parts, temperature=temperature
        )

    def generate_json(
        self, *, parts: list[Part], schema: dict[str, Any], temperature: float = 0.2
    ) -> dict[str, Any]:
        """Возвращает распарсенный JSON (dict)."""
        text = self._retry(
            "generate_json",
            self.provider.generate_json,
            parts=parts,
            schema=schema,
            temperature=temperature,
        )
        try:
            data = json.loads(text)
        except ValueError as e:
            raise ProviderError(
                ErrCode.LLM_PROVIDER_ERROR,
                "Model returned invalid JSON",
                {"err": str(e), "text_head": text[:500]},
            ) from e
        if not isinstance(data, dict):
            raise ProviderError(
                ErrCode.LLM_PROVIDER_ERROR,
                "Model returned non-object JSON",
                {"text_head": text[:500]},
            )
        return data


def build_generative_provider() -> GenerativeProvider:
    s = get_settings()
    provider = (s.generative_provider or "").strip().lower()
    if provider == "mock":
        from .mock import MockGenerativeProvider

        return MockGenerativeProvider()

    from .gemini import GeminiProvider

    return GeminiProvider()
