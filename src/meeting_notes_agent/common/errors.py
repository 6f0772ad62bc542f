"""
Единые ошибки и коды ошибок.

Назначение:
- предсказуемые коды для HTTP/воркеров/логов
- единый стиль исключений по проекту
"""

from __future__ import annotations

from dataclasses import dataclass


class ErrCode:
    # Общие
    UNKNOWN = "unknown"
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"

    # Обработка чанков / встречи
    CHUNK_FAILED = "chunk_failed"
    EMPTY_MERGE = "empty_merge"
    PROCESSING_FAILED = "processing_failed"

    # Провайдеры
    STT_PROVIDER_ERROR = "stt_provider_error"
    LLM_PROVIDER_ERROR = "llm_provider_error"

    # Инфра/хранилища
    DB_ERROR = "db_error"
    STORAGE_ERROR = "storage_error"


@dataclass
class AppError(Exception):
    """
    Базовая ошибка приложения.
    - code: стабильный код ошибки
    - message: безопасное сообщение
    - details: доп. данные (без секретов/PII)
    """

    code: str
    message: str
    details: dict | None = None

    def __str__(self) -> str:  # pragma: no cover
        return self.message


class ValidationError(AppError):
    def __init__(self, message: str = "Ошибка валидации", details: dict | None = None) -> None:
        super().__init__(ErrCode.VALIDATION, message, details)


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Не авторизован", details: dict | None = None) -> None:
        super().__init__(ErrCode.UNAUTHORIZED, message, details)


class NotFoundError(AppError):
    def __init__(self, message: str = "Не найдено", details: dict | None = None) -> None:
        super().__init__(ErrCode.NOT_FOUND, message, details)


class FatalChunkError(AppError):
    """Чанк исчерпал попытки: вся встреча переводится в error."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(ErrCode.CHUNK_FAILED, message, details)


class EmptyMergeError(AppError):
    def __init__(
        self,
        message: str = "No transcript text found in processed chunks",
        details: dict | None = None,
    ) -> None:
        super().__init__(ErrCode.EMPTY_MERGE, message, details)


class ProcessingFailedError(AppError):
    """Встреча помечена error; message совпадает с тем, что записано в jobs.error."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(ErrCode.PROCESSING_FAILED, message, details)


class StorageError(AppError):
    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(ErrCode.STORAGE_ERROR, message, details)


class ProviderError(AppError):
    def __init__(self, code: str, message: str, details: dict | None = None) -> None:
        super().__init__(code, message, details)


def error_message(err: BaseException, fallback: str = "Processing failed.") -> str:
    if isinstance(err, AppError):
        return err.message or fallback
    return str(err) or fallback
