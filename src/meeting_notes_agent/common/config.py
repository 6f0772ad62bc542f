"""
Централизованная конфигурация проекта (ENV / .env).

Важно:
- настройки читаются из .env и переменных окружения
- типизированные значения через pydantic-settings
- тюнинг оркестратора чанков НЕ читается отсюда напрямую:
  см. common/processing_config.py (явная структура с клампингом)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Runtime
    # -------------------------------------------------------------------------
    app_env: str = Field(default="dev", alias="APP_ENV")
    service_name: str = Field(default="api-gateway", alias="SERVICE_NAME")
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8010, alias="API_PORT")

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------
    database_dsn: str = Field(
        default="sqlite+pysqlite:///./data/notes.db",
        alias="DATABASE_DSN",
    )
    blob_dir: str = Field(default="./data/blobs", alias="BLOB_DIR")
    audio_bucket: str = Field(default="meeting-audio", alias="AUDIO_BUCKET")

    # -------------------------------------------------------------------------
    # Generative provider (транскрипция + структурированные заметки)
    # -------------------------------------------------------------------------
    generative_provider: str = Field(default="gemini", alias="GENERATIVE_PROVIDER")  # gemini|mock
    gemini_api_key: str | None = Field(default=None, alias="GEMINI_API_KEY")
    gemini_api_base: str = Field(
        default="https://generativelanguage.googleapis.com",
        alias="GEMINI_API_BASE",
    )
    gemini_model: str = Field(default="gemini-3-flash-preview", alias="GEMINI_MODEL")
    gemini_timeout_sec: int = Field(default=120, alias="GEMINI_TIMEOUT_SEC")
    gemini_file_poll_attempts: int = Field(default=30, alias="GEMINI_FILE_POLL_ATTEMPTS")
    gemini_file_poll_interval_sec: float = Field(
        default=2.0, alias="GEMINI_FILE_POLL_INTERVAL_SEC"
    )
    llm_retries: int = Field(default=1, alias="LLM_RETRIES")
    llm_retry_backoff_ms: int = Field(default=500, alias="LLM_RETRY_BACKOFF_MS")

    # -------------------------------------------------------------------------
    # Chunk processing (сырые значения, клампинг в ProcessingConfig)
    # -------------------------------------------------------------------------
    processing_chunk_concurrency: str | None = Field(
        default=None, alias="PROCESSING_CHUNK_CONCURRENCY"
    )
    processing_max_chunks_per_pass: str | None = Field(
        default=None, alias="PROCESSING_MAX_CHUNKS_PER_PASS"
    )
    processing_loop_budget_ms: str | None = Field(default=None, alias="PROCESSING_LOOP_BUDGET_MS")
    processing_idle_wait_ms: str | None = Field(default=None, alias="PROCESSING_IDLE_WAIT_MS")
    processing_stale_claim_ms: str | None = Field(default=None, alias="PROCESSING_STALE_CLAIM_MS")

    # -------------------------------------------------------------------------
    # Cron sweep
    # -------------------------------------------------------------------------
    cron_secret: str = Field(default="", alias="CRON_SECRET")
    cron_meeting_batch_size: str | None = Field(default=None, alias="CRON_MEETING_BATCH_SIZE")
    sweep_interval_sec: int = Field(default=60, alias="SWEEP_INTERVAL_SEC")

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")  # json|text

    def model_post_init(self, __context) -> None:
        _apply_file_overrides(self)


def _apply_file_overrides(settings: Settings) -> None:
    """
    Поддержка <ENV>_FILE: значение читается из файла (docker/k8s secrets).
    """
    alias_to_field = {}
    for name, field in type(settings).model_fields.items():
        alias = field.alias or name
        alias_to_field[str(alias)] = name
        alias_to_field[str(name)] = name

    for key, path in os.environ.items():
        if not key.endswith("_FILE"):
            continue
        base = key[: -len("_FILE")]
        target = alias_to_field.get(base)
        if not target:
            continue
        file_path = (path or "").strip()
        if not file_path:
            continue
        try:
            raw = Path(file_path).read_text(encoding="utf-8")
        except Exception as e:
            logging.getLogger("meeting-notes-agent").error(
                "config_file_read_failed",
                extra={"payload": {"env_key": key, "path": file_path, "error": str(e)[:200]}},
            )
            raise RuntimeError(f"Failed to read {key} from {file_path}") from e
        setattr(settings, target, raw.strip())


_SETTINGS = Settings()


def get_settings() -> Settings:
    return _SETTINGS
