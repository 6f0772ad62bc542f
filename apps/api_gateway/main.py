"""
API Gateway (FastAPI).

Функции:
- /health
- /metrics
- HTTP API загрузки встреч и поллинга обработки
- cron sweep для встреч, которые клиент перестал поллить
- чат по содержимому встречи
"""

from __future__ import annotations

from typing import Any

import uvicorn
from fastapi import FastAPI

from apps.api_gateway.routers.chat import router as chat_router
from apps.api_gateway.routers.jobs import router as jobs_router
from apps.api_gateway.routers.processing import router as processing_router
from meeting_notes_agent.common.config import get_settings
from meeting_notes_agent.common.logging import get_project_logger, setup_logging
from meeting_notes_agent.common.metrics import setup_metrics_endpoint
from meeting_notes_agent.storage.db import init_db

log = get_project_logger()


def _create_app() -> FastAPI:
    app = FastAPI(title="Meeting Notes Agent", version="0.1.0")
    settings = get_settings()

    setup_metrics_endpoint(app, service=settings.service_name)

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"ok": True}

    @app.on_event("startup")
    def startup_db() -> None:
        # Автосоздание таблиц в dev (чтобы проект стартовал без ручных миграций)
        if (settings.app_env or "").strip().lower() in {"prod", "production"}:
            return
        init_db()
        log.info("db_ready")

    app.include_router(jobs_router, prefix="/v1")
    app.include_router(processing_router, prefix="/v1")
    app.include_router(chat_router, prefix="/v1")

    return app


setup_logging()

app = _create_app()


if __name__ == "__main__":
    s = get_settings()
    uvicorn.run(app, host=s.api_host, port=s.api_port, log_config=None)
