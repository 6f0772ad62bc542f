"""
Mock генеративной модели для тестов и dev.

Назначение:
- Быстро гонять пайплайн без реальных вызовов API
- Предсказуемый результат
"""

from __future__ import annotations

import json
from typing import Any

from .base import GenerativeProvider, Part, UploadedFile


class MockGenerativeProvider(GenerativeProvider):
    model = "mock"

    def upload_file(self, *, data: bytes, mime_type: str, display_name: str) -> UploadedFile:
        return UploadedFile(uri=f"mock://{display_name}", mime_type=mime_type, state="ACTIVE")

    def generate_text(self, *, parts: list[Part], temperature: float = 0.4) -> str:
        files = [p.file.uri for p in parts if p.file is not None]
        if not files:
            # вопрос по встрече без аудио
            return "mock_answer"
        return f"mock_transcript {' '.join(files)}".strip()

    def generate_json(
        self, *, parts: list[Part], schema: dict[str, Any], temperature: float = 0.2
    ) -> str:
        payload: dict[str, Any] = {
            "title": "mock_title",
            "summary": "mock_summary",
            "keyTopics": ["mock_topic"],
            "decisions": [],
            "actionItems": [{"task": "mock_task"}],
        }
        if "transcriptText" in (schema.get("properties") or {}):
            payload["transcriptText"] = "mock_transcript"
        return json.dumps(payload, ensure_ascii=False)
