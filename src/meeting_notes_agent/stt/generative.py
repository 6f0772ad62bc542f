"""
STT через генеративную модель.

Что делает:
- загружает bytes чанка в File API провайдера
- просит модель вернуть только текст транскрипта
"""

from __future__ import annotations

from meeting_notes_agent.llm.base import Part
from meeting_notes_agent.llm.orchestrator import GenerationOrchestrator
from meeting_notes_agent.llm.prompts import chunk_transcribe_prompt

from .base import STTProvider, STTResult


class GenerativeSTTProvider(STTProvider):
    def __init__(self, generator: GenerationOrchestrator, *, temperature: float = 0.1) -> None:
        self.generator = generator
        self.temperature = temperature

    def transcribe_chunk(self, *, audio: bytes, mime_type: str, display_name: str) -> STTResult:
        file = self.generator.upload_file(
            data=audio, mime_type=mime_type, display_name=display_name
        )
        text = self.generator.generate_text(
            parts=[Part.of_text(chunk_transcribe_prompt()), Part.of_file(file)],
            temperature=self.temperature,
        )
        return STTResult(text=text, model=self.generator.model)
