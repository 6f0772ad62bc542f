from __future__ import annotations

from meeting_notes_agent.stt.base import STTProvider, STTResult


class MockSTTProvider(STTProvider):
    """Заглушка STT: возвращает предсказуемый текст для проверки пайплайна end-to-end."""

    def transcribe_chunk(self, *, audio: bytes, mime_type: str, display_name: str) -> STTResult:
        return STTResult(text=f"mock_transcript {display_name} bytes={len(audio)}", model="mock")
