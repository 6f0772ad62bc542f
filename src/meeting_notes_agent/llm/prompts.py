"""
Промпты и JSON-схемы для генеративной модели.
"""

from __future__ import annotations

from typing import Any

# Лимит транскрипта в промпте суммаризации (символы)
SUMMARY_TRANSCRIPT_LIMIT = 80_000

_ACTION_ITEMS = {
    "type": "array",
    "items": {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "task": {"type": "string"},
            "owner": {"type": "string"},
            "due": {"type": "string"},
        },
        "required": ["task"],
    },
}

MEETING_SUMMARY_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "title": {"type": "string"},
        "summary": {"type": "string"},
        "keyTopics": {"type": "array", "items": {"type": "string"}},
        "decisions": {"type": "array", "items": {"type": "string"}},
        "actionItems": _ACTION_ITEMS,
    },
    "required": ["summary", "actionItems"],
}

MEETING_EXTRACT_SCHEMA: dict[str, Any] = {
    **MEETING_SUMMARY_SCHEMA,
    "properties": {
        **MEETING_SUMMARY_SCHEMA["properties"],
        "transcriptText": {"type": "string"},
    },
    "required": ["summary", "actionItems", "transcriptText"],
}


def chunk_transcribe_prompt() -> str:
    return "\n".join(
        [
            "Transcribe this meeting audio chunk.",
            "Rules:",
            "- Return plain text transcript only.",
            "- Keep speaker changes readable if obvious.",
            "- Use [inaudible] where speech is unclear.",
            "- Do not add summaries or commentary.",
        ]
    )


def meeting_extract_prompt() -> str:
    return "\n".join(
        [
            "Transcribe this meeting audio and produce structured meeting notes.",
            "Requirements:",
            "- Transcript: produce a clean, readable transcript in `transcriptText`.",
            "- Summary: crisp, 5-12 bullet lines in paragraph form (not a giant wall of text).",
            "- Action items: concrete tasks with an owner if identifiable.",
            "- If a portion is unclear, mark it as [inaudible]. Do not invent names or facts.",
            "- Keep the output strictly valid JSON matching the provided schema.",
        ]
    )


def meeting_summary_from_transcript_prompt(transcript_text: str) -> str:
    clipped = transcript_text
    if len(transcript_text) > SUMMARY_TRANSCRIPT_LIMIT:
        clipped = transcript_text[:SUMMARY_TRANSCRIPT_LIMIT] + "\n\n[Transcript truncated]"
    return "\n".join(
        [
            "You are a meeting assistant.",
            "Given the transcript below, generate structured notes as JSON matching the provided schema.",
            "Do not invent facts not present in transcript.",
            "",
            "TRANSCRIPT:",
            clipped or "(none)",
        ]
    )


# Контекст чата ограничен: при длинном транскрипте опираемся на summary
CHAT_TRANSCRIPT_LIMIT = 12_000


def meeting_chat_system_prompt(summary: str | None, transcript_text: str | None) -> str:
    summary = (summary or "").strip()
    transcript = (transcript_text or "").strip()
    if len(transcript) > CHAT_TRANSCRIPT_LIMIT:
        transcript = transcript[:CHAT_TRANSCRIPT_LIMIT] + "\n\n[Transcript truncated]"
    return "\n".join(
        [
            "You are a meeting assistant. Answer questions based on the meeting content only.",
            "If the answer isn't in the meeting, say so plainly.",
            "",
            "MEETING SUMMARY:",
            summary or "(none)",
            "",
            "MEETING TRANSCRIPT:",
            transcript or "(none)",
        ]
    )


def meeting_chat_prompt(system: str, question: str) -> str:
    return f"{system}\n\nUSER QUESTION:\n{question}"
