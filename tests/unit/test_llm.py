from __future__ import annotations

from types import SimpleNamespace

import pytest

from meeting_notes_agent.common.errors import ErrCode, ProviderError
from meeting_notes_agent.llm import gemini
from meeting_notes_agent.llm.base import Part
from meeting_notes_agent.llm.gemini import GeminiConfig, GeminiProvider
from meeting_notes_agent.llm.mock import MockGenerativeProvider
from meeting_notes_agent.llm.orchestrator import GenerationOrchestrator
from meeting_notes_agent.llm.prompts import (
    CHAT_TRANSCRIPT_LIMIT,
    MEETING_EXTRACT_SCHEMA,
    MEETING_SUMMARY_SCHEMA,
    SUMMARY_TRANSCRIPT_LIMIT,
    meeting_chat_prompt,
    meeting_chat_system_prompt,
    meeting_summary_from_transcript_prompt,
)


def _resp(status_code=200, payload=None, headers=None, text=""):
    return SimpleNamespace(
        status_code=status_code,
        headers=headers or {},
        json=lambda: payload,
        text=text,
    )


def _cfg() -> GeminiConfig:
    return GeminiConfig(
        api_base="https://gemini.local",
        api_key="k",
        model="gemini-test",
        timeout_s=5,
        file_poll_attempts=3,
        file_poll_interval_s=0,
    )


def test_summary_prompt_clips_long_transcript():
    short = meeting_summary_from_transcript_prompt("hello")
    assert "hello" in short
    assert "[Transcript truncated]" not in short

    long_prompt = meeting_summary_from_transcript_prompt("a" * (SUMMARY_TRANSCRIPT_LIMIT + 10))
    assert "[Transcript truncated]" in long_prompt
    assert "a" * (SUMMARY_TRANSCRIPT_LIMIT + 1) not in long_prompt


def test_extract_schema_requires_transcript():
    assert "transcriptText" in MEETING_EXTRACT_SCHEMA["properties"]
    assert "transcriptText" not in MEETING_SUMMARY_SCHEMA["properties"]
    assert "transcriptText" in MEETING_EXTRACT_SCHEMA["required"]


def test_gemini_upload_and_wait_until_active(monkeypatch):
    posts: list[tuple[str, dict]] = []

    def fake_post(url, timeout=None, **kwargs):
        posts.append((url, kwargs))
        if url.endswith("/upload/v1beta/files"):
            return _resp(headers={"x-goog-upload-url": "https://gemini.local/session/1"})
        return _resp(
            payload={
                "file": {
                    "uri": "https://gemini.local/files/abc",
                    "name": "files/abc",
                    "state": "PROCESSING",
                    "mimeType": "audio/webm",
                }
            }
        )

    states = iter(["PROCESSING", "ACTIVE"])

    def fake_get(url, headers=None, timeout=None):
        assert url == "https://gemini.local/v1beta/files/abc"
        return _resp(payload={"file": {"state": next(states)}})

    monkeypatch.setattr(gemini.requests, "post", fake_post)
    monkeypatch.setattr(gemini.requests, "get", fake_get)

    f = GeminiProvider(_cfg()).upload_file(data=b"123", mime_type="audio/webm", display_name="x")

    assert f.uri == "https://gemini.local/files/abc"
    assert f.state == "ACTIVE"
    assert posts[0][1]["headers"]["x-goog-upload-header-content-length"] == "3"
    assert posts[1][0] == "https://gemini.local/session/1"
    assert posts[1][1]["data"] == b"123"


def test_gemini_upload_failed_state_raises(monkeypatch):
    def fake_post(url, timeout=None, **kwargs):
        if url.endswith("/upload/v1beta/files"):
            return _resp(headers={"x-goog-upload-url": "https://gemini.local/session/1"})
        return _resp(payload={"file": {"uri": "u", "name": "files/x", "state": "FAILED"}})

    monkeypatch.setattr(gemini.requests, "post", fake_post)

    with pytest.raises(ProviderError, match="file processing failed"):
        GeminiProvider(_cfg()).upload_file(data=b"1", mime_type="audio/wav", display_name="x")


def test_gemini_generate_json_sends_schema(monkeypatch):
    seen: dict = {}

    def fake_post(url, timeout=None, **kwargs):
        seen["url"] = url
        seen["json"] = kwargs["json"]
        return _resp(payload={"candidates": [{"content": {"parts": [{"text": '{"summary": "s"}'}]}}]})

    monkeypatch.setattr(gemini.requests, "post", fake_post)

    provider = GeminiProvider(_cfg())
    text = provider.generate_json(parts=[Part.of_text("p")], schema={"type": "object"})

    assert text == '{"summary": "s"}'
    assert seen["url"] == "https://gemini.local/v1beta/models/gemini-test:generateContent"
    gen_cfg = seen["json"]["generationConfig"]
    assert gen_cfg["responseMimeType"] == "application/json"
    assert gen_cfg["responseJsonSchema"] == {"type": "object"}


def test_gemini_http_error_maps_to_provider_error(monkeypatch):
    monkeypatch.setattr(
        gemini.requests, "post", lambda url, timeout=None, **kw: _resp(500, text="oops")
    )
    with pytest.raises(ProviderError) as ei:
        GeminiProvider(_cfg()).generate_text(parts=[Part.of_text("p")])
    assert ei.value.code == ErrCode.LLM_PROVIDER_ERROR
    assert "500" in ei.value.message


class _FlakyProvider(MockGenerativeProvider):
    def __init__(self, failures: int, payload: str = '{"summary": "ok"}') -> None:
        self.failures = failures
        self.payload = payload
        self.calls = 0

    def generate_json(self, *, parts, schema, temperature=0.2) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError("transient")
        return self.payload


def test_orchestrator_retries_transport_errors():
    provider = _FlakyProvider(failures=1)
    orch = GenerationOrchestrator(provider, retries=1, backoff_ms=0)

    assert orch.generate_json(parts=[], schema={}) == {"summary": "ok"}
    assert provider.calls == 2


def test_orchestrator_wraps_final_error():
    provider = _FlakyProvider(failures=5)
    orch = GenerationOrchestrator(provider, retries=1, backoff_ms=0)

    with pytest.raises(ProviderError, match="transient"):
        orch.generate_json(parts=[], schema={})
    assert provider.calls == 2


def test_orchestrator_rejects_invalid_or_non_object_json():
    orch = GenerationOrchestrator(_FlakyProvider(0, payload="not json"), retries=0, backoff_ms=0)
    with pytest.raises(ProviderError, match="invalid JSON"):
        orch.generate_json(parts=[], schema={})

    orch = GenerationOrchestrator(_FlakyProvider(0, payload="[1, 2]"), retries=0, backoff_ms=0)
    with pytest.raises(ProviderError, match="non-object"):
        orch.generate_json(parts=[], schema={})


def test_mock_provider_extract_includes_transcript():
    orch = GenerationOrchestrator(MockGenerativeProvider(), retries=0, backoff_ms=0)
    data = orch.generate_json(parts=[], schema=MEETING_EXTRACT_SCHEMA)
    assert data["transcriptText"] == "mock_transcript"
    assert orch.model == "mock"


def test_chat_prompt_uses_placeholders_when_meeting_is_empty():
    prompt = meeting_chat_system_prompt(None, "   ")

    assert "MEETING SUMMARY:\n(none)" in prompt
    assert prompt.endswith("MEETING TRANSCRIPT:\n(none)")


def test_chat_prompt_clips_transcript_and_appends_question():
    system = meeting_chat_system_prompt(" Budget agreed. ", "y" * (CHAT_TRANSCRIPT_LIMIT + 50))

    assert "MEETING SUMMARY:\nBudget agreed.\n" in system
    assert system.endswith("y" * CHAT_TRANSCRIPT_LIMIT + "\n\n[Transcript truncated]")
    assert meeting_chat_prompt("SYS", "Who owns it?") == "SYS\n\nUSER QUESTION:\nWho owns it?"


def test_mock_provider_answers_text_only_questions():
    mock = MockGenerativeProvider()
    assert mock.generate_text(parts=[Part.of_text("question")]) == "mock_answer"
