from __future__ import annotations

from meeting_notes_agent.domain.enums import ChunkStatus
from meeting_notes_agent.processing.retry import (
    MAX_CHUNK_ATTEMPTS,
    current_retry_count,
    next_failure_state,
    parse_retry_count,
    strip_retry_prefix,
)


def test_parse_retry_count():
    assert parse_retry_count(None) == 0
    assert parse_retry_count("") == 0
    assert parse_retry_count("plain error") == 0
    assert parse_retry_count("retry:2|timeout") == 2
    assert parse_retry_count("RETRY:1|x") == 1
    assert parse_retry_count("retry:0|x") == 0
    assert parse_retry_count("retry:abc|x") == 0


def test_strip_retry_prefix():
    assert strip_retry_prefix(None) == ""
    assert strip_retry_prefix("retry:2|  timeout ") == "timeout"
    assert strip_retry_prefix("plain") == "plain"
    assert strip_retry_prefix("retry:1|line1\nline2") == "line1\nline2"


def test_next_failure_state_requeues_until_exhausted():
    first = next_failure_state(0, "boom")
    assert first.status == ChunkStatus.uploaded
    assert first.error == "retry:1|boom"
    assert first.retry_count == 1
    assert first.exhausted is False

    second = next_failure_state(1, "boom")
    assert second.error == "retry:2|boom"

    third = next_failure_state(MAX_CHUNK_ATTEMPTS - 1, "boom")
    assert third.status == ChunkStatus.error
    assert third.error == "boom"
    assert third.retry_count == 3
    assert third.exhausted is True


def test_next_failure_state_truncates_message():
    state = next_failure_state(2, "x" * 2000)
    assert state.error == "x" * 800


def test_current_retry_count_takes_larger_source():
    assert current_retry_count(retry_count=0, error="retry:2|x") == 2
    assert current_retry_count(retry_count=2, error=None) == 2
    assert current_retry_count(retry_count=None, error=None) == 0
