from __future__ import annotations

from types import SimpleNamespace

from meeting_notes_agent.common.processing_config import (
    ProcessingConfig,
    cron_batch_size,
    parse_bounded_int,
)


def test_defaults_when_nothing_set():
    cfg = ProcessingConfig.from_mapping({})
    assert cfg.as_dict() == {
        "chunkConcurrency": 4,
        "maxChunksPerPass": 24,
        "loopBudgetMs": 180000,
        "idleWaitMs": 1000,
        "staleClaimMs": 600000,
    }


def test_values_are_truncated_and_clamped():
    cfg = ProcessingConfig.from_mapping(
        {
            "PROCESSING_CHUNK_CONCURRENCY": "12",
            "PROCESSING_MAX_CHUNKS_PER_PASS": "0",
            "PROCESSING_LOOP_BUDGET_MS": "1000",
            "PROCESSING_IDLE_WAIT_MS": "99999.7",
        }
    )
    assert cfg.chunk_concurrency == 8
    assert cfg.max_chunks_per_pass == 1
    assert cfg.loop_budget_ms == 10000
    assert cfg.idle_wait_ms == 5000


def test_camel_case_keys_take_priority():
    cfg = ProcessingConfig.from_mapping(
        {"chunkConcurrency": "2", "PROCESSING_CHUNK_CONCURRENCY": "6"}
    )
    assert cfg.chunk_concurrency == 2


def test_parse_bounded_int_fallbacks():
    assert parse_bounded_int(None, 4, 1, 8) == 4
    assert parse_bounded_int("abc", 4, 1, 8) == 4
    assert parse_bounded_int("inf", 4, 1, 8) == 4
    assert parse_bounded_int("", 4, 1, 8) == 4
    assert parse_bounded_int("3.9", 4, 1, 8) == 3
    assert parse_bounded_int("-2", 4, 1, 8) == 1
    assert parse_bounded_int(True, 4, 1, 8) == 4


def test_from_settings_and_seconds():
    settings = SimpleNamespace(
        processing_chunk_concurrency="3",
        processing_max_chunks_per_pass=None,
        processing_loop_budget_ms="20000",
        processing_idle_wait_ms="250",
        processing_stale_claim_ms="1",
    )
    cfg = ProcessingConfig.from_settings(settings)
    assert cfg.chunk_concurrency == 3
    assert cfg.max_chunks_per_pass == 24
    assert cfg.loop_budget_sec == 20.0
    assert cfg.idle_wait_sec == 0.25
    assert cfg.stale_claim_ms == 60000


def test_cron_batch_size_clamp():
    assert cron_batch_size(SimpleNamespace(cron_meeting_batch_size=None)) == 1
    assert cron_batch_size(SimpleNamespace(cron_meeting_batch_size="50")) == 20
    assert cron_batch_size(SimpleNamespace(cron_meeting_batch_size="5")) == 5


def test_out_of_range_overrides_are_clamped():
    cfg = ProcessingConfig.from_mapping(
        {
            "chunkConcurrency": "99",
            "maxChunksPerPass": "-2",
            "loopBudgetMs": "5000",
            "idleWaitMs": "10000",
        }
    )
    assert (
        cfg.chunk_concurrency,
        cfg.max_chunks_per_pass,
        cfg.loop_budget_ms,
        cfg.idle_wait_ms,
    ) == (8, 1, 10000, 5000)
    assert cfg.stale_claim_ms == 600000
