from __future__ import annotations

import itertools
from types import SimpleNamespace

from meeting_notes_agent.domain.enums import ChunkStatus
from meeting_notes_agent.processing.progress import compute_chunk_progress


def test_progress_mixed_statuses():
    chunks = [
        {"status": "processed", "transcript_text": "a"},
        {"status": "uploaded", "transcript_text": None},
        {"status": "processing", "transcript_text": None},
        {"status": "uploading", "transcript_text": None},
        {"status": "uploaded", "transcript_text": "x"},
    ]
    p = compute_chunk_progress(chunks)

    assert p.total == 5
    assert p.processed == 2
    assert p.queued == 1
    assert p.in_flight == 1
    assert p.waiting_uploads == 1
    assert p.errored == 0
    assert p.remaining == 3
    assert p.has_errors is False


def test_progress_error_wins_over_transcript():
    p = compute_chunk_progress([{"status": "error", "transcript_text": "text"}])
    assert p.errored == 1
    assert p.processed == 0
    assert p.has_errors is True


def test_progress_blank_transcript_is_not_processed():
    p = compute_chunk_progress([{"status": "uploaded", "transcript_text": "   "}])
    assert p.queued == 1
    assert p.processed == 0


def test_progress_accepts_orm_like_objects():
    chunks = [
        SimpleNamespace(status=ChunkStatus.processed, transcript_text="a"),
        SimpleNamespace(status=ChunkStatus.uploaded, transcript_text=None),
    ]
    p = compute_chunk_progress(chunks)
    assert (p.processed, p.queued) == (1, 1)


def test_progress_empty_and_as_dict():
    p = compute_chunk_progress([])
    assert p.as_dict() == {
        "total": 0,
        "waitingUploads": 0,
        "queued": 0,
        "inFlight": 0,
        "processed": 0,
        "errored": 0,
        "remaining": 0,
        "hasErrors": False,
    }


def test_progress_reference_snapshot():
    chunks = [
        {"status": "uploading", "transcript_text": None},
        {"status": "uploaded", "transcript_text": None},
        {"status": "processing", "transcript_text": None},
        {"status": "processed", "transcript_text": "hello"},
        {"status": "uploaded", "transcript_text": "already here"},
        {"status": "error", "transcript_text": None},
    ]
    assert compute_chunk_progress(chunks).as_dict() == {
        "total": 6,
        "waitingUploads": 1,
        "queued": 1,
        "inFlight": 1,
        "processed": 2,
        "errored": 1,
        "remaining": 3,
        "hasErrors": True,
    }


def test_progress_counters_always_add_up():
    states = [
        (status, text)
        for status in ChunkStatus
        for text in (None, "", "  ", "text")
    ]
    for combo in itertools.product(states, repeat=3):
        chunks = [{"status": s, "transcript_text": t} for s, t in combo]
        p = compute_chunk_progress(chunks)

        assert p.total == len(chunks)
        assert p.total == p.waiting_uploads + p.queued + p.in_flight + p.processed + p.errored
        assert p.remaining == p.waiting_uploads + p.queued + p.in_flight
        assert p.has_errors is (p.errored > 0)
