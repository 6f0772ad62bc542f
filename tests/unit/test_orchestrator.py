from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from meeting_notes_agent.common.errors import NotFoundError, ProcessingFailedError
from meeting_notes_agent.common.processing_config import ProcessingConfig
from meeting_notes_agent.common.time import utc_now
from meeting_notes_agent.domain.enums import ChunkStatus, JobStatus
from meeting_notes_agent.jobs.processing_sweep_job import sweep
from meeting_notes_agent.llm.mock import MockGenerativeProvider
from meeting_notes_agent.llm.orchestrator import GenerationOrchestrator
from meeting_notes_agent.services.chunk_worker import process_claimed_chunk
from meeting_notes_agent.services.claim_service import claim_chunks_for_processing
from meeting_notes_agent.services.orchestrator import ChunkProcessingOrchestrator, ProcessResult
from meeting_notes_agent.stt.base import STTResult


def _job(status=JobStatus.uploaded, **kw):
    data = dict(
        id="job_1",
        owner_id="u1",
        status=status,
        title="Old title",
        audio_bucket=None,
        audio_path=None,
        audio_mime=None,
        error=None,
    )
    data.update(kw)
    return SimpleNamespace(**data)


def _chunk(seq, status=ChunkStatus.uploaded, **kw):
    data = dict(
        id=f"c{seq}",
        job_id="job_1",
        owner_id="u1",
        seq=seq,
        status=status,
        transcript_text=None,
        error=None,
        retry_count=0,
        claimed_at=None,
        audio_bucket="meeting-audio",
        audio_path=f"u1/job_1/chunks/{seq:06d}.webm",
        audio_mime="audio/webm",
    )
    data.update(kw)
    return SimpleNamespace(**data)


def _copy(row):
    return SimpleNamespace(**vars(row))


class FakeStore:
    """JobStore в памяти с той же условной семантикой claim/release."""

    def __init__(self, job=None, chunks=()):
        self.job = job
        self.chunks = {c.id: c for c in chunks}
        self.job_updates: list[dict] = []
        self.chunk_updates: list[tuple[str, dict]] = []
        self.claim_calls = 0

    def _ordered(self):
        return sorted(self.chunks.values(), key=lambda c: c.seq)

    def get_job(self, job_id, owner_id=None):
        if self.job is None or self.job.id != job_id:
            return None
        if owner_id is not None and self.job.owner_id != owner_id:
            return None
        return _copy(self.job)

    def update_job(self, job_id, **fields):
        self.job_updates.append(fields)
        for k, v in fields.items():
            setattr(self.job, k, v)

    def list_pending_jobs(self, limit):
        return [self.job][:limit]

    def has_chunks(self, job_id, owner_id=None):
        return bool(self.chunks)

    def list_chunks(self, job_id, owner_id=None):
        return [_copy(c) for c in self._ordered()]

    def list_claimable_chunks(self, job_id, owner_id, limit):
        rows = [
            c
            for c in self._ordered()
            if c.status == ChunkStatus.uploaded and c.transcript_text is None
        ]
        return [_copy(c) for c in rows[:limit]]

    def claim_chunk(self, chunk_id):
        self.claim_calls += 1
        c = self.chunks[chunk_id]
        if c.status != ChunkStatus.uploaded or c.transcript_text is not None:
            return None
        c.status = ChunkStatus.processing
        c.claimed_at = utc_now()
        return _copy(c)

    def update_chunk(self, chunk_id, **fields):
        self.chunk_updates.append((chunk_id, fields))
        for k, v in fields.items():
            setattr(self.chunks[chunk_id], k, v)

    def list_stale_chunks(self, job_id, claimed_before):
        return []

    def release_stale_chunk(self, chunk_id, seen_claimed_at, **fields):
        c = self.chunks[chunk_id]
        if c.status != ChunkStatus.processing or c.claimed_at != seen_claimed_at:
            return False
        for k, v in fields.items():
            setattr(c, k, v)
        return True


class FakeSTT:
    def __init__(self, fail_times: dict[int, int] | None = None):
        self.fail_times = dict(fail_times or {})
        self.calls: list[str] = []

    def transcribe_chunk(self, *, audio, mime_type, display_name):
        self.calls.append(display_name)
        seq = int(display_name.rsplit("-", 1)[1])
        if self.fail_times.get(seq, 0) > 0:
            self.fail_times[seq] -= 1
            raise RuntimeError("boom")
        return STTResult(text=f"  text {seq}  ", model="fake")


def _orchestrator(store, stt=None, config=None, **kw):
    return ChunkProcessingOrchestrator(
        config or ProcessingConfig(),
        store,
        stt or FakeSTT(),
        GenerationOrchestrator(MockGenerativeProvider(), retries=0, backoff_ms=0),
        blob_reader=lambda bucket, path: b"audio",
        **kw,
    )


def test_process_result_payload_omits_unset_fields():
    assert ProcessResult(status="ready").to_payload() == {"status": "ready"}
    payload = ProcessResult(
        status="processing", waiting_uploads=1, should_continue=True, processed_this_run=0
    ).to_payload()
    assert payload == {
        "status": "processing",
        "waitingUploads": 1,
        "shouldContinue": True,
        "processedThisRun": 0,
    }


def test_ready_job_is_noop():
    store = FakeStore(_job(JobStatus.ready), [_chunk(0)])
    res = asyncio.run(_orchestrator(store).process_job("job_1"))

    assert res.to_payload() == {"status": "ready"}
    assert store.job_updates == []
    assert store.chunk_updates == []
    assert store.claim_calls == 0


def test_missing_job_raises_not_found_without_writes():
    store = FakeStore(_job(), [_chunk(0)])

    with pytest.raises(NotFoundError):
        asyncio.run(_orchestrator(store).process_job("job_1", owner_id="someone_else"))
    assert store.job_updates == []


def test_no_chunks_and_no_audio_waits_for_uploads():
    store = FakeStore(_job(JobStatus.uploaded), [])
    res = asyncio.run(_orchestrator(store).process_job("job_1"))

    assert res.to_payload() == {"status": "processing", "waitingUploads": 1, "shouldContinue": True}
    assert store.job_updates == [{"status": JobStatus.processing, "error": None}]


def test_chunked_job_is_finalized():
    store = FakeStore(_job(JobStatus.uploaded), [_chunk(1), _chunk(0)])
    stt = FakeSTT()
    res = asyncio.run(_orchestrator(store, stt).process_job("job_1"))

    assert res.status == "ready"
    assert res.processed_this_run == 2
    assert res.processed_chunk_seq == 1
    assert res.total_chunks == 2
    assert res.remaining_chunks == 0
    assert sorted(stt.calls) == ["job_1-chunk-0", "job_1-chunk-1"]

    job = store.job
    assert job.status == JobStatus.ready
    assert job.transcript_text == "text 0\n\ntext 1"
    assert job.transcript_json == {"source": "chunked", "chunks": 2}
    assert job.title == "mock_title"
    assert job.summary_json == {"summary": "mock_summary"}
    assert job.model == "mock"
    assert job.error is None


def test_recording_job_is_not_finalized():
    store = FakeStore(_job(JobStatus.recording), [_chunk(0)])
    res = asyncio.run(_orchestrator(store).process_job("job_1"))

    assert res.status == "processing"
    assert res.processed_this_run == 1
    assert res.remaining_chunks == 0
    assert res.should_continue is False
    assert store.job.status == JobStatus.recording
    assert store.job_updates == []


def test_transient_failure_is_retried_within_run():
    store = FakeStore(_job(), [_chunk(0)])
    res = asyncio.run(_orchestrator(store, FakeSTT(fail_times={0: 1})).process_job("job_1"))

    assert res.status == "ready"
    chunk = store.chunks["c0"]
    assert chunk.status == ChunkStatus.processed
    assert chunk.retry_count == 1
    assert chunk.error is None


def test_exhausted_chunk_fails_job():
    store = FakeStore(_job(), [_chunk(0, transcript_text=None), _chunk(1)])
    stt = FakeSTT(fail_times={1: 10})

    with pytest.raises(ProcessingFailedError) as ei:
        asyncio.run(_orchestrator(store, stt).process_job("job_1"))

    assert ei.value.message == "Chunk #1 failed: boom"
    assert stt.calls.count("job_1-chunk-1") == 3
    assert store.chunks["c1"].status == ChunkStatus.error
    assert store.chunks["c1"].error == "boom"
    assert store.job.status == JobStatus.error
    assert store.job.error == "Chunk #1 failed: boom"
    assert store.job.model == "mock"


def test_existing_error_chunk_aborts_with_clean_message():
    store = FakeStore(
        _job(JobStatus.processing),
        [_chunk(0, status=ChunkStatus.error, error="retry:2|disk full")],
    )
    with pytest.raises(ProcessingFailedError, match="Chunk #0 failed: disk full"):
        asyncio.run(_orchestrator(store).process_job("job_1"))


def test_waits_for_uploads_until_budget():
    now = [0.0]
    sleeps: list[float] = []

    async def fake_sleep(sec):
        sleeps.append(sec)
        now[0] += sec

    store = FakeStore(_job(), [_chunk(0), _chunk(1, status=ChunkStatus.uploading)])
    orch = _orchestrator(
        store,
        config=ProcessingConfig(loop_budget_ms=10_000, idle_wait_ms=5_000),
        clock=lambda: now[0],
        sleep=fake_sleep,
    )
    res = asyncio.run(orch.process_job("job_1"))

    assert sleeps == [5.0, 5.0]
    assert res.to_payload() == {
        "status": "processing",
        "processedThisRun": 1,
        "processedChunkSeq": 0,
        "totalChunks": 2,
        "processedChunks": 1,
        "remainingChunks": 1,
        "waitingUploads": 1,
        "shouldContinue": False,
    }


def test_single_file_path():
    store = FakeStore(
        _job(audio_bucket="meeting-audio", audio_path="u1/job_1.webm", audio_mime="audio/webm"),
        [],
    )
    res = asyncio.run(_orchestrator(store).process_job("job_1"))

    assert res.to_payload() == {"status": "ready"}
    assert store.job.status == JobStatus.ready
    assert store.job.transcript_text == "mock_transcript"
    assert store.job.transcript_json["transcriptText"] == "mock_transcript"


def test_worker_failure_uses_previous_marker():
    store = FakeStore(_job(), [_chunk(0, status=ChunkStatus.processing, error="retry:1|x")])
    chunk = _copy(store.chunks["c0"])

    out = asyncio.run(
        process_claimed_chunk(
            store,
            FakeSTT(fail_times={0: 1}),
            chunk,
            job_id="job_1",
            blob_reader=lambda b, p: b"audio",
        )
    )

    assert out.ok is False
    assert out.retry_count == 2
    assert store.chunks["c0"].status == ChunkStatus.uploaded
    assert store.chunks["c0"].error == "retry:2|boom"
    assert store.chunks["c0"].claimed_at is None


def test_worker_success_trims_text():
    store = FakeStore(_job(), [_chunk(3, status=ChunkStatus.processing)])
    out = asyncio.run(
        process_claimed_chunk(
            store, FakeSTT(), _copy(store.chunks["c3"]), job_id="job_1", blob_reader=lambda b, p: b""
        )
    )
    assert out.ok is True
    assert store.chunks["c3"].transcript_text == "text 3"
    assert store.chunks["c3"].status == ChunkStatus.processed


def test_claim_truncates_to_limit_and_releases_surplus():
    store = FakeStore(_job(), [_chunk(i) for i in range(6)])

    claimed = asyncio.run(
        claim_chunks_for_processing(store, job_id="job_1", owner_id="u1", limit=1, concurrency=4)
    )

    assert [c.seq for c in claimed] == [0]
    statuses = {c.seq: c.status for c in store.chunks.values()}
    assert statuses[0] == ChunkStatus.processing
    assert all(statuses[i] == ChunkStatus.uploaded for i in range(1, 6))


def test_claim_with_zero_limit_does_not_touch_store():
    store = FakeStore(_job(), [_chunk(0)])
    out = asyncio.run(
        claim_chunks_for_processing(store, job_id="job_1", owner_id="u1", limit=0, concurrency=4)
    )
    assert out == []
    assert store.claim_calls == 0


def test_chunk_claimed_elsewhere_blocks_finalization():
    store = FakeStore(_job(JobStatus.processing), [_chunk(0), _chunk(1)])
    assert store.claim_chunk("c0") is not None

    stt = FakeSTT()
    res = asyncio.run(_orchestrator(store, stt).process_job("job_1"))

    assert stt.calls == ["job_1-chunk-1"]
    assert res.to_payload() == {
        "status": "processing",
        "processedThisRun": 1,
        "processedChunkSeq": 1,
        "totalChunks": 2,
        "processedChunks": 1,
        "remainingChunks": 1,
        "waitingUploads": 0,
        "shouldContinue": False,
    }
    assert store.job.status == JobStatus.processing
    assert getattr(store.job, "transcript_text", None) is None
    assert store.chunks["c0"].status == ChunkStatus.processing


def test_sweep_reports_failed_job_message():
    store = FakeStore(
        _job(JobStatus.processing),
        [_chunk(0, status=ChunkStatus.error, error="retry:2|disk full")],
    )
    result = asyncio.run(sweep(_orchestrator(store), limit=5))

    assert (result.processed_meetings, result.ready, result.failed) == (1, 0, 1)
    assert result.results == [
        {"id": "job_1", "status": "error", "message": "Chunk #0 failed: disk full"}
    ]
