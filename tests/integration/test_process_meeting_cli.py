from __future__ import annotations

import json

from meeting_notes_agent.common.config import get_settings
from scripts import process_meeting


def test_ingest_then_process_until_done(sqlite_db, monkeypatch, capsys):
    monkeypatch.setattr(get_settings(), "generative_provider", "mock")
    monkeypatch.setattr(process_meeting, "setup_logging", lambda: None)
    files = []
    for seq in range(2):
        p = sqlite_db / f"part{seq}.webm"
        p.write_bytes(b"chunk" * (seq + 1))
        files.append(str(p))

    assert process_meeting.main(["ingest", *files, "--owner", "u1", "--title", "Demo"]) == 0
    job_id = json.loads(capsys.readouterr().out)["id"]

    assert process_meeting.main(["process", job_id, "--owner", "u1", "--until-done"]) == 0
    last = json.loads(capsys.readouterr().out)
    assert last == {
        "status": "ready",
        "processedThisRun": 2,
        "processedChunkSeq": 1,
        "totalChunks": 2,
        "processedChunks": 2,
        "remainingChunks": 0,
        "waitingUploads": 0,
    }


def test_process_unknown_job_exits_with_error(sqlite_db, monkeypatch, capsys):
    monkeypatch.setattr(get_settings(), "generative_provider", "mock")
    monkeypatch.setattr(process_meeting, "setup_logging", lambda: None)

    assert process_meeting.main(["process", "missing"]) == 1
    assert json.loads(capsys.readouterr().out)["code"] == "not_found"
