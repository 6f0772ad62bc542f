from __future__ import annotations

from types import SimpleNamespace

from meeting_notes_agent.processing.merge import merge_chunk_transcripts
from meeting_notes_agent.services.finalization import normalize_meeting_notes


def test_merge_orders_by_seq_and_skips_empty():
    chunks = [
        SimpleNamespace(seq=2, transcript_text=" World "),
        SimpleNamespace(seq=0, transcript_text="Hello"),
        SimpleNamespace(seq=1, transcript_text="   "),
        SimpleNamespace(seq=3, transcript_text=None),
    ]
    assert merge_chunk_transcripts(chunks) == "Hello\n\nWorld"


def test_merge_all_empty_gives_empty_string():
    assert merge_chunk_transcripts([SimpleNamespace(seq=0, transcript_text="")]) == ""


def test_normalize_meeting_notes_defaults():
    notes = normalize_meeting_notes({"title": "  ", "summary": 42, "decisions": "no"}, "Old")
    assert notes.title == "Old"
    assert notes.summary is None
    assert notes.decisions == []
    assert notes.key_topics == []
    assert notes.action_items == []


def test_normalize_meeting_notes_fields():
    notes = normalize_meeting_notes(
        {
            "title": " Weekly sync ",
            "summary": "Discussed roadmap",
            "keyTopics": ["roadmap"],
            "decisions": ["ship v2"],
            "actionItems": [{"task": "write doc", "owner": "Ann"}],
        },
        None,
    )
    assert notes.title == "Weekly sync"
    assert notes.to_job_fields() == {
        "title": "Weekly sync",
        "summary_json": {"summary": "Discussed roadmap"},
        "decisions_json": {"decisions": ["ship v2"]},
        "key_topics_json": {"keyTopics": ["roadmap"]},
        "action_items_json": {"actionItems": [{"task": "write doc", "owner": "Ann"}]},
    }
