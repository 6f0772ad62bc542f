#!/usr/bin/env python3
"""Dev CLI: загрузить встречу чанками и прогнать обработку (ingest/process/sweep)."""

from __future__ import annotations

import argparse
import json
import mimetypes
import sys
import time
from pathlib import Path

from meeting_notes_agent.common.errors import AppError
from meeting_notes_agent.common.logging import setup_logging
from meeting_notes_agent.jobs.processing_sweep_job import run as run_sweep
from meeting_notes_agent.services import chunk_ingest_service, job_service
from meeting_notes_agent.services.orchestrator import build_orchestrator, process_job_sync
from meeting_notes_agent.storage.db import init_db


def _print(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def cmd_ingest(args: argparse.Namespace) -> int:
    job = job_service.create_job(owner_id=args.owner, title=args.title)
    for seq, raw in enumerate(args.files):
        path = Path(raw)
        mime = args.mime or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        chunk_ingest_service.ingest_chunk_bytes(
            job_id=job.id,
            owner_id=args.owner,
            seq=seq,
            audio=path.read_bytes(),
            mime_type=mime,
        )
    if not args.keep_recording:
        job_service.mark_job_uploaded(job.id, args.owner)
    _print({"id": job.id, "chunks": len(args.files)})
    return 0


def cmd_process(args: argparse.Namespace) -> int:
    orchestrator = build_orchestrator()
    for _ in range(max(1, args.max_passes)):
        try:
            res = process_job_sync(args.job_id, args.owner, orchestrator=orchestrator)
        except AppError as e:
            _print({"status": "error", "code": e.code, "error": e.message})
            return 1
        _print(res.to_payload())
        if res.status == "ready" or not args.until_done:
            return 0
        if not res.should_continue:
            time.sleep(args.poll_sec)
    return 2


def cmd_sweep(args: argparse.Namespace) -> int:
    _print(run_sweep(limit=args.limit).to_payload())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Meeting notes processing dev tool")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest_p = sub.add_parser("ingest", help="Create a meeting from audio chunk files")
    ingest_p.add_argument("files", nargs="+", help="Chunk files in recording order")
    ingest_p.add_argument("--owner", default="local")
    ingest_p.add_argument("--title")
    ingest_p.add_argument("--mime", help="Override detected MIME type")
    ingest_p.add_argument("--keep-recording", action="store_true")
    ingest_p.set_defaults(func=cmd_ingest)

    process_p = sub.add_parser("process", help="Run orchestrator passes for one meeting")
    process_p.add_argument("job_id")
    process_p.add_argument("--owner")
    process_p.add_argument("--until-done", action="store_true")
    process_p.add_argument("--max-passes", type=int, default=20)
    process_p.add_argument("--poll-sec", type=float, default=2.0)
    process_p.set_defaults(func=cmd_process)

    sweep_p = sub.add_parser("sweep", help="Process oldest pending meetings once")
    sweep_p.add_argument("--limit", type=int)
    sweep_p.set_defaults(func=cmd_sweep)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging()
    init_db()
    return int(args.func(args))


if __name__ == "__main__":
    sys.exit(main())
