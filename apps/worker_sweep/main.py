"""
Worker Sweep.

Назначение:
- периодически запускать processing_sweep_job
- добивать встречи, которые никто не поллит
"""

from __future__ import annotations

import time

from meeting_notes_agent.common.config import get_settings
from meeting_notes_agent.common.logging import get_project_logger, setup_logging
from meeting_notes_agent.common.processing_config import cron_batch_size
from meeting_notes_agent.jobs.processing_sweep_job import run as run_sweep

log = get_project_logger()


def main() -> None:
    setup_logging()
    settings = get_settings()
    interval_sec = max(5, int(settings.sweep_interval_sec))
    limit = cron_batch_size(settings)

    log.info(
        "worker_sweep_started",
        extra={"payload": {"interval_sec": interval_sec, "limit": limit}},
    )

    while True:
        try:
            run_sweep(limit=limit)
        except Exception as e:
            log.error(
                "worker_sweep_error",
                extra={"payload": {"err": str(e)[:300]}},
            )
        time.sleep(interval_sec)


if __name__ == "__main__":
    main()
