from __future__ import annotations

import pytest

from meeting_notes_agent.common.config import get_settings
from meeting_notes_agent.storage.db import configure_engine, get_engine, init_db


@pytest.fixture()
def sqlite_db(tmp_path, monkeypatch):
    """Временная SQLite-БД и blob-каталог на тест."""
    s = get_settings()
    monkeypatch.setattr(s, "blob_dir", str(tmp_path / "blobs"))
    configure_engine(f"sqlite+pysqlite:///{tmp_path / 'notes.db'}")
    init_db()
    try:
        yield tmp_path
    finally:
        get_engine().dispose()
