"""
Инициализация базы данных и сессий SQLAlchemy.

Назначение:
- Создание engine (лениво, по DATABASE_DSN)
- Контекстный менеджер для сессий
- Единая точка доступа к БД для всех сервисов

Важно:
- каждая операция хранилища открывает свою сессию: оркестратор вызывает
  их из разных потоков (asyncio.to_thread)
- expire_on_commit=False: объекты читаются после закрытия сессии
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import Engine, create_engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from meeting_notes_agent.common.config import get_settings

# =============================================================================
# ENGINE / SESSION FACTORY
# =============================================================================
_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _engine_kwargs(dsn: str) -> dict:
    if dsn.startswith("sqlite"):
        database = make_url(dsn).database
        if database and database != ":memory:":
            Path(database).resolve().parent.mkdir(parents=True, exist_ok=True)
        # сессии живут в пуле потоков
        return {"connect_args": {"check_same_thread": False, "timeout": 30}}
    return {"pool_pre_ping": True}


def configure_engine(dsn: str | None = None) -> Engine:
    """
    (Пере)создать engine. Без аргумента берётся DATABASE_DSN.
    """
    global _engine, _session_factory
    url = dsn or get_settings().database_dsn
    if _engine is not None:
        _engine.dispose()
    _engine = create_engine(url, **_engine_kwargs(url))
    _session_factory = sessionmaker(
        bind=_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        return configure_engine()
    return _engine


def init_db() -> None:
    """
    Автосоздание таблиц (dev / тесты). В prod: alembic upgrade head.
    """
    from .models import Base

    Base.metadata.create_all(get_engine())


# =============================================================================
# CONTEXT MANAGER
# =============================================================================
@contextmanager
def db_session() -> Iterator[Session]:
    """
    Контекстный менеджер для работы с БД.

    Использование:
        with db_session() as session:
            session.add(...)
    """
    if _session_factory is None:
        configure_engine()
    assert _session_factory is not None
    session: Session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
