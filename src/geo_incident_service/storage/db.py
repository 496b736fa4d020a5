"""
Доступ к Postgres через SQLAlchemy.

- engine создаётся при первом обращении (импорт репозиториев не открывает пул)
- db_session(): одна транзакция на блок, commit/rollback автоматически
- ping() для /system/health, dispose() при остановке процесса
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from geo_incident_service.common.config import get_settings
from geo_incident_service.common.logging import get_project_logger

log = get_project_logger()

_lock = threading.Lock()
_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _init() -> tuple[Engine, sessionmaker[Session]]:
    global _engine, _session_factory
    with _lock:
        if _engine is None or _session_factory is None:
            _engine = create_engine(get_settings().postgres_dsn, pool_pre_ping=True)
            _session_factory = sessionmaker(
                bind=_engine,
                autoflush=False,
                expire_on_commit=False,
            )
        return _engine, _session_factory


def get_engine() -> Engine:
    return _init()[0]


@contextmanager
def db_session() -> Iterator[Session]:
    """
    Использование:
        with db_session() as session:
            ZoneRepository(session).create(...)
    """
    session = _init()[1]()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def ping() -> None:
    """SELECT 1; ошибка соединения пробрасывается."""
    with get_engine().connect() as conn:
        conn.execute(text("SELECT 1"))


def dispose() -> None:
    global _engine, _session_factory
    with _lock:
        if _engine is None:
            return
        _engine.dispose()
        _engine = None
        _session_factory = None
    log.info("db_engine_disposed")
