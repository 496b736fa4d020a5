from __future__ import annotations

import pytest
from sqlalchemy import text

from geo_incident_service.common.config import get_settings
from geo_incident_service.storage import db


@pytest.fixture()
def sqlite_dsn(monkeypatch):
    monkeypatch.setattr(get_settings(), "postgres_dsn", "sqlite://")
    db.dispose()
    try:
        yield
    finally:
        db.dispose()


def test_engine_created_on_first_use(sqlite_dsn) -> None:
    assert db._engine is None

    db.ping()

    assert db.get_engine() is db.get_engine()
    assert str(db.get_engine().url) == "sqlite://"


def test_dispose_without_engine_is_noop(sqlite_dsn) -> None:
    db.dispose()
    assert db._engine is None


def test_db_session_commits_and_rolls_back(sqlite_dsn) -> None:
    with db.db_session() as session:
        session.execute(text("CREATE TABLE checks_tmp (v INTEGER)"))
        session.execute(text("INSERT INTO checks_tmp VALUES (1)"))

    with pytest.raises(RuntimeError):
        with db.db_session() as session:
            session.execute(text("INSERT INTO checks_tmp VALUES (2)"))
            raise RuntimeError("boom")

    with db.db_session() as session:
        assert session.execute(text("SELECT count(*) FROM checks_tmp")).scalar() == 1
