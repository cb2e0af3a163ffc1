"""
tests/test_db.py -- Engine construction in core/db.py.
"""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import inspect
from sqlalchemy.pool import SingletonThreadPool

from core.db import make_engine


@pytest.mark.parametrize(
    "url",
    [
        "sqlite:///:memory:",
        f"sqlite:///file:db_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true",
    ],
)
def test_in_memory_sqlite_gets_a_connection_per_thread(url: str) -> None:
    engine = make_engine(url)
    try:
        assert isinstance(engine.pool, SingletonThreadPool)
        assert set(inspect(engine).get_table_names()) == {"roles", "users", "ratings"}
    finally:
        engine.dispose()


def test_file_sqlite_keeps_the_default_pool(tmp_path) -> None:
    engine = make_engine(f"sqlite:///{tmp_path / 'ratings.db'}")
    try:
        assert not isinstance(engine.pool, SingletonThreadPool)
        with engine.connect() as conn:
            assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1
    finally:
        engine.dispose()
