from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from rapor.core.errors import ConfigurationError, ConnectivityError, PersistenceError
from rapor.infrastructure.db import create_db_engine
from rapor.infrastructure.query_executor import SqlAlchemyQueryExecutor, is_transient_error


def test_sqlite_uses_qmark_placeholder(source_executor) -> None:
    assert source_executor.dialect == "sqlite"
    assert source_executor.placeholder == "?"
    assert source_executor.placeholders(3) == "?, ?, ?"
    assert source_executor.qualified("tabel_siswa", "main") == '"main"."tabel_siswa"'


def test_fetch_returns_dicts_in_column_order(source_executor) -> None:
    source_executor.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, nama TEXT)")
    inserted = source_executor.execute_many("INSERT INTO t (id, nama) VALUES (?, ?)", [(1, "a"), (2, "b")])

    rows = source_executor.fetch_all("SELECT id, nama FROM t ORDER BY id")

    assert inserted == 2
    assert rows == [{"id": 1, "nama": "a"}, {"id": 2, "nama": "b"}]
    assert list(rows[0]) == ["id", "nama"]
    assert source_executor.fetch_one("SELECT nama FROM t WHERE id = ?", (2,)) == {"nama": "b"}
    assert source_executor.fetch_one("SELECT nama FROM t WHERE id = ?", (3,)) is None


def test_execute_returns_rowcount(source_executor) -> None:
    source_executor.execute("CREATE TABLE t (id INTEGER)")
    source_executor.execute_many("INSERT INTO t VALUES (?)", [(1,), (2,), (3,)])

    assert source_executor.execute("DELETE FROM t WHERE id > ?", (1,)) == 2
    assert source_executor.execute_many("INSERT INTO t VALUES (?)", []) == 0


def test_sql_errors_become_persistence_errors(source_executor) -> None:
    with pytest.raises(PersistenceError, match="no such table"):
        source_executor.fetch_all("SELECT * FROM missing")


def test_ping_wraps_failures_as_connectivity_error(tmp_path) -> None:
    executor = SqlAlchemyQueryExecutor.from_url(f"sqlite:///{tmp_path / 'missing' / 'db.sqlite'}", retries=1)

    with pytest.raises(ConnectivityError):
        executor.ping()
    executor.dispose()


def test_transient_errors_are_retried(source_executor) -> None:
    delays: list[float] = []
    executor = SqlAlchemyQueryExecutor(source_executor.engine, retries=3, initial_delay_seconds=0.5, sleep=delays.append)
    attempts = {"count": 0}

    def _flaky() -> str:
        attempts["count"] += 1
        if attempts["count"] < 3:
            raise OperationalError("SELECT 1", (), Exception("database is locked"))
        return "ok"

    assert executor._run(_flaky, "SELECT 1") == "ok"
    assert delays == [0.5, 1.0]


def test_non_transient_errors_are_not_retried(source_executor) -> None:
    delays: list[float] = []
    executor = SqlAlchemyQueryExecutor(source_executor.engine, sleep=delays.append)

    with pytest.raises(PersistenceError):
        executor.fetch_all("SELEC nonsense")
    assert delays == []


def test_is_transient_error_only_for_dbapi_errors() -> None:
    assert is_transient_error(OperationalError("x", (), Exception("Connection refused")))
    assert not is_transient_error(OperationalError("x", (), Exception("syntax error")))
    assert not is_transient_error(ValueError("timeout"))


def test_invalid_url_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="Invalid database URL"):
        create_db_engine("not a url")


def test_sqlite_connections_use_wal(source_executor) -> None:
    row = source_executor.fetch_one("PRAGMA journal_mode")

    assert str(next(iter(row.values()))).lower() == "wal"
