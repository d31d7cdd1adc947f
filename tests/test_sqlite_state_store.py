# tests/test_sqlite_state_store.py
from __future__ import annotations

import dataclasses
import multiprocessing as mp
import sqlite3
from pathlib import Path

import pytest

from followgraph.config import load_config
from followgraph.graph.store import GraphStore, SqliteStateBackend
from followgraph.runtime.executor_boot import build_backend
from followgraph.runtime.sqlite_db import SqliteDB, SqliteStateStore


def _pragma(con: sqlite3.Connection, name: str) -> int | str:
    row = con.execute(f"PRAGMA {name};").fetchone()
    if row is None:
        raise AssertionError(f"missing pragma: {name}")
    return row[0]


def test_sqlite_operational_pragmas_are_applied(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FOLLOWGRAPH_MODE", "prod")
    monkeypatch.setenv("FOLLOWGRAPH_SQLITE_BUSY_TIMEOUT_MS", "1234")

    db = SqliteDB(path=str(tmp_path / "g.db"))
    db.init_schema()

    with db.connection() as con:
        assert str(_pragma(con, "journal_mode")).lower() == "wal"
        # FULL is the prod default.
        assert int(_pragma(con, "synchronous")) == 2
        assert int(_pragma(con, "foreign_keys")) == 1
        assert int(_pragma(con, "busy_timeout")) == 1234


def test_dev_mode_uses_normal_synchronous(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FOLLOWGRAPH_MODE", "dev")
    db = SqliteDB(path=str(tmp_path / "g.db"))
    with db.connection() as con:
        assert int(_pragma(con, "synchronous")) == 1


def test_configured_mode_wins_over_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FOLLOWGRAPH_MODE", "prod")
    cfg = dataclasses.replace(load_config(), mode="dev", store="sqlite", db_path=str(tmp_path / "g.db"))

    backend = build_backend(cfg)
    assert isinstance(backend, SqliteStateBackend)
    assert backend.db.mode == "dev"
    with backend.db.connection() as con:
        assert int(_pragma(con, "synchronous")) == 1

    # Without an explicit mode the environment still decides.
    with SqliteDB(path=backend.path).connection() as con:
        assert int(_pragma(con, "synchronous")) == 2


def test_update_rolls_back_when_mutation_raises(tmp_path: Path) -> None:
    store = SqliteStateStore(db=SqliteDB(path=str(tmp_path / "g.db")))
    store.write({"user_count": 1, "registry": {"x": 0}})

    def _boom(st: dict) -> None:
        st["registry"]["y"] = 1
        st["user_count"] = 2
        raise RuntimeError("abort")

    with pytest.raises(RuntimeError):
        store.update(_boom)

    assert store.read() == {"user_count": 1, "registry": {"x": 0}}


def test_update_returns_mutation_result(tmp_path: Path) -> None:
    store = SqliteStateStore(db=SqliteDB(path=str(tmp_path / "g.db")))
    store.write({"user_count": 0})

    def _bump(st: dict) -> int:
        st["user_count"] += 1
        return st["user_count"]

    assert store.update(_bump) == 1
    assert store.read()["user_count"] == 1


def test_read_without_snapshot_raises(tmp_path: Path) -> None:
    store = SqliteStateStore(db=SqliteDB(path=str(tmp_path / "g.db")))
    assert store.exists() is False
    with pytest.raises(FileNotFoundError):
        store.read()


def test_init_if_missing_never_overwrites(tmp_path: Path) -> None:
    store = SqliteStateStore(db=SqliteDB(path=str(tmp_path / "g.db")))
    assert store.init_if_missing({"user_count": 0, "v": 1}) is True
    assert store.init_if_missing({"user_count": 0, "v": 2}) is False
    assert store.read()["v"] == 1

    GraphStore(SqliteStateBackend(path=str(tmp_path / "h.db"))).register("alice")
    reopened = GraphStore(SqliteStateBackend(path=str(tmp_path / "h.db")))
    assert reopened.user_count() == 1


def test_schema_version_mismatch_refuses_to_start(tmp_path: Path) -> None:
    db = SqliteDB(path=str(tmp_path / "g.db"))
    db.init_schema()
    with db.write_tx() as con:
        con.execute("UPDATE meta SET value='99' WHERE key='schema_version';")

    with pytest.raises(RuntimeError, match="schema_version mismatch"):
        db.init_schema()


def _worker(db_path: str, offset: int, n: int) -> None:
    store = GraphStore(SqliteStateBackend(path=db_path))
    for i in range(n):
        store.register(f"{offset + i:064x}")


def test_registrations_from_many_processes_stay_dense(tmp_path: Path) -> None:
    """Concurrent writer processes must never hand out the same registration index."""
    db_path = str(tmp_path / "g.db")
    GraphStore(SqliteStateBackend(path=db_path))

    workers = 4
    per = 25
    procs: list[mp.Process] = []
    for w in range(workers):
        pr = mp.Process(target=_worker, args=(db_path, 1 + w * per, per))
        pr.start()
        procs.append(pr)

    for pr in procs:
        pr.join(60)
        assert pr.exitcode == 0

    store = GraphStore(SqliteStateBackend(path=db_path))
    assert store.user_count() == workers * per
    store.check_invariants()
