# src/followgraph/runtime/sqlite_db.py
from __future__ import annotations

import json
import os
import random
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar

Json = Dict[str, Any]
T = TypeVar("T")


def _now_ms() -> int:
    return int(time.time() * 1000)


def canon_json(obj: Any) -> str:
    """Canonical JSON encoding of persisted state.

    Unknown types are not coerced: non-JSON values must fail here, not drift on disk.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _env_int(name: str, default: int) -> int:
    try:
        raw = str(os.environ.get(name, "")).strip()
        return int(raw) if raw else int(default)
    except ValueError:
        return int(default)


class SqliteDB:
    """SQLite manager for the graph store.

    - one durable DB file
    - cross-process safe (SQLite locks)
    - cross-thread safe by never sharing connections

    SQLite allows only one writer at a time, so BEGIN IMMEDIATE can fail with
    "database is locked" under contention; write_tx() retries with a deadline.
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str, mode: Optional[str] = None) -> None:
        self.path = str(path)
        self.mode = mode

    def _sqlite_synchronous_pragma(self) -> str:
        """prod -> FULL, otherwise NORMAL. Override with FOLLOWGRAPH_SQLITE_SYNCHRONOUS.

        The mode given at construction wins over FOLLOWGRAPH_MODE.
        """
        mode = (self.mode or os.environ.get("FOLLOWGRAPH_MODE") or "prod").strip().lower()
        default = "FULL" if mode == "prod" else "NORMAL"
        raw = (os.environ.get("FOLLOWGRAPH_SQLITE_SYNCHRONOUS") or default).strip().upper()
        if raw not in {"OFF", "NORMAL", "FULL", "EXTRA"}:
            raw = default
        return raw

    def _connect(self) -> sqlite3.Connection:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        connect_timeout_s = float(_env_int("FOLLOWGRAPH_SQLITE_CONNECT_TIMEOUT_MS", 30_000)) / 1000.0
        con = sqlite3.connect(
            self.path,
            timeout=connect_timeout_s,
            isolation_level=None,  # BEGIN/COMMIT are explicit
            check_same_thread=False,
        )
        con.row_factory = sqlite3.Row

        row = con.execute("PRAGMA journal_mode=WAL;").fetchone()
        mode = str(row[0]).strip().lower() if row is not None else ""
        if mode and mode != "wal":
            con.close()
            raise RuntimeError(f"sqlite journal_mode is '{mode}', expected 'wal'")

        con.execute(f"PRAGMA synchronous={self._sqlite_synchronous_pragma()};")
        con.execute("PRAGMA foreign_keys=ON;")
        con.execute("PRAGMA temp_store=MEMORY;")

        busy_ms = max(0, _env_int("FOLLOWGRAPH_SQLITE_BUSY_TIMEOUT_MS", int(connect_timeout_s * 1000)))
        con.execute(f"PRAGMA busy_timeout={busy_ms};")
        return con

    def init_schema(self) -> None:
        with self.write_tx() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS meta (
                  key TEXT PRIMARY KEY,
                  value TEXT NOT NULL
                );
                """
            )
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS graph_state (
                  id INTEGER PRIMARY KEY CHECK (id = 1),
                  user_count INTEGER NOT NULL,
                  state_json TEXT NOT NULL,
                  updated_ts_ms INTEGER NOT NULL
                );
                """
            )

            row = con.execute("SELECT value FROM meta WHERE key='schema_version' LIMIT 1;").fetchone()
            if row is None:
                con.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?);", (str(self.SCHEMA_VERSION),))
            else:
                try:
                    v = int(str(row["value"]))
                except ValueError:
                    v = 0
                if v != self.SCHEMA_VERSION:
                    raise RuntimeError(
                        f"sqlite schema_version mismatch: have={v} want={self.SCHEMA_VERSION}. "
                        "Refuse to start to avoid corrupting data."
                    )

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    @staticmethod
    def _is_locked_error(e: Exception) -> bool:
        msg = str(e).lower()
        return ("database is locked" in msg) or ("database is busy" in msg)

    def _backoff(self, attempt: int, base_sleep: float, max_sleep: float) -> None:
        sleep_s = min(max_sleep, base_sleep * (2.0 ** min(attempt, 8)))
        time.sleep(sleep_s * (0.5 + random.random()))

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        """Open a write transaction with bounded retry on writer-lock contention.

        BEGIN IMMEDIATE and COMMIT are retried with jittered exponential backoff
        until FOLLOWGRAPH_SQLITE_WRITE_DEADLINE_MS; any exception inside the
        block rolls the whole transaction back.
        """
        deadline_ts = _now_ms() + max(250, _env_int("FOLLOWGRAPH_SQLITE_WRITE_DEADLINE_MS", 30_000))
        base_sleep = max(0.001, float(_env_int("FOLLOWGRAPH_SQLITE_WRITE_BACKOFF_BASE_MS", 5)) / 1000.0)
        max_sleep = max(base_sleep, float(_env_int("FOLLOWGRAPH_SQLITE_WRITE_BACKOFF_MAX_MS", 250)) / 1000.0)

        with self.connection() as con:
            attempt = 0
            while True:
                try:
                    con.execute("BEGIN IMMEDIATE;")
                    break
                except sqlite3.OperationalError as e:
                    if not self._is_locked_error(e) or _now_ms() >= deadline_ts:
                        raise
                    self._backoff(attempt, base_sleep, max_sleep)
                    attempt += 1

            try:
                yield con

                attempt = 0
                while True:
                    try:
                        con.execute("COMMIT;")
                        break
                    except sqlite3.OperationalError as e:
                        if not self._is_locked_error(e) or _now_ms() >= deadline_ts:
                            raise
                        self._backoff(attempt, base_sleep, max_sleep)
                        attempt += 1
            except Exception:
                try:
                    con.execute("ROLLBACK;")
                except sqlite3.Error:
                    pass
                raise


class SqliteStateStore:
    """Graph state snapshot persisted in SQLite.

      - read(): load the latest snapshot
      - write(st): overwrite the snapshot atomically
      - update(mut): read-modify-write inside one write transaction; if mut
        raises, nothing is written
    """

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()

    @property
    def db(self) -> SqliteDB:
        return self._db

    def exists(self) -> bool:
        with self._db.connection() as con:
            return con.execute("SELECT 1 FROM graph_state WHERE id=1;").fetchone() is not None

    @staticmethod
    def _decode(row: sqlite3.Row | None) -> Json:
        if row is None:
            raise FileNotFoundError("sqlite graph_state is missing")
        st = json.loads(str(row["state_json"]))
        if not isinstance(st, dict):
            raise ValueError("graph_state is not a JSON object")
        return st

    def init_if_missing(self, st: Json) -> bool:
        """Write `st` only when no snapshot exists yet. Returns True if written."""
        with self._db.write_tx() as con:
            cur = con.execute(
                "INSERT INTO graph_state(id, user_count, state_json, updated_ts_ms) VALUES(1, ?, ?, ?) "
                "ON CONFLICT(id) DO NOTHING;",
                (int(st.get("user_count", 0) or 0), canon_json(st), _now_ms()),
            )
            return cur.rowcount == 1

    def read(self) -> Json:
        with self._db.connection() as con:
            return self._decode(con.execute("SELECT state_json FROM graph_state WHERE id=1;").fetchone())

    def write(self, st: Json) -> None:
        if not isinstance(st, dict):
            raise ValueError("graph state write expects dict")
        payload = canon_json(st)
        with self._db.write_tx() as con:
            con.execute(
                """
                INSERT INTO graph_state(id, user_count, state_json, updated_ts_ms)
                VALUES(1, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                  user_count=excluded.user_count,
                  state_json=excluded.state_json,
                  updated_ts_ms=excluded.updated_ts_ms;
                """,
                (int(st.get("user_count", 0) or 0), payload, _now_ms()),
            )

    def update(self, mut: Callable[[Json], T]) -> T:
        with self._db.write_tx() as con:
            st = self._decode(con.execute("SELECT state_json FROM graph_state WHERE id=1;").fetchone())

            out = mut(st)

            con.execute(
                "UPDATE graph_state SET user_count=?, state_json=?, updated_ts_ms=? WHERE id=1;",
                (int(st.get("user_count", 0) or 0), canon_json(st), _now_ms()),
            )
            return out
