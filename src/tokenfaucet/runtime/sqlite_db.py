# src/tokenfaucet/runtime/sqlite_db.py
from __future__ import annotations

import json
import os
import random
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List

Json = Dict[str, Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _canon_json(obj: Any) -> str:
    """Canonical JSON encoding for persisted state and receipts.

    Unknown types are NOT coerced; a non-JSON value in state is a bug.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _env_int(name: str, default: int) -> int:
    try:
        raw = str(os.environ.get(name, "")).strip()
        return int(raw) if raw else int(default)
    except Exception:
        return int(default)


class SqliteDB:
    """SQLite manager for the faucet.

    - one DB file holds the state snapshot and the receipt log
    - connections are never shared between threads
    - writes go through write_tx() (BEGIN IMMEDIATE with bounded retry)
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str) -> None:
        self.path = str(path)

    @staticmethod
    def _synchronous_pragma() -> str:
        mode = (os.environ.get("FAUCET_MODE") or "prod").strip().lower()
        default = "FULL" if mode == "prod" else "NORMAL"
        raw = (os.environ.get("FAUCET_SQLITE_SYNCHRONOUS") or default).strip().upper()
        if raw not in {"OFF", "NORMAL", "FULL", "EXTRA"}:
            raw = default
        return raw

    def _connect(self) -> sqlite3.Connection:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        timeout_s = float(_env_int("FAUCET_SQLITE_CONNECT_TIMEOUT_MS", 30_000)) / 1000.0
        con = sqlite3.connect(
            self.path,
            timeout=timeout_s,
            isolation_level=None,  # BEGIN/COMMIT managed by write_tx()
            check_same_thread=False,
        )
        con.row_factory = sqlite3.Row

        row = con.execute("PRAGMA journal_mode=WAL;").fetchone()
        mode = str(row[0]).strip().lower() if row is not None else ""
        if mode != "wal":
            con.close()
            raise RuntimeError(f"sqlite journal_mode is '{mode}', expected 'wal'")

        con.execute(f"PRAGMA synchronous={self._synchronous_pragma()};")
        con.execute("PRAGMA temp_store=MEMORY;")
        con.execute(f"PRAGMA busy_timeout={int(timeout_s * 1000)};")
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
                CREATE TABLE IF NOT EXISTS faucet_state (
                  id INTEGER PRIMARY KEY CHECK (id = 1),
                  seq INTEGER NOT NULL,
                  state_json TEXT NOT NULL,
                  updated_ts_ms INTEGER NOT NULL
                );
                """
            )
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS receipts (
                  seq INTEGER PRIMARY KEY,
                  receipt_id TEXT NOT NULL UNIQUE,
                  op TEXT NOT NULL,
                  caller TEXT NOT NULL,
                  receipt_json TEXT NOT NULL,
                  created_ts_ms INTEGER NOT NULL
                );
                """
            )
            con.execute("CREATE INDEX IF NOT EXISTS idx_receipts_caller ON receipts(caller);")

            row = con.execute("SELECT value FROM meta WHERE key='schema_version' LIMIT 1;").fetchone()
            if row is None:
                con.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?);", (str(self.SCHEMA_VERSION),))
            else:
                try:
                    v = int(str(row["value"]))
                except Exception:
                    v = 0
                if v != self.SCHEMA_VERSION:
                    raise RuntimeError(
                        f"sqlite schema_version mismatch: have={v} want={self.SCHEMA_VERSION}. Refuse to start."
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
        return "database is locked" in msg or "database is busy" in msg

    def _backoff(self, attempt: int) -> None:
        base = max(0.001, float(_env_int("FAUCET_SQLITE_WRITE_BACKOFF_BASE_MS", 5)) / 1000.0)
        cap = max(base, float(_env_int("FAUCET_SQLITE_WRITE_BACKOFF_MAX_MS", 250)) / 1000.0)
        sleep_s = min(cap, base * (2.0 ** min(attempt, 8)))
        time.sleep(sleep_s * (0.5 + random.random()))

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        """Write transaction: retry BEGIN IMMEDIATE / COMMIT on lock contention
        until FAUCET_SQLITE_WRITE_DEADLINE_MS, then raise. Any exception inside
        the block rolls back.
        """
        deadline_ts = _now_ms() + max(250, _env_int("FAUCET_SQLITE_WRITE_DEADLINE_MS", 30_000))

        with self.connection() as con:
            attempt = 0
            while True:
                try:
                    con.execute("BEGIN IMMEDIATE;")
                    break
                except sqlite3.OperationalError as e:
                    if not self._is_locked_error(e) or _now_ms() >= deadline_ts:
                        raise
                    self._backoff(attempt)
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
                        self._backoff(attempt)
                        attempt += 1
            except Exception:
                try:
                    con.execute("ROLLBACK;")
                except sqlite3.Error:
                    pass
                raise


class StaleSnapshotError(RuntimeError):
    """Another writer committed since this snapshot was read."""


class SqliteFaucetStore:
    """Faucet snapshot + receipt log persisted in SQLite.

      - seq(): seq of the latest snapshot (0 if none)
      - read(): latest snapshot
      - write(st): overwrite the snapshot
      - commit(st, receipt): snapshot and receipt in one transaction
      - receipts(limit): most recent receipts, newest first
    """

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()

    def exists(self) -> bool:
        with self._db.connection() as con:
            return con.execute("SELECT 1 FROM faucet_state WHERE id=1;").fetchone() is not None

    def seq(self) -> int:
        with self._db.connection() as con:
            row = con.execute("SELECT seq FROM faucet_state WHERE id=1;").fetchone()
        return int(row["seq"]) if row is not None else 0

    def read(self) -> Json:
        with self._db.connection() as con:
            row = con.execute("SELECT state_json FROM faucet_state WHERE id=1;").fetchone()
        if row is None:
            raise FileNotFoundError("sqlite faucet_state is missing")
        st = json.loads(str(row["state_json"]))
        if not isinstance(st, dict):
            raise ValueError("faucet_state is not a JSON object")
        return st

    @staticmethod
    def _upsert_state(con: sqlite3.Connection, st: Json) -> None:
        con.execute(
            """
            INSERT INTO faucet_state(id, seq, state_json, updated_ts_ms)
            VALUES(1, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
              seq=excluded.seq,
              state_json=excluded.state_json,
              updated_ts_ms=excluded.updated_ts_ms;
            """,
            (int(st.get("seq", 0)), _canon_json(st), _now_ms()),
        )

    def write(self, st: Json) -> None:
        if not isinstance(st, dict):
            raise ValueError("state write expects dict")
        with self._db.write_tx() as con:
            self._upsert_state(con, st)

    def commit(self, st: Json, receipt: Json) -> None:
        with self._db.write_tx() as con:
            row = con.execute("SELECT seq FROM faucet_state WHERE id=1;").fetchone()
            cur = int(row["seq"]) if row is not None else 0
            if cur != int(receipt["seq"]) - 1:
                raise StaleSnapshotError(f"snapshot seq is {cur}, receipt seq is {int(receipt['seq'])}")
            self._upsert_state(con, st)
            con.execute(
                """
                INSERT INTO receipts(seq, receipt_id, op, caller, receipt_json, created_ts_ms)
                VALUES(?, ?, ?, ?, ?, ?);
                """,
                (
                    int(receipt["seq"]),
                    str(receipt["receipt_id"]),
                    str(receipt["op"]),
                    str(receipt["caller"]),
                    _canon_json(receipt),
                    _now_ms(),
                ),
            )

    def receipts(self, *, limit: int = 50) -> List[Json]:
        n = max(1, min(int(limit), 1000))
        with self._db.connection() as con:
            rows = con.execute(
                "SELECT receipt_json FROM receipts ORDER BY seq DESC LIMIT ?;",
                (n,),
            ).fetchall()
        return [json.loads(str(r["receipt_json"])) for r in rows]
