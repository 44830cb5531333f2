"""Process data service backed by SQLite.

Stores process instances and their variables in a single SQLite file so that
variable contexts can be rebuilt after a restart. Values are JSON-encoded;
values that JSON cannot represent are stored via their ``str()`` form.

Storage Layout:
    ~/.workflows/states/<hash-of-cwd>/processes.db
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any

from .models import ProcessInstance, Variable
from .process_service import ProcessInstanceQuery, ProcessService

logger = logging.getLogger(__name__)

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS process_instances (
    id           INTEGER PRIMARY KEY,
    parent_id    INTEGER NOT NULL DEFAULT 0,
    process_id   INTEGER,
    business_id  TEXT,
    subject      TEXT
);

CREATE INDEX IF NOT EXISTS idx_process_instances_parent ON process_instances(parent_id);

CREATE TABLE IF NOT EXISTS process_variables (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    process_instance_id  INTEGER NOT NULL,
    key                  TEXT NOT NULL,
    value                TEXT NOT NULL,
    UNIQUE (process_instance_id, key)
);
"""

_INSTANCE_COLUMNS = "id, parent_id, process_id, business_id, subject"


class _SqliteProcessInstanceQuery(ProcessInstanceQuery):
    def __init__(self, service: SqliteProcessService) -> None:
        super().__init__()
        self._service = service

    def list(self) -> list[ProcessInstance]:
        sql = f"SELECT {_INSTANCE_COLUMNS} FROM process_instances"
        params: tuple[Any, ...] = ()
        if self._parent_id is not None:
            sql += " WHERE parent_id = ?"
            params = (self._parent_id,)
        sql += " ORDER BY id"
        return [_row_to_instance(row) for row in self._service._fetchall(sql, params)]


class SqliteProcessService(ProcessService):
    """Persistent process service using SQLite.

    Thread-safe via WAL mode, ``check_same_thread=False`` and a lock around
    the shared connection.

    Example:
        service = SqliteProcessService(tmp_path / "processes.db")
        service.initialize()
        service.add_instance(ProcessInstance(id=1))
        service.set_variable(1, "amount", 3)
        service.get_process_variables(1)
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = str(db_path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Open the database and create tables."""
        self._conn = self._open()
        with self._lock:
            self._conn.executescript(_SCHEMA_SQL)
        logger.debug("Process store initialized at %s", self._db_path)

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            with self._lock:
                self._conn.close()
            self._conn = None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_instance(self, instance: ProcessInstance) -> ProcessInstance:
        """Insert or replace a process instance."""
        self._execute(
            f"INSERT OR REPLACE INTO process_instances ({_INSTANCE_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                instance.id,
                instance.parent_id,
                instance.process_id,
                instance.business_id,
                instance.subject,
            ),
        )
        return instance

    def set_variable(self, process_instance_id: int, key: str, value: Any) -> None:
        """Persist a variable for an instance (upsert)."""
        self._execute(
            "INSERT INTO process_variables (process_instance_id, key, value) VALUES (?, ?, ?) "
            "ON CONFLICT(process_instance_id, key) DO UPDATE SET value = excluded.value",
            (process_instance_id, key, json.dumps(value, default=str)),
        )

    # ------------------------------------------------------------------
    # ProcessService
    # ------------------------------------------------------------------

    def get_process_variables(self, process_instance_id: int) -> list[Variable]:
        rows = self._fetchall(
            "SELECT key, value FROM process_variables WHERE process_instance_id = ? ORDER BY id",
            (process_instance_id,),
        )
        return [
            Variable(process_instance_id=process_instance_id, key=key, value=json.loads(value))
            for key, value in rows
        ]

    def get_process_instance_by_id(self, process_instance_id: int) -> ProcessInstance | None:
        rows = self._fetchall(
            f"SELECT {_INSTANCE_COLUMNS} FROM process_instances WHERE id = ?",
            (process_instance_id,),
        )
        return _row_to_instance(rows[0]) if rows else None

    def create_process_instance_query(self) -> ProcessInstanceQuery:
        return _SqliteProcessInstanceQuery(self)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        return conn

    def _execute(self, sql: str, params: tuple[Any, ...]) -> None:
        assert self._conn is not None, "SqliteProcessService not initialized"
        with self._lock:
            self._conn.execute(sql, params)
            self._conn.commit()

    def _fetchall(self, sql: str, params: tuple[Any, ...]) -> list[tuple[Any, ...]]:
        assert self._conn is not None, "SqliteProcessService not initialized"
        with self._lock:
            return self._conn.execute(sql, params).fetchall()


def _row_to_instance(row: tuple[Any, ...]) -> ProcessInstance:
    return ProcessInstance(
        id=row[0],
        parent_id=row[1],
        process_id=row[2],
        business_id=row[3],
        subject=row[4],
    )


__all__ = ["SqliteProcessService"]
