"""
SQLite FarmStore.

Tables::

    Farms     (farm_id PK, position, name, age_profile, actuator_state JSON, created_at)
    AppState  (key PK, value)

``save_farms`` upserts every farm with its insertion position and deletes
rows for farms that are no longer registered, in one transaction.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Sequence

from coopclimate.domain.exceptions import PersistenceError
from coopclimate.domain.farm import Farm
from infrastructure.persistence.records import farms_to_records, records_to_farms

logger = logging.getLogger(__name__)

ACTIVE_FARM_KEY = "active_farm_id"


class SQLiteFarmStore:
    """Thread-safe SQLite store with one connection per thread."""

    def __init__(self, database_path: str) -> None:
        self._database_path = database_path
        self._local = threading.local()
        self._connections: list[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()

        db_path = Path(database_path)
        if database_path != ":memory:" and not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)
            logger.info("Created database directory: %s", db_path.parent)
        self.create_tables()

    # --- Connections -----------------------------------------------------------
    def get_db(self) -> sqlite3.Connection:
        connection: sqlite3.Connection | None = getattr(self._local, "connection", None)
        if connection is None:
            try:
                connection = sqlite3.connect(self._database_path, check_same_thread=False)
            except sqlite3.Error as exc:
                raise PersistenceError(f"Cannot open farm database {self._database_path}: {exc}") from exc
            connection.row_factory = sqlite3.Row
            connection.execute("PRAGMA journal_mode=WAL")
            connection.execute("PRAGMA synchronous=NORMAL")
            self._local.connection = connection
            with self._connections_lock:
                self._connections.append(connection)
        return connection

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        conn = self.get_db()
        try:
            yield conn
        except sqlite3.Error as exc:
            conn.rollback()
            raise PersistenceError(f"Farm database error: {exc}") from exc
        else:
            conn.commit()

    def close(self) -> None:
        with self._connections_lock:
            connections, self._connections = self._connections, []
        for connection in connections:
            connection.close()
        self._local = threading.local()

    # --- Schema ----------------------------------------------------------------
    def create_tables(self) -> None:
        with self.connection() as db:
            db.execute(
                """
                CREATE TABLE IF NOT EXISTS Farms (
                    farm_id TEXT PRIMARY KEY,
                    position INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    age_profile TEXT NOT NULL,
                    actuator_state TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            db.execute(
                """
                CREATE TABLE IF NOT EXISTS AppState (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
                """
            )

    # --- FarmStore -------------------------------------------------------------
    def load_farms(self) -> list[Farm]:
        with self.connection() as db:
            rows = db.execute(
                "SELECT farm_id, name, age_profile, actuator_state, created_at FROM Farms ORDER BY position"
            ).fetchall()
        records = []
        for row in rows:
            try:
                actuator_state = json.loads(row["actuator_state"])
            except json.JSONDecodeError:
                logger.warning("Skipping farm %s with unreadable actuator state", row["farm_id"])
                continue
            records.append(
                {
                    "id": row["farm_id"],
                    "name": row["name"],
                    "age_profile": row["age_profile"],
                    "actuator_state": actuator_state,
                    "created_at": row["created_at"],
                }
            )
        return records_to_farms(records)

    def save_farms(self, farms: Sequence[Farm]) -> None:
        records = farms_to_records(farms)
        with self.connection() as db:
            for position, record in enumerate(records):
                db.execute(
                    """
                    INSERT INTO Farms (farm_id, position, name, age_profile, actuator_state, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(farm_id) DO UPDATE SET
                        position = excluded.position,
                        name = excluded.name,
                        age_profile = excluded.age_profile,
                        actuator_state = excluded.actuator_state,
                        created_at = excluded.created_at
                    """,
                    (
                        record["id"],
                        position,
                        record["name"],
                        record["age_profile"],
                        json.dumps(record["actuator_state"]),
                        record["created_at"],
                    ),
                )
            ids = [record["id"] for record in records]
            if ids:
                placeholders = ", ".join("?" for _ in ids)
                db.execute(f"DELETE FROM Farms WHERE farm_id NOT IN ({placeholders})", ids)
            else:
                db.execute("DELETE FROM Farms")

    def load_active_farm_id(self) -> str | None:
        with self.connection() as db:
            row = db.execute("SELECT value FROM AppState WHERE key = ?", (ACTIVE_FARM_KEY,)).fetchone()
        return row["value"] if row else None

    def save_active_farm_id(self, farm_id: str | None) -> None:
        with self.connection() as db:
            db.execute(
                "INSERT INTO AppState (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (ACTIVE_FARM_KEY, farm_id),
            )
