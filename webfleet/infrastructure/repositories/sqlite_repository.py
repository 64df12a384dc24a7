"""
SQLite Repository

Architectural Intent:
- Persistent state store using SQLite (stdlib, zero external deps)
- Stores the trigger fingerprint per environment, the resources apply
  created, and the history of configuration runs
- Implements StateStorePort

Design Decisions:
- Single database file at configurable path (default: webfleet.db)
- Auto-creates tables on first use
- Thread-safe via sqlite3's check_same_thread=False
- Timestamps stored as ISO 8601 strings
"""

from __future__ import annotations
import sqlite3
import json
import logging
from datetime import datetime, UTC
from typing import Optional

from webfleet.domain.entities.configuration_run import ConfigurationRun
from webfleet.domain.errors import ConfigurationError
from webfleet.domain.value_objects.address_fingerprint import AddressFingerprint

logger = logging.getLogger(__name__)


class SQLiteRepository:
    """Persistent storage using SQLite."""

    def __init__(self, db_path: str = "webfleet.db"):
        self._db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None

    def connect(self) -> None:
        """Open database connection and create tables.

        Raises:
            ConfigurationError: the database file cannot be opened or created.
        """
        try:
            self._conn = sqlite3.connect(
                self._db_path,
                check_same_thread=False,
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.row_factory = sqlite3.Row
            self._create_tables()
        except sqlite3.Error as e:
            self.close()
            raise ConfigurationError(
                f"Cannot open state database {self._db_path}: {e}"
            ) from e
        logger.debug("SQLite repository connected: %s", self._db_path)

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "SQLiteRepository":
        self.connect()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def _db(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("SQLiteRepository is not connected")
        return self._conn

    def _create_tables(self) -> None:
        """Create tables if they don't exist."""
        self._db.executescript("""
            CREATE TABLE IF NOT EXISTS trigger_fingerprints (
                environment TEXT PRIMARY KEY,
                fingerprint TEXT NOT NULL,
                recorded_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS resources (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                environment TEXT NOT NULL,
                kind TEXT NOT NULL,
                name TEXT NOT NULL,
                resource_id TEXT NOT NULL,
                recorded_at TEXT NOT NULL,
                UNIQUE (environment, kind, name)
            );

            CREATE TABLE IF NOT EXISTS configuration_runs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                environment TEXT NOT NULL,
                fingerprint TEXT NOT NULL,
                status TEXT NOT NULL,
                host_count INTEGER NOT NULL,
                steps TEXT DEFAULT '[]',
                error_message TEXT,
                recorded_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_resources_env ON resources(environment);
            CREATE INDEX IF NOT EXISTS idx_runs_env ON configuration_runs(environment);
        """)

    # -- Trigger fingerprints ------------------------------------------------

    def get_fingerprint(self, environment: str) -> Optional[AddressFingerprint]:
        row = self._db.execute(
            "SELECT fingerprint FROM trigger_fingerprints WHERE environment = ?",
            (environment,),
        ).fetchone()
        return AddressFingerprint(row["fingerprint"]) if row else None

    def record_fingerprint(
        self, environment: str, fingerprint: AddressFingerprint
    ) -> None:
        self._db.execute(
            """INSERT INTO trigger_fingerprints (environment, fingerprint, recorded_at)
               VALUES (?, ?, ?)
               ON CONFLICT(environment) DO UPDATE SET
                   fingerprint = excluded.fingerprint,
                   recorded_at = excluded.recorded_at""",
            (environment, str(fingerprint), datetime.now(UTC).isoformat()),
        )
        self._db.commit()

    def clear_fingerprint(self, environment: str) -> None:
        self._db.execute(
            "DELETE FROM trigger_fingerprints WHERE environment = ?", (environment,)
        )
        self._db.commit()

    # -- Resources -----------------------------------------------------------

    def record_resource(
        self, environment: str, kind: str, name: str, resource_id: str
    ) -> None:
        """Remember a resource apply created or adopted; re-recording updates the id."""
        self._db.execute(
            """INSERT INTO resources (environment, kind, name, resource_id, recorded_at)
               VALUES (?, ?, ?, ?, ?)
               ON CONFLICT(environment, kind, name) DO UPDATE SET
                   resource_id = excluded.resource_id,
                   recorded_at = excluded.recorded_at""",
            (environment, kind, name, resource_id, datetime.now(UTC).isoformat()),
        )
        self._db.commit()

    def get_resources(self, environment: str) -> list[dict]:
        rows = self._db.execute(
            "SELECT * FROM resources WHERE environment = ? ORDER BY id",
            (environment,),
        ).fetchall()
        return [dict(r) for r in rows]

    def forget_resource(self, environment: str, kind: str, name: str) -> bool:
        """Drop one resource record. Returns whether it existed."""
        cursor = self._db.execute(
            "DELETE FROM resources WHERE environment = ? AND kind = ? AND name = ?",
            (environment, kind, name),
        )
        self._db.commit()
        return cursor.rowcount > 0

    def forget_resources(self, environment: str) -> int:
        """Drop every resource record of an environment. Returns the count."""
        cursor = self._db.execute(
            "DELETE FROM resources WHERE environment = ?", (environment,)
        )
        self._db.commit()
        return cursor.rowcount

    # -- Configuration runs --------------------------------------------------

    def record_configuration_run(self, run: ConfigurationRun) -> int:
        """Record a finished configuration run. Returns the run ID."""
        cursor = self._db.execute(
            """INSERT INTO configuration_runs
               (environment, fingerprint, status, host_count, steps, error_message, recorded_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                run.environment,
                str(run.fingerprint),
                run.status.name,
                run.host_count,
                json.dumps(list(run.completed_steps)),
                run.error_message,
                datetime.now(UTC).isoformat(),
            ),
        )
        self._db.commit()
        return cursor.lastrowid

    def get_configuration_runs(
        self,
        environment: Optional[str] = None,
        limit: int = 50,
    ) -> list[dict]:
        """Get configuration run history, newest first."""
        if environment:
            rows = self._db.execute(
                "SELECT * FROM configuration_runs WHERE environment = ? ORDER BY id DESC LIMIT ?",
                (environment, limit),
            ).fetchall()
        else:
            rows = self._db.execute(
                "SELECT * FROM configuration_runs ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        runs = []
        for row in rows:
            entry = dict(row)
            entry["steps"] = json.loads(entry["steps"] or "[]")
            runs.append(entry)
        return runs
