"""SQLite database management for the Compass college store.

Handles connection lifecycle, schema creation, and migrations.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

# Current schema version
SCHEMA_VERSION = 2

# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_SCHEMA_V1 = """
-- One row per institution
CREATE TABLE IF NOT EXISTS colleges (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    name             TEXT NOT NULL UNIQUE,
    acronym          TEXT,
    institution_type TEXT NOT NULL,
    city             TEXT NOT NULL,
    state            TEXT NOT NULL,
    nirf_rank        INTEGER,
    annual_fees      INTEGER,
    website          TEXT,
    created_at       TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Closing ranks per exam, branch and reservation category
CREATE TABLE IF NOT EXISTS cutoffs (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    college_id   INTEGER NOT NULL REFERENCES colleges(id) ON DELETE CASCADE,
    exam         TEXT NOT NULL,
    branch       TEXT NOT NULL,
    category     TEXT NOT NULL,
    closing_rank INTEGER NOT NULL,
    year         INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_colleges_type    ON colleges(institution_type);
CREATE INDEX IF NOT EXISTS idx_colleges_state   ON colleges(state);
CREATE INDEX IF NOT EXISTS idx_cutoffs_exam     ON cutoffs(exam, category);
CREATE INDEX IF NOT EXISTS idx_cutoffs_college  ON cutoffs(college_id);
"""

# ---------------------------------------------------------------------------
# V2: Audit log table (provider attempts, tool calls, gate blocks)
# ---------------------------------------------------------------------------

_SCHEMA_V2 = """
CREATE TABLE IF NOT EXISTS audit_log (
    id              TEXT PRIMARY KEY,
    timestamp       TEXT NOT NULL DEFAULT (datetime('now')),
    action          TEXT NOT NULL,
    tool_name       TEXT,
    tool_input_hash TEXT,
    llm_provider    TEXT,
    model           TEXT,
    duration_ms     REAL,
    status          TEXT NOT NULL DEFAULT 'success',
    error_type      TEXT,
    metadata_json   TEXT
);

CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log(timestamp);
CREATE INDEX IF NOT EXISTS idx_audit_action    ON audit_log(action);
CREATE INDEX IF NOT EXISTS idx_audit_tool      ON audit_log(tool_name);
"""


# Applied in order past the recorded version. V1 is replayed on every open
# since it also creates the ``schema_version`` table.
_MIGRATIONS: tuple[tuple[int, str, str], ...] = (
    (1, _SCHEMA_V1, "colleges and cutoffs"),
    (2, _SCHEMA_V2, "audit_log table"),
)


class DatabaseError(Exception):
    """Raised when database operations fail."""


class CollegeDatabase:
    """SQLite database manager for the college store and audit log.

    Supports both file-based and in-memory (`:memory:`) databases.
    In-memory mode is the default and is used for testing.

    Usage::

        with CollegeDatabase("~/.compass/compass.db") as db:
            db.connection.execute("SELECT COUNT(*) FROM colleges")
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        """The open connection.

        Raises:
            DatabaseError: If :meth:`initialize` has not run yet.
        """
        if self._conn is None:
            raise DatabaseError("Database not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Open the connection and bring the schema up to date. Idempotent."""
        if self._conn is None:
            self._conn = self._open()
            self._migrate()
            logger.info("College database initialized: %s", self._db_path)

    def _open(self) -> sqlite3.Connection:
        # Sync MCP tools run on worker threads; writes are short and committed at once.
        in_memory = self._db_path == ":memory:"
        target = ":memory:"
        if not in_memory:
            db_file = Path(self._db_path).expanduser()
            db_file.parent.mkdir(parents=True, exist_ok=True)
            target = str(db_file)

        conn = sqlite3.connect(target, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        if not in_memory:
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def _migrate(self) -> None:
        conn = self.connection
        conn.executescript(_SCHEMA_V1)
        start = self.get_schema_version()

        for version, ddl, label in _MIGRATIONS:
            if version > max(start, 1):
                conn.executescript(ddl)
                logger.info("Applied schema migration V%d: %s", version, label)

        if start < SCHEMA_VERSION:
            with conn:
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
            logger.info("Schema updated from version %d to %d", start, SCHEMA_VERSION)

    def get_schema_version(self) -> int:
        """Highest recorded schema version, 0 for a fresh file."""
        row = self.connection.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] or 0

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("College database closed")

    def __enter__(self) -> CollegeDatabase:
        self.initialize()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
