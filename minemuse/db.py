"""SQLite database schema and query helpers."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from pathlib import Path

from minemuse.models import ContentPackage, RunResult
from minemuse.serialize import to_jsonable

SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS pipeline_runs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    started_at TEXT NOT NULL,
    finished_at TEXT,
    status TEXT NOT NULL DEFAULT 'running',
    topics_generated INTEGER NOT NULL DEFAULT 0,
    content_created INTEGER NOT NULL DEFAULT 0,
    platforms_generated INTEGER NOT NULL DEFAULT 0,
    errors TEXT NOT NULL DEFAULT '[]',
    processing_seconds REAL NOT NULL DEFAULT 0.0,
    llm_tokens_used INTEGER NOT NULL DEFAULT 0,
    llm_cost_usd REAL NOT NULL DEFAULT 0.0
);

CREATE TABLE IF NOT EXISTS content_packages (
    id TEXT PRIMARY KEY,
    run_id INTEGER,
    topic_id TEXT NOT NULL,
    title TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'draft',
    quality_score REAL,
    payload TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (run_id) REFERENCES pipeline_runs(id)
);

CREATE INDEX IF NOT EXISTS idx_content_packages_run_id ON content_packages(run_id);
"""


def get_connection(db_path: str) -> sqlite3.Connection:
    """Get a SQLite connection with WAL mode enabled."""
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = sqlite3.Row
    conn.executescript(SCHEMA_SQL)
    return conn


def init_db(db_path: str) -> None:
    """Create all tables and set schema version."""
    conn = get_connection(db_path)
    try:
        conn.execute(
            "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )
        conn.commit()
    finally:
        conn.close()


def _dt_str(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return dt.isoformat()


# --- PipelineRun helpers ---


def insert_run(conn: sqlite3.Connection, started_at: datetime | None = None) -> int:
    cur = conn.execute(
        "INSERT INTO pipeline_runs (started_at, status) VALUES (?, ?)",
        (_dt_str(started_at or datetime.utcnow()), "running"),
    )
    conn.commit()
    return cur.lastrowid


def run_status(result: RunResult) -> str:
    if result.cancelled:
        return "cancelled"
    return "completed" if result.success else "failed"


def finish_run(conn: sqlite3.Connection, run_id: int, result: RunResult) -> None:
    meta = result.metadata
    conn.execute(
        """UPDATE pipeline_runs SET
           finished_at = ?, status = ?, topics_generated = ?,
           content_created = ?, platforms_generated = ?, errors = ?,
           processing_seconds = ?, llm_tokens_used = ?, llm_cost_usd = ?
           WHERE id = ?""",
        (
            _dt_str(datetime.utcnow()),
            run_status(result),
            meta.topics_generated,
            meta.content_created,
            meta.platforms_generated,
            json.dumps(result.errors),
            meta.total_processing_time,
            meta.llm_tokens_used,
            meta.llm_cost_usd,
            run_id,
        ),
    )
    conn.commit()


def get_recent_runs(conn: sqlite3.Connection, limit: int = 10) -> list[dict]:
    """Fetch recent pipeline runs for stats display."""
    rows = conn.execute(
        "SELECT * FROM pipeline_runs ORDER BY started_at DESC LIMIT ?", (limit,)
    ).fetchall()
    runs = []
    for row in rows:
        run = dict(row)
        run["errors"] = json.loads(run["errors"])
        runs.append(run)
    return runs


# --- ContentPackage helpers ---


def insert_package(conn: sqlite3.Connection, package: ContentPackage, run_id: int | None = None) -> str:
    """Store a package as JSON. Re-inserting the same id replaces it."""
    conn.execute(
        """INSERT OR REPLACE INTO content_packages
           (id, run_id, topic_id, title, status, quality_score, payload, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            package.id,
            run_id,
            package.topic.id,
            package.long_form.title,
            package.status,
            package.quality.overall if package.quality else None,
            json.dumps(to_jsonable(package)),
            _dt_str(package.created_at),
            _dt_str(package.updated_at),
        ),
    )
    conn.commit()
    return package.id


def get_packages_by_run(conn: sqlite3.Connection, run_id: int) -> list[dict]:
    """Stored package payloads for one run, oldest first."""
    rows = conn.execute(
        "SELECT payload FROM content_packages WHERE run_id = ? ORDER BY created_at", (run_id,)
    ).fetchall()
    return [json.loads(row["payload"]) for row in rows]
