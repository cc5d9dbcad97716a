"""Lightweight SQL migrations runner.

Applies .sql files in lexical order from the `migrations/` directory and
records applied filenames in a `schema_migrations` table so the same file is
never applied twice against one database. Intended for local development and
CI; production environments may use the platform's migration mechanism.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

DEFAULT_MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"


def _iter_sql_files(root: Path) -> Iterable[Path]:
    for p in sorted(root.glob("*.sql")):
        # Skip rollback scripts in forward runs
        if "rollback" in p.name.lower():
            continue
        yield p


def _split_statements(sql: str) -> list[str]:
    # Comment lines go first so a ';' inside a comment never splits a statement
    body = "\n".join(ln for ln in sql.splitlines() if not ln.strip().startswith("--"))
    statements: list[str] = []
    for chunk in body.split(";"):
        stmt = chunk.strip()
        if stmt and stmt.upper() not in {"BEGIN", "COMMIT", "END"}:
            statements.append(stmt)
    return statements


def _exec_sql_compat(conn: Connection, sql: str) -> None:
    """Execute a migration file one statement at a time.

    SQLite's DB-API (pysqlite) does not allow multiple statements in a single
    execute() call, so files are split on ';' for every dialect.
    """
    for stmt in _split_statements(sql):
        conn.exec_driver_sql(stmt)


def _ensure_journal(conn: Connection) -> set[str]:
    conn.exec_driver_sql(
        "CREATE TABLE IF NOT EXISTS schema_migrations ("
        " filename VARCHAR(255) PRIMARY KEY,"
        " applied_at VARCHAR(32) NOT NULL)"
    )
    rows = conn.execute(sql_text("SELECT filename FROM schema_migrations")).fetchall()
    return {str(r[0]) for r in rows}


def apply_migrations(engine: Engine, migrations_dir: str | os.PathLike[str] | None = None) -> list[str]:
    """Apply pending migrations and return the filenames applied in this run."""
    root = Path(migrations_dir) if migrations_dir is not None else DEFAULT_MIGRATIONS_DIR
    if not root.exists():
        logger.warning("migrations.dir_missing path=%s", root)
        return []

    applied_now: list[str] = []
    with engine.begin() as conn:
        applied = _ensure_journal(conn)
        for sql_path in _iter_sql_files(root):
            fname = sql_path.name
            if fname in applied:
                continue
            sql = sql_path.read_text(encoding="utf-8")
            if not sql.strip():
                continue
            try:
                _exec_sql_compat(conn, sql)
            except Exception:
                logger.error("migrations.apply_failed file=%s", fname, exc_info=True)
                raise
            conn.execute(
                sql_text("INSERT INTO schema_migrations (filename, applied_at) VALUES (:f, :at)"),
                {
                    "f": fname,
                    # ISO-8601 UTC without fractional seconds (e.g., 2024-01-01T00:00:00Z)
                    "at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
                },
            )
            applied_now.append(fname)
            logger.info("migrations.applied file=%s", fname)
    return applied_now
