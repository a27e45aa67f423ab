"""Lightweight SQL migrations runner.

Applies .sql files in lexical order from the packaged `migrations/`
directory. Skips rollback files and records applied filenames in a
`schema_migrations` table inside the target database, so a fresh in-memory
database is always migrated while a persistent one is never migrated twice.
Intended for local development and CI; production environments may prefer
Alembic or the platform's migration mechanism.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

_JOURNAL_DDL = (
    "CREATE TABLE IF NOT EXISTS schema_migrations ("
    " filename TEXT PRIMARY KEY,"
    " applied_at TEXT NOT NULL"
    ")"
)


def _iter_sql_files(root: Path) -> Iterable[Path]:
    for p in sorted(root.glob("*.sql")):
        if "rollback" in p.name.lower():
            continue
        yield p


def _split_statements(sql: str) -> Iterator[str]:
    """Yield executable statements from a migration file.

    Comment-only lines are dropped before splitting on ';' because neither
    pysqlite nor psycopg2 accept multiple statements in one execute() call
    through SQLAlchemy. Explicit BEGIN/COMMIT are skipped; the runner owns the
    transaction.
    """
    lines = [ln for ln in sql.splitlines() if not ln.strip().startswith("--")]
    for stmt in "\n".join(lines).split(";"):
        s = stmt.strip()
        if not s:
            continue
        if s.upper() in {"BEGIN", "COMMIT", "END"}:
            continue
        yield s


def _applied(conn: Connection) -> set[str]:
    rows = conn.execute(sql_text("SELECT filename FROM schema_migrations")).fetchall()
    return {str(r[0]) for r in rows}


def apply_migrations(engine: Engine, migrations_dir: str | os.PathLike[str] | None = None) -> list[str]:
    """Apply pending migrations and return the filenames applied by this call."""
    root = Path(migrations_dir) if migrations_dir is not None else MIGRATIONS_DIR
    if not root.exists():
        logger.warning("migrations_dir_missing path=%s", root)
        return []

    applied_now: list[str] = []
    with engine.begin() as conn:
        conn.execute(sql_text(_JOURNAL_DDL))
        already = _applied(conn)
        for sql_path in _iter_sql_files(root):
            fname = sql_path.name
            if fname in already:
                continue
            sql = sql_path.read_text(encoding="utf-8")
            if not sql.strip():
                continue
            try:
                for stmt in _split_statements(sql):
                    conn.exec_driver_sql(stmt)
            except Exception:
                logger.error("migration_failed file=%s", fname, exc_info=True)
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
    if applied_now:
        logger.info("migrations_applied files=%s", applied_now)
    return applied_now
