"""Lightweight SQL migrations runner.

Applies .sql files in lexical order from the package's `migrations/`
directory. Skips rollback files and records applied filenames in the
`schema_migration` table so each file is applied once per database.
Production environments may use Alembic or the platform's mechanism instead.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

_JOURNAL_DDL = """
CREATE TABLE IF NOT EXISTS schema_migration (
    filename TEXT PRIMARY KEY,
    applied_at TEXT NOT NULL
)
"""


def _iter_sql_files(root: Path) -> Iterable[Path]:
    for p in sorted(root.glob("*.sql")):
        # Skip rollback scripts in forward runs
        if "rollback" in p.name.lower():
            continue
        yield p


def split_statements(sql: str) -> List[str]:
    """Split a migration script into statements.

    Comment lines are dropped and BEGIN/COMMIT are ignored since the runner
    already wraps each file in a transaction. Statements must not contain
    literal semicolons.
    """
    lines = [ln for ln in sql.splitlines() if not ln.strip().startswith("--")]
    statements: List[str] = []
    for stmt in "\n".join(lines).split(";"):
        s = stmt.strip()
        if not s or s.upper() in {"BEGIN", "COMMIT", "END"}:
            continue
        statements.append(s)
    return statements


def _applied(conn: Connection) -> set[str]:
    rows = conn.execute(sql_text("SELECT filename FROM schema_migration")).fetchall()
    return {str(r[0]) for r in rows}


def apply_migrations(engine: Engine, migrations_dir: str | os.PathLike[str] | None = None) -> List[str]:
    """Apply pending migrations and return the filenames applied by this call."""
    root = Path(migrations_dir) if migrations_dir is not None else MIGRATIONS_DIR
    if not root.exists():
        logger.warning("migrations_dir_missing path=%s", str(root))
        return []

    with engine.begin() as conn:
        conn.execute(sql_text(_JOURNAL_DDL))
        applied = _applied(conn)

    newly_applied: List[str] = []
    for sql_path in _iter_sql_files(root):
        fname = sql_path.name
        if fname in applied:
            continue
        statements = split_statements(sql_path.read_text(encoding="utf-8"))
        if not statements:
            continue
        with engine.begin() as conn:
            for stmt in statements:
                conn.exec_driver_sql(stmt)
            conn.execute(
                sql_text("INSERT INTO schema_migration (filename, applied_at) VALUES (:f, :at)"),
                {
                    "f": fname,
                    # ISO-8601 UTC without fractional seconds (e.g., 2024-01-01T00:00:00Z)
                    "at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
                },
            )
        logger.info("migration_applied file=%s statements=%s", fname, len(statements))
        newly_applied.append(fname)
    return newly_applied
