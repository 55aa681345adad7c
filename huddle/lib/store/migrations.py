"""Numbered .sql schema migrations shipped in huddle/migrations."""

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)


def migrations_dir() -> Path:
    return Path(__file__).resolve().parent.parent.parent / "migrations"


def load_migrations(directory: Path | None = None) -> list[tuple[str, str]]:
    """Read numbered .sql files (001_*.sql, 002_*.sql, ...) in lexical order."""
    directory = directory or migrations_dir()
    if not directory.exists():
        return []
    return [(sql_file.stem, sql_file.read_text()) for sql_file in sorted(directory.glob("*.sql"))]


def migrate(conn: sqlite3.Connection, migs: list[tuple[str, str]]) -> list[str]:
    """Run migrations not yet recorded in _migrations, in order. Returns the names run."""
    conn.execute("CREATE TABLE IF NOT EXISTS _migrations (name TEXT PRIMARY KEY)")
    done = {row[0] for row in conn.execute("SELECT name FROM _migrations")}

    applied = []
    for name, sql in migs:
        if name in done:
            continue
        try:
            conn.executescript(sql)
        except sqlite3.Error as e:
            logger.error(f"Migration '{name}' failed: {e}")
            raise
        conn.execute("INSERT OR IGNORE INTO _migrations (name) VALUES (?)", (name,))
        logger.debug(f"Applied migration {name}")
        applied.append(name)
    return applied
