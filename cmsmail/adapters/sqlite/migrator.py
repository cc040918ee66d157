"""
Forward-only SQL migrations.

Migration files live in one directory and are named ``NNNN_description.sql``.
Each is applied once, in filename order, and recorded in ``_migrations``.
Everything below a ``-- Down`` marker is the manual rollback and is never run.
"""

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

DOWN_MARKER = "-- Down"


class SQLiteMigrator:
    def __init__(self, db_path: str, migrations_dir: str):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS _migrations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                filename TEXT UNIQUE NOT NULL,
                applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
            );
        """)
        return conn

    def available(self) -> list[str]:
        return sorted(p.name for p in self.migrations_dir.glob("*.sql"))

    def applied(self) -> list[str]:
        conn = self._connect()
        try:
            rows = conn.execute("SELECT filename FROM _migrations ORDER BY filename").fetchall()
        finally:
            conn.close()
        return [r[0] for r in rows]

    def pending_migrations(self) -> list[str]:
        done = set(self.applied())
        return [name for name in self.available() if name not in done]

    def run_migrations(self) -> list[str]:
        """Apply every pending migration; returns the filenames applied."""
        pending = self.pending_migrations()
        if not pending:
            logger.info("Database %s is up to date.", self.db_path)
            return []

        conn = self._connect()
        try:
            for name in pending:
                logger.info("Applying migration %s", name)
                self._apply(conn, name)
        finally:
            conn.close()

        logger.info("Applied %d migration(s).", len(pending))
        return pending

    def _apply(self, conn: sqlite3.Connection, name: str) -> None:
        script = (self.migrations_dir / name).read_text(encoding="utf-8")
        up, _, _ = script.partition(DOWN_MARKER)
        try:
            conn.executescript(up)
            conn.execute("INSERT INTO _migrations (filename) VALUES (?)", (name,))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise RuntimeError(f"Migration {name} failed: {e}") from e
