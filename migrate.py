"""Apply the numbered SQL files in migrations/ to a SQLite database.

Each file is named ``NNNN_description.sql``; the four-digit prefix is its
schema version. The applied version lives in ``PRAGMA user_version`` and
each file is expected to bump it.
"""

import logging
import sqlite3
from contextlib import closing
from pathlib import Path

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

logger = logging.getLogger(__name__)


def pending_migrations(current_version: int) -> list[Path]:
    """Return migration files newer than ``current_version``, oldest first."""
    return [
        path
        for path in sorted(MIGRATIONS_DIR.glob("*.sql"))
        if int(path.stem[:4]) > current_version
    ]


def migrate(db_path: str) -> int:
    """Bring the database at ``db_path`` up to the latest schema.

    Returns:
        The schema version after migrating
    """
    with closing(sqlite3.connect(db_path)) as conn:
        (version,) = conn.execute("PRAGMA user_version").fetchone()
        for path in pending_migrations(version):
            logger.info("applying migration %s", path.name)
            conn.executescript(path.read_text())
        (version,) = conn.execute("PRAGMA user_version").fetchone()
    return version


if __name__ == "__main__":
    import os

    migrate(os.environ.get("DATABASE_URL", "sessions.db"))
