"""Database connection helper."""

import sqlite3


def get_connection(db_path: str) -> sqlite3.Connection:
    """Get a database connection configured for the session store.

    Enables the following SQLite features:
    - Row factory: Allows named column access (row["column_name"])
    - Foreign keys: Session values are removed with their session
    - Busy timeout: Waits up to 5 seconds if database is locked

    Note: WAL mode is set via migration and persists at the database level.

    Args:
        db_path: Path to the SQLite database file

    Returns:
        A SQLite database connection
    """
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row

    # Connection-level PRAGMAs (must be set for each connection)
    # Reference: https://www.sqlite.org/pragma.html#pragma_foreign_keys
    conn.execute("PRAGMA foreign_keys = ON")

    # Concurrent requests share the database file; wait instead of failing
    # immediately when another connection holds the write lock.
    # Reference: https://www.sqlite.org/c3ref/busy_timeout.html
    conn.execute("PRAGMA busy_timeout = 5000")

    return conn
