"""Server-side sessions stored in SQLite and referenced by an opaque cookie."""

import logging
import re
import sqlite3
import uuid
from typing import Self

import pendulum
from starlette.requests import Request
from starlette.responses import Response

from sessionguard.config import DEFAULT_SESSION_MAX_AGE
from sessionguard.db import get_connection
from sessionguard.errors import SessionError

logger = logging.getLogger(__name__)

# RFC 6265 cookie-name token characters
COOKIE_NAME_PATTERN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")


def to_db_timestamp(dt: pendulum.DateTime) -> str:
    """Format a timestamp for the sessions table.

    Fixed width with microseconds, so SQL string comparison orders
    timestamps correctly.
    """
    return dt.in_timezone("UTC").strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class Session:
    """A session record and its attribute values.

    Values are raw bytes keyed by name. ``is_new`` stays True until the
    session has been saved once.
    """

    id: str
    cookie_name: str
    created_at: pendulum.DateTime
    expires_at: pendulum.DateTime
    values: dict[str, bytes]
    is_new: bool

    def __init__(
        self,
        store: "SessionStore",
        cookie_name: str,
        id: str,
        created_at: pendulum.DateTime,
        expires_at: pendulum.DateTime,
        values: dict[str, bytes] | None = None,
        is_new: bool = True,
    ):
        self.store = store
        self.cookie_name = cookie_name
        self.id = id
        self.created_at = created_at
        self.expires_at = expires_at
        self.values = values if values is not None else {}
        self.is_new = is_new

    def get_value(self, key: str) -> bytes | None:
        return self.values.get(key)

    def set_value(self, key: str, value: bytes) -> None:
        self.values[key] = value

    def save(self, request: Request, response: Response) -> None:
        """Persist the session and write its cookie to ``response``.

        Raises:
            SessionError: If the session could not be written
        """
        self.store.save(self, response)

    @classmethod
    def from_db(cls, store: "SessionStore", cookie_name: str, row: sqlite3.Row, values: dict[str, bytes]) -> Self:
        """Create Session from a sessions row and its values."""
        created_at = pendulum.parse(row["created_at"])
        expires_at = pendulum.parse(row["expires_at"])
        if not isinstance(created_at, pendulum.DateTime) or not isinstance(expires_at, pendulum.DateTime):
            raise ValueError(f"Expected DateTime timestamps for session {row['id']}")

        return cls(
            store=store,
            cookie_name=cookie_name,
            id=row["id"],
            created_at=created_at,
            expires_at=expires_at,
            values=values,
            is_new=False,
        )


class SessionStore:
    """SQLite-backed session store.

    Sessions are cached on ``request.state`` per cookie name, so every
    middleware and handler in one request sees the same ``Session`` object
    and a session created earlier in the request is not created twice.
    """

    def __init__(self, db_path: str, max_age: int = DEFAULT_SESSION_MAX_AGE, secure_cookies: bool = False):
        self.db_path = db_path
        self.max_age = max_age
        self.secure_cookies = secure_cookies

    def get(self, request: Request, cookie_name: str) -> Session:
        """Return the session for ``cookie_name``, creating one if needed.

        Args:
            request: The current request
            cookie_name: Name of the session cookie

        Returns:
            The existing session, or a new unsaved session if the cookie is
            absent, unknown or expired

        Raises:
            SessionError: If the cookie name is invalid or the database fails
        """
        if not cookie_name or not COOKIE_NAME_PATTERN.fullmatch(cookie_name):
            raise SessionError(f"invalid session cookie name: {cookie_name!r}")

        if not hasattr(request.state, "_session_cache"):
            request.state._session_cache = {}
        cache: dict[str, Session] = request.state._session_cache

        if cookie_name not in cache:
            session = None
            session_id = request.cookies.get(cookie_name)
            if session_id:
                session = self.load(session_id, cookie_name)
                if session is None:
                    logger.info("session cookie %s does not match a live session", cookie_name)
            cache[cookie_name] = session if session is not None else self.new(cookie_name)

        return cache[cookie_name]

    def new(self, cookie_name: str) -> Session:
        """Create an unsaved session."""
        now = pendulum.now("UTC")
        return Session(
            store=self,
            cookie_name=cookie_name,
            id=str(uuid.uuid4()),
            created_at=now,
            expires_at=now.add(seconds=self.max_age),
        )

    def load(self, session_id: str, cookie_name: str) -> Session | None:
        """Load a live session by ID.

        Returns:
            The session, or None if it does not exist or has expired

        Raises:
            SessionError: If the database cannot be read
        """
        conn = None
        try:
            conn = get_connection(self.db_path)
            row = conn.execute(
                "SELECT id, created_at, expires_at FROM sessions WHERE id = ?",
                (session_id,),
            ).fetchone()
            if row is None:
                return None

            values = {
                value_row["key"]: bytes(value_row["value"])
                for value_row in conn.execute(
                    "SELECT key, value FROM session_values WHERE session_id = ?",
                    (session_id,),
                )
            }
        except sqlite3.Error as e:
            raise SessionError(f"Failed to load session: {e}") from e
        finally:
            if conn:
                conn.close()

        try:
            session = Session.from_db(self, cookie_name, row, values)
        except ValueError as e:
            raise SessionError(f"Undecodable session record: {e}") from e

        if session.expires_at <= pendulum.now("UTC"):
            return None
        return session

    def save(self, session: Session, response: Response) -> None:
        """Write the session and its values, then set the session cookie.

        The expiry is fixed when the session is created; saving does not
        extend it. Writing a new session also purges expired ones, so the
        table stays bounded by the number of live sessions.

        Raises:
            SessionError: If session persistence fails in database
        """
        conn = None
        try:
            conn = get_connection(self.db_path)
            with conn:
                if session.is_new:
                    self._delete_expired(conn)
                conn.execute(
                    "INSERT INTO sessions (id, created_at, expires_at) VALUES (?, ?, ?) "
                    "ON CONFLICT (id) DO NOTHING",
                    (
                        session.id,
                        to_db_timestamp(session.created_at),
                        to_db_timestamp(session.expires_at),
                    ),
                )
                conn.execute("DELETE FROM session_values WHERE session_id = ?", (session.id,))
                conn.executemany(
                    "INSERT INTO session_values (session_id, key, value) VALUES (?, ?, ?)",
                    [(session.id, key, value) for key, value in session.values.items()],
                )
        except sqlite3.Error as e:
            raise SessionError(f"Failed to save session: {e}") from e
        finally:
            if conn:
                conn.close()

        session.is_new = False

        remaining = (session.expires_at - pendulum.now("UTC")).total_seconds()
        response.set_cookie(
            key=session.cookie_name,
            value=session.id,
            max_age=max(int(remaining), 0),
            httponly=True,
            secure=self.secure_cookies,
            samesite="lax",
        )

    def purge_expired(self) -> int:
        """Delete every expired session and its values.

        Returns:
            Number of sessions removed

        Raises:
            SessionError: If the database cannot be written
        """
        conn = None
        try:
            conn = get_connection(self.db_path)
            with conn:
                return self._delete_expired(conn)
        except sqlite3.Error as e:
            raise SessionError(f"Failed to purge expired sessions: {e}") from e
        finally:
            if conn:
                conn.close()

    def _delete_expired(self, conn: sqlite3.Connection) -> int:
        # session_values rows go with their session (ON DELETE CASCADE)
        cursor = conn.execute(
            "DELETE FROM sessions WHERE expires_at <= ?",
            (to_db_timestamp(pendulum.now("UTC")),),
        )
        if cursor.rowcount:
            logger.info("purged %d expired sessions", cursor.rowcount)
        return cursor.rowcount

    def delete(self, session_id: str) -> None:
        """Delete a session and its values.

        Raises:
            SessionError: If the database cannot be written
        """
        conn = None
        try:
            conn = get_connection(self.db_path)
            with conn:
                conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
        except sqlite3.Error as e:
            raise SessionError(f"Failed to delete session: {e}") from e
        finally:
            if conn:
                conn.close()
