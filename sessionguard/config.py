"""Runtime configuration read from the environment."""

import os
from dataclasses import dataclass

from sessionguard.masking import DEFAULT_SECRET_LENGTH

# Seven days, matching a typical "remember me" browser session
DEFAULT_SESSION_MAX_AGE = 7 * 24 * 60 * 60

TRUTHY = ("true", "1", "yes")


@dataclass(frozen=True)
class Settings:
    """Settings for the session store and the CSRF guard.

    Attributes:
        cookie_name: Name of the session cookie
        secret_length: Size in bytes of the CSRF secret and of each one-time pad
        database_url: Path to the SQLite database holding sessions
        secure_cookies: Mark the session cookie HTTPS-only
        session_max_age: Session lifetime in seconds
        log_level: Level name passed to logging.basicConfig
    """

    cookie_name: str = "SESSION"
    secret_length: int = DEFAULT_SECRET_LENGTH
    database_url: str = "sessions.db"
    secure_cookies: bool = False
    session_max_age: int = DEFAULT_SESSION_MAX_AGE
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.secret_length <= 0:
            raise ValueError(f"secret_length must be positive, got {self.secret_length}")
        if self.session_max_age <= 0:
            raise ValueError(f"session_max_age must be positive, got {self.session_max_age}")

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        """Build settings from environment variables.

        Unset variables fall back to the dataclass defaults. Secure cookies
        default to False for local development.
        """
        env = os.environ if environ is None else environ
        return cls(
            cookie_name=env.get("SESSION_COOKIE_NAME", cls.cookie_name),
            secret_length=int(env.get("CSRF_SECRET_LENGTH", cls.secret_length)),
            database_url=env.get("DATABASE_URL", cls.database_url),
            secure_cookies=env.get("SECURE_COOKIES", "false").lower() in TRUTHY,
            session_max_age=int(env.get("SESSION_MAX_AGE", cls.session_max_age)),
            log_level=env.get("LOG_LEVEL", cls.log_level).upper(),
        )
