"""Session-bound CSRF protection for Starlette and FastAPI applications."""

from sessionguard.app import bootstrap_server
from sessionguard.config import Settings
from sessionguard.csrf import CSRF_HEADER, CSRFMiddleware
from sessionguard.session_middleware import SessionMiddleware
from sessionguard.sessions import Session, SessionStore

__all__ = [
    "CSRF_HEADER",
    "CSRFMiddleware",
    "Session",
    "SessionMiddleware",
    "SessionStore",
    "Settings",
    "bootstrap_server",
]
