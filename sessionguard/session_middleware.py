"""Session establishment middleware."""

import logging
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from sessionguard.errors import SessionError
from sessionguard.responses import error_response
from sessionguard.sessions import SessionStore

logger = logging.getLogger(__name__)


class SessionMiddleware(BaseHTTPMiddleware):
    """Middleware that makes sure every request has a persisted session.

    The session is loaded (or created) before the downstream handler runs
    and cached for the request. A new session is saved once, after the
    handler, unless something downstream already saved it: behind
    CSRFMiddleware that save stores the CSRF secret too, so a first request
    costs one write and one Set-Cookie. Must be registered outside (run
    before) CSRFMiddleware.
    """

    def __init__(self, app: ASGIApp, store: SessionStore, cookie_name: str):
        super().__init__(app)
        self.store = store
        self.cookie_name = cookie_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Load or create the session, saving it if it is still new."""
        try:
            session = self.store.get(request, self.cookie_name)
        except SessionError as e:
            logger.error("unable to establish session on %s %s: %s", request.method, request.url.path, e)
            return error_response(e.status_code)

        response = await call_next(request)

        if session.is_new:
            try:
                session.save(request, response)
            except SessionError as e:
                logger.error("unable to save session on %s %s: %s", request.method, request.url.path, e)
                return error_response(e.status_code)

        return response
