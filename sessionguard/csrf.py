"""CSRF protection middleware.

Tokens travel only in the ``X-CSRF-Token`` request and response headers;
clients echo the latest value they received on every state-changing
request. Handlers need no changes.

The session secret is never rotated. Each response instead carries the
secret masked with a fresh one-time pad::

    token = base64(otp || (otp ^ secret))

The xor is not encryption. It gives a different wire value on every
response (protection against the TLS BREACH attack) without changing the
underlying value, so client and server never desynchronize. Anyone who
captures a token can recover the secret and replay it, but only for the
lifetime of the session. The scheme is the one Rails and Django use.

Security assumptions:
- all communication happens over TLS
- sessions are opaque to the user (stored server side), otherwise the
  secret leaks
- sessions are tamper resistant
- state-changing requests never use GET, HEAD or TRACE
"""

import logging
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from sessionguard.errors import (
    GuardError,
    LengthMismatchError,
    RandomnessError,
    SessionError,
    TokenMismatchError,
)
from sessionguard.masking import DEFAULT_SECRET_LENGTH, generate_secret, mask_token, tokens_match, unmask_token
from sessionguard.responses import error_response
from sessionguard.sessions import Session, SessionStore
from sessionguard.wrappers import PendingResponse

# Request and response header carrying the masked token
CSRF_HEADER = "X-CSRF-Token"

# Session key holding the raw secret
CSRF_SESSION_KEY = "csrf_secret"

# HTTP methods that are safe (read-only, no CSRF needed)
CSRF_SAFE_METHODS = {"GET", "HEAD", "TRACE"}

logger = logging.getLogger(__name__)


class CSRFMiddleware(BaseHTTPMiddleware):
    """Middleware that issues a masked CSRF token and validates it on unsafe methods.

    A fresh token is set on every response, including safe requests and
    requests rejected for a bad token, so the client always holds a usable
    token for its next request. Failures before the token is issued are
    server faults (500) and the response carries no token.
    """

    def __init__(
        self,
        app: ASGIApp,
        store: SessionStore,
        cookie_name: str,
        secret_length: int = DEFAULT_SECRET_LENGTH,
    ):
        super().__init__(app)
        if secret_length <= 0:
            raise ValueError(f"secret_length must be positive, got {secret_length}")
        self.store = store
        self.cookie_name = cookie_name
        self.secret_length = secret_length

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Issue a fresh token, then validate the client's token if required."""
        pending = PendingResponse()

        # Everything up to setting the header can only fail because of a
        # server-side problem or an implementation bug.
        try:
            session = self.store.get(request, self.cookie_name)
            secret = self.ensure_secret(request, session, pending)
            otp = generate_secret(self.secret_length)
            pending.headers[CSRF_HEADER] = mask_token(secret, otp)
        except (SessionError, RandomnessError, LengthMismatchError) as e:
            logger.error("unable to issue CSRF token on %s %s: %s", request.method, request.url.path, e)
            return error_response(e.status_code)

        # Below this point failures are caused by clients behaving
        # incorrectly or by forged requests.
        if request.method not in CSRF_SAFE_METHODS:
            try:
                self.validate(request, secret)
            except GuardError as e:
                logger.warning("rejected %s %s: %s", request.method, request.url.path, e)
                return pending.apply(error_response(e.status_code))

        response = await call_next(request)
        return pending.apply(response)

    def ensure_secret(self, request: Request, session: Session, pending: PendingResponse) -> bytes:
        """Return the session's secret, creating and persisting one if missing.

        Raises:
            SessionError: If the new secret could not be saved
            RandomnessError: If no secret could be generated
        """
        secret = session.get_value(CSRF_SESSION_KEY)
        if isinstance(secret, bytes) and len(secret) == self.secret_length:
            return secret

        secret = generate_secret(self.secret_length)
        session.set_value(CSRF_SESSION_KEY, secret)
        session.save(request, pending)
        return secret

    def validate(self, request: Request, secret: bytes) -> None:
        """Check the request token against the session secret.

        A missing header is treated as an empty token, which fails the size
        check.

        Raises:
            MalformedTokenError: If the token is not base64 or the wrong size
            TokenMismatchError: If the token does not unmask to the secret
        """
        claimed = unmask_token(request.headers.get(CSRF_HEADER, ""), self.secret_length)
        if not tokens_match(secret, claimed):
            # Never log token bytes; a captured token reveals the secret.
            raise TokenMismatchError(f"CSRF token mismatch for session cookie {self.cookie_name}")
