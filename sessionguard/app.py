from typing import Annotated, Any
import logging

from fastapi import Body, FastAPI, Request, Response

from sessionguard.config import Settings
from sessionguard.csrf import CSRFMiddleware
from sessionguard.errors import SessionError
from sessionguard.responses import error_response
from sessionguard.session_middleware import SessionMiddleware
from sessionguard.sessions import SessionStore

logger = logging.getLogger(__name__)


def bootstrap_server(app: FastAPI, settings: Settings) -> FastAPI:
    store = SessionStore(
        settings.database_url,
        max_age=settings.session_max_age,
        secure_cookies=settings.secure_cookies,
    )

    # Store settings and the session store in app state for routes to access
    app.state.settings = settings
    app.state.store = store

    # Starlette runs the last registered middleware first: the session must
    # exist before the CSRF guard asks for it.
    # Note: type: ignore[arg-type] is needed due to a known issue with Starlette's
    # middleware typing in the ty type checker. See:
    # https://github.com/astral-sh/ty/issues/1635
    app.add_middleware(
        CSRFMiddleware,  # type: ignore[arg-type]
        store=store,
        cookie_name=settings.cookie_name,
        secret_length=settings.secret_length,
    )
    app.add_middleware(
        SessionMiddleware,  # type: ignore[arg-type]
        store=store,
        cookie_name=settings.cookie_name,
    )

    @app.get("/health")
    def health() -> dict[str, str]:  # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    @app.get("/session")
    def read_session(request: Request) -> dict[str, str]:  # pyright: ignore[reportUnusedFunction]
        session = store.get(request, settings.cookie_name)
        return {
            "created_at": session.created_at.to_iso8601_string(),
            "expires_at": session.expires_at.to_iso8601_string(),
        }

    @app.post("/echo")
    def echo(  # pyright: ignore[reportUnusedFunction]
        payload: Annotated[dict[str, Any] | None, Body()] = None,
    ) -> dict[str, Any]:
        return {"success": True, "received": payload or {}}

    @app.post("/logout", response_model=None)
    def post_logout(request: Request) -> Response:  # pyright: ignore[reportUnusedFunction]
        session = store.get(request, settings.cookie_name)
        try:
            store.delete(session.id)
        except SessionError as e:
            logger.error("Session deletion failed: %s", e)
            return error_response(e.status_code)

        response = Response(status_code=204)
        response.delete_cookie(key=settings.cookie_name)
        return response

    return app
