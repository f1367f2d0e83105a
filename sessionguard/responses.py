"""Error responses that never expose diagnostic detail to the client."""

from http import HTTPStatus

from starlette.responses import JSONResponse


def error_response(status_code: int) -> JSONResponse:
    """Return a JSON error whose detail is only the standard status phrase."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": HTTPStatus(status_code).phrase},
    )
