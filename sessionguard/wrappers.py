"""Response wrapper shared by the middlewares."""

from starlette.responses import Response


class PendingResponse(Response):
    """Headers and cookies for a response that does not exist yet.

    Middlewares write to a ``PendingResponse`` before calling the downstream
    handler (or before building an error response), then copy what they
    wrote onto the real response with ``apply``. It reuses Starlette's
    ``Response`` so ``set_cookie`` and ``headers`` behave exactly as they do
    on the final response.
    """

    # Headers Response.__init__ fills in for the empty body
    _BODY_HEADERS = {b"content-length", b"content-type"}

    def __init__(self) -> None:
        super().__init__(status_code=200)

    def apply(self, response: Response) -> Response:
        """Copy collected headers and cookies onto ``response``.

        ``Set-Cookie`` values are appended, every other header replaces any
        value the downstream handler set.
        """
        for name, value in self.raw_headers:
            if name in self._BODY_HEADERS:
                continue
            if name == b"set-cookie":
                response.raw_headers.append((name, value))
            else:
                response.headers[name.decode("latin-1")] = value.decode("latin-1")
        return response
