"""HTTP middleware: request correlation and timing."""

import logging
import re
import uuid
from time import perf_counter

from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"
# Accept a caller's correlation id only when it is short and printable.
_FORWARDED_ID = re.compile(r"^[A-Za-z0-9._-]{8,64}$")


def _request_id(request: Request) -> str:
    forwarded = request.headers.get(REQUEST_ID_HEADER, "")
    if _FORWARDED_ID.match(forwarded):
        return forwarded
    return uuid.uuid4().hex


async def correlate_request(request: Request, call_next):
    """Tag the request with an id, then echo it and the elapsed time on the response."""
    request.state.request_id = _request_id(request)
    request.state.request_started_at = perf_counter()
    response = await call_next(request)
    elapsed_ms = (perf_counter() - request.state.request_started_at) * 1000
    response.headers[REQUEST_ID_HEADER] = request.state.request_id
    response.headers["X-Process-Time-Ms"] = f"{elapsed_ms:.2f}"
    logger.debug(
        "%s %s -> %s in %.2fms request_id=%s",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        request.state.request_id,
    )
    return response


def register_middlewares(app: FastAPI) -> None:
    app.middleware("http")(correlate_request)
