"""Success and error envelopes shared by routes and exception handlers."""

from datetime import datetime, timezone
from time import perf_counter
from typing import Any

from fastapi import Request

DEFAULT_ERROR_MESSAGE = "Erro interno do servidor."


def _request_context(request: Request) -> dict[str, Any]:
    return {
        "method": request.method.upper(),
        "path": request.url.path,
        "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    }


def _elapsed_ms(request: Request) -> int | None:
    started_at = getattr(request.state, "request_started_at", None)
    if started_at is None:
        return None
    return int((perf_counter() - started_at) * 1000)


def success(request: Request, data: Any) -> dict[str, Any]:
    """`{request_id, data, meta}` with the request context and timing as `meta`."""
    return {
        "request_id": getattr(request.state, "request_id", ""),
        "data": data,
        "meta": {**_request_context(request), "process_ms": _elapsed_ms(request)},
    }


def error_payload(
    request: Request,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """`{request_id, error: {code, message, details}}`."""
    return {
        "request_id": getattr(request.state, "request_id", ""),
        "error": {
            "code": code,
            "message": message,
            "details": {**_request_context(request), **(details or {})},
        },
    }
