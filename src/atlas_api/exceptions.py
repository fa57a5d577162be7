"""Exception handlers that render every failure as the error envelope."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from atlas_api.errors import AtlasError, ConfigurationError, UnknownError
from atlas_api.utils.response import DEFAULT_ERROR_MESSAGE, error_payload

logger = logging.getLogger(__name__)

# status -> (error code, pt-BR message) for protocol-level errors raised without a code.
HTTP_ERROR_DEFAULTS: dict[int, tuple[str, str]] = {
    status.HTTP_400_BAD_REQUEST: ("BAD_REQUEST", "Requisição inválida."),
    status.HTTP_401_UNAUTHORIZED: ("UNAUTHORIZED", "Não autenticado ou sessão expirada."),
    status.HTTP_403_FORBIDDEN: ("FORBIDDEN", "Acesso negado."),
    status.HTTP_404_NOT_FOUND: ("NOT_FOUND", "Recurso não encontrado."),
    status.HTTP_405_METHOD_NOT_ALLOWED: ("METHOD_NOT_ALLOWED", "Método não permitido."),
    status.HTTP_409_CONFLICT: ("CONFLICT", "Conflito com o estado atual dos dados."),
    status.HTTP_422_UNPROCESSABLE_CONTENT: ("VALIDATION_ERROR", "Dados inválidos."),
}
_FALLBACK_HTTP_ERROR = ("HTTP_ERROR", "Falha ao processar a requisição.")


def _error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, object] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_payload(
            request,
            code=code,
            message=message,
            details={"status_code": status_code, "reason": code.lower(), **(details or {})},
        ),
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """Protocol errors, including router 404/405 and `HTTPException(detail={code, message, details})`."""
    code, message = HTTP_ERROR_DEFAULTS.get(exc.status_code, _FALLBACK_HTTP_ERROR)
    details: dict[str, object] = {}
    # String details ("Not Found", "unauthorized") are replaced by the localized default.
    if isinstance(exc.detail, dict):
        code = str(exc.detail.get("code") or code)
        message = str(exc.detail.get("message") or message)
        extra = exc.detail.get("details")
        if isinstance(extra, dict):
            details.update(extra)
    return _error_response(request, exc.status_code, code, message, details, getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Request body and query failures, one entry per field."""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg"),
            "type": error.get("type"),
        }
        for error in exc.errors()
    ]
    code, message = HTTP_ERROR_DEFAULTS[status.HTTP_422_UNPROCESSABLE_CONTENT]
    return _error_response(request, status.HTTP_422_UNPROCESSABLE_CONTENT, code, message, {"errors": errors})


async def domain_exception_handler(request: Request, exc: AtlasError):
    """Named domain failures keep their code and status; server-side ones get a generic message."""
    if isinstance(exc, (ConfigurationError, UnknownError)):
        logger.error("request failed with %s: %s", exc.code, exc)
        return _error_response(request, exc.status_code, exc.code, DEFAULT_ERROR_MESSAGE)
    return _error_response(request, exc.status_code, exc.code, exc.message, exc.details())


async def unexpected_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        DEFAULT_ERROR_MESSAGE,
        {"reason": "unexpected_exception"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.exception_handler(AtlasError)(domain_exception_handler)
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(Exception)(unexpected_exception_handler)
