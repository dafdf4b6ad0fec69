"""
HTTP Middleware
===============

Per-request tracing and access logs, plus the handlers that render every
failure as the ``{status, message, data}`` envelope.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from sistec.core import ApplicationException
from sistec.shared.api.responses import envelope
from sistec.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", "unknown")


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's ``X-Correlation-ID`` or mint one, and echo it back."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = request.state.correlation_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """One log line when a request arrives and one when it finishes or blows up."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        fields = {
            "correlation_id": _correlation_id(request),
            "method": request.method,
            "path": request.url.path,
        }
        logger.info(
            "Request received",
            extra={**fields, "client": request.client.host if request.client else None}
        )
        started = time.perf_counter()

        def elapsed_ms() -> int:
            return int((time.perf_counter() - started) * 1000)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("Request crashed", extra={**fields, "error": str(e), "response_time_ms": elapsed_ms()})
            raise

        logger.info(
            "Request finished",
            extra={**fields, "status_code": response.status_code, "response_time_ms": elapsed_ms()}
        )
        return response


# ========== Exception handlers ==========

async def application_exception_handler(
    request: Request, exc: ApplicationException
) -> JSONResponse:
    level = logger.warning if exc.status_code < 500 else logger.error
    level(
        "Request rejected",
        extra={
            "correlation_id": _correlation_id(request),
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "status_code": exc.status_code,
            "error_message": exc.message,
        }
    )
    return envelope(exc.status_code, exc.message, exc.details or None)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Schema violations in body, path or query become 400, never 422."""
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        errors.append({"field": ".".join(location), "message": error.get("msg", "")})

    first = errors[0]["message"] if errors else "Dados inválidos"
    return envelope(400, f"Dados inválidos: {first}", {"errors": errors})


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last resort for anything that escaped the domain.

    The exception text is echoed to the client only while running in
    development.
    """
    correlation_id = _correlation_id(request)
    logger.error(
        "Unhandled exception",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error_message": str(exc)
        }
    )

    app_settings = getattr(request.app.state, "settings", None)
    data = None
    if getattr(app_settings, "environment", None) == "development":
        data = {"correlation_id": correlation_id, "debug_info": str(exc)}
    return envelope(500, "Erro interno do servidor", data)
