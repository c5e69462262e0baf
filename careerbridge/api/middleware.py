"""
HTTP middleware and global exception handlers.

Provides correlation IDs, request logging, and the {"error": ...} response
shape used by every endpoint.
"""

import logging
import time
from uuid import UUID, uuid4

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Extract or generate correlation ID from request.

    - Accepts X-Correlation-ID header as string
    - Converts to UUID (or generates new one)
    - Stores as UUID in request.state.correlation_id
    - Echoes back in response headers
    """

    async def dispatch(self, request: Request, call_next):
        header_value = request.headers.get(CORRELATION_HEADER)

        if header_value:
            try:
                correlation_id = UUID(header_value)
            except ValueError:
                logger.warning("Invalid correlation ID format, generating new")
                correlation_id = uuid4()
        else:
            correlation_id = uuid4()

        request.state.correlation_id = correlation_id

        response = await call_next(request)

        response.headers[CORRELATION_HEADER] = str(correlation_id)

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log method, path, status and duration of each request.

    Query strings are never logged; OAuth callbacks carry codes in them.
    """

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        correlation_id = getattr(request.state, "correlation_id", None)

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"({duration_ms:.2f}ms)",
            extra={"correlation_id": str(correlation_id) if correlation_id else None},
        )
        return response


def add_exception_handlers(app: FastAPI):
    """Add global exception handlers to FastAPI app."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Render HTTP errors as {"error": detail}."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request body validation errors."""
        logger.info(f"Validation error on {request.url.path}: {len(exc.errors())} issue(s)")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": "Invalid request",
                "details": jsonable_encoder(
                    [{"loc": e.get("loc"), "msg": e.get("msg")} for e in exc.errors()]
                ),
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal server error",
                "correlation_id": str(getattr(request.state, "correlation_id", "")) or None,
            },
        )
