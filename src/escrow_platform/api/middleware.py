"""HTTP middleware: request correlation, domain error mapping, CORS.

Registration order in ``setup_middleware`` (outermost first at runtime):
    1. RequestContextMiddleware: binds request_id and caller to the log context
    2. ErrorHandlerMiddleware: EscrowPlatformError -> {"error", "message"} JSON
    3. CORSMiddleware: origins come from settings
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING

import structlog
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from escrow_platform.domain.exceptions import (
    ConflictError,
    EscrowPlatformError,
    InvalidCredentialsError,
    InvalidDealTermsError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from escrow_platform.logging_config import get_logger

if TYPE_CHECKING:
    from fastapi import FastAPI, Request, Response

    from escrow_platform.config import Settings

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Most specific first.
ERROR_STATUS_CODES: list[tuple[type[EscrowPlatformError], int]] = [
    (InvalidCredentialsError, 401),
    (NotFoundError, 404),
    (UnauthorizedError, 403),
    (InvalidStateError, 409),
    (ConflictError, 409),
    (InvalidDealTermsError, 422),
]


def status_code_for(exc: EscrowPlatformError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 400


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": code, "message": message})


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request_id, route and acting user to every log line of a request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        if user_id := request.headers.get("X-User-Id"):
            structlog.contextvars.bind_contextvars(user_id=user_id)

        started = time.perf_counter()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.debug(
            "request.completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turn domain errors into their HTTP status; anything else is a 500."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except EscrowPlatformError as exc:
            status_code = status_code_for(exc)
            # Refused actions are expected traffic; only unmapped errors are loud.
            log = logger.error if status_code == 400 else logger.info
            log("request.refused", code=exc.code, error=exc.message, status_code=status_code)
            return error_response(status_code, exc.code, exc.message)
        except Exception as exc:
            logger.exception("request.unhandled_error", error=str(exc))
            return error_response(500, "INTERNAL_ERROR", "An unexpected error occurred")


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register middleware. Starlette runs the last one added first."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "X-User-Id", "X-Admin-Token", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestContextMiddleware)
