"""
Centralized error handlers for FastAPI.

Every failure leaves the API in the same envelope:
    {"success": false, "error": "...", "details"?: ..., "stack"?: "..."}

The stack trace is only attached outside production.
"""
import logging
import traceback
from typing import Any

from bson.errors import InvalidId
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from jose import JWTError
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from pricetalk.config import get_settings

logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    error: str,
    details: Any = None,
    exc: Exception | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: dict[str, Any] = {"success": False, "error": error}
    if details is not None:
        body["details"] = jsonable_encoder(details)
    if exc is not None and not get_settings().is_production:
        body["stack"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def _validation_details(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg"),
            "type": err.get("type"),
        }
        for err in exc.errors()
    ]


def register_error_handlers(app: FastAPI) -> None:
    """
    Register all error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance
    """

    @app.exception_handler(RequestValidationError)
    async def handle_validation(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Schema failures are client errors."""
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            "Validation error",
            details=_validation_details(exc),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Keep the status chosen by the route, wrap the detail."""
        if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
            return error_response(exc.status_code, "Route not found")
        return error_response(
            exc.status_code,
            str(exc.detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(JWTError)
    async def handle_jwt(_request: Request, exc: JWTError) -> JSONResponse:
        logger.info("Rejected token: %s", type(exc).__name__)
        return error_response(status.HTTP_401_UNAUTHORIZED, "Invalid token")

    @app.exception_handler(DuplicateKeyError)
    async def handle_duplicate(_request: Request, exc: DuplicateKeyError) -> JSONResponse:
        logger.warning("Duplicate key: %s", exc.details.get("keyValue") if exc.details else exc)
        return error_response(status.HTTP_400_BAD_REQUEST, "Duplicate entry")

    @app.exception_handler(InvalidId)
    async def handle_invalid_id(_request: Request, exc: InvalidId) -> JSONResponse:
        return error_response(status.HTTP_404_NOT_FOUND, "Resource not found")

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unexpected errors."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            exc=exc,
        )
