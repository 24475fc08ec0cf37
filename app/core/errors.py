"""
app/core/errors.py

Purpose: HTTP error responses

- One JSON error shape for every failure: {error, code, details}
- Bot errors keep their own status codes (503 for store/transport outages)
- Internal details are hidden in production
"""

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.exceptions import ReceiptBotError
from app.core.logging import get_logger

logger = get_logger(__name__)


class ErrorResponse(BaseModel):
    """
    Standard error response structure.
    """
    error: str
    code: str
    details: Optional[Any] = None


def error_response(status_code: int, error: str, code: str, details: Optional[Any] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, code=code, details=details).model_dump(mode="json"),
    )


def add_exception_handlers(app: FastAPI):
    """
    Registers exception handlers with the FastAPI app.
    """
    @app.exception_handler(ReceiptBotError)
    async def receiptbot_exception_handler(request: Request, exc: ReceiptBotError):
        logger.warning(
            f"{exc.code}: {exc.message}",
            extra={"method": request.method, "path": request.url.path}
        )
        details = None if settings.is_production else exc.details
        return error_response(exc.status_code, exc.message, exc.code, details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Handles standard HTTP exceptions (404, 503 from the webhook, etc.)
        """
        return error_response(exc.status_code, str(exc.detail), "HTTP_ERROR")

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """
        Handles Pydantic validation errors.
        """
        return error_response(422, "Input validation failed", "VALIDATION_ERROR", jsonable_encoder(exc.errors()))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all for unhandled exceptions.
        """
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "method": request.method,
                "url": str(request.url),
                "client": request.client.host if request.client else "unknown"
            },
            exc_info=True
        )

        message = "An internal error occurred. Please try again later." if settings.is_production else str(exc)
        return error_response(500, message, "INTERNAL_ERROR")
