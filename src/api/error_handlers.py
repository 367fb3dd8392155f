"""
Error handlers - global exception handlers for the members API.

Every error leaves the API in the same envelope:
    {"success": false, "message": ..., "error": ...}
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.api.models import ErrorResponse
from src.api.routes import REGISTRATION_FAILED

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle Pydantic validation errors."""
        logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
        message = REGISTRATION_FAILED if request.url.path.endswith("/register") else "Invalid request"
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=ErrorResponse(message=message, error=_summarize(exc)).to_content(),
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all - never leaks internal details."""
        logger.error("Unhandled exception on %s: %s", request.url.path, exc, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                message="Internal server error", error="An unexpected error occurred"
            ).to_content(),
        )


def _summarize(exc: RequestValidationError) -> str:
    """Render validation errors as 'field: reason' pairs."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg', 'invalid')}" if location else error.get("msg", "invalid"))
    return "; ".join(parts)
