"""
Error handling middleware for consistent API error envelopes.
"""
import logging
import traceback

from fastapi import Request, HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from pyqbank.config import is_production
from pyqbank.exceptions import (
    PYQException,
    QuestionValidationError,
    QuestionNotFoundError,
    QuestionConflictError,
    UpstreamServiceError,
    ImportFileParseError,
    StagedImportNotFoundError
)
from pyqbank.services.response_helpers import error_envelope
from pyqbank.utils.database_error_handler import DatabaseErrorHandler

logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware that turns unexpected errors into a 500 envelope."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.logger = logging.getLogger("pyqbank.error_handler")

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)

        except HTTPException:
            # Let FastAPI handle its own HTTP exceptions
            raise

        except Exception as e:
            return self._handle_unexpected_error(request, e)

    def _handle_unexpected_error(self, request: Request, exception: Exception) -> JSONResponse:
        self.logger.error(
            f"Unexpected error: {str(exception)}\n"
            f"Request: {request.method} {request.url}\n"
            f"Traceback: {traceback.format_exc()}"
        )

        content = error_envelope("Internal server error")
        # Internal details only outside production
        if not is_production():
            content["error"] = str(exception)
            content["stack"] = traceback.format_exc()

        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


def _request_validation_errors(exc: RequestValidationError) -> dict:
    errors = {}
    for error in exc.errors():
        # loc is ("body" | "query" | "path", field, ...)
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location) or "request"
        errors.setdefault(field, error.get("msg", "Invalid value"))
    return errors


class GlobalExceptionHandler:
    """Global exception handlers for question bank errors in FastAPI."""

    @staticmethod
    def setup_exception_handlers(app):
        """Setup global exception handlers for the FastAPI app."""

        @app.exception_handler(QuestionValidationError)
        async def question_validation_handler(request: Request, exc: QuestionValidationError):
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=error_envelope(exc.message, exc.errors)
            )

        @app.exception_handler(RequestValidationError)
        async def request_validation_handler(request: Request, exc: RequestValidationError):
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=error_envelope("Validation failed", _request_validation_errors(exc))
            )

        @app.exception_handler(ImportFileParseError)
        async def import_parse_handler(request: Request, exc: ImportFileParseError):
            logger.warning(f"Import file rejected: {exc.message}")
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=error_envelope(exc.message)
            )

        @app.exception_handler(QuestionNotFoundError)
        async def question_not_found_handler(request: Request, exc: QuestionNotFoundError):
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content=error_envelope("Question not found")
            )

        @app.exception_handler(StagedImportNotFoundError)
        async def staged_import_not_found_handler(request: Request, exc: StagedImportNotFoundError):
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content=error_envelope(exc.message)
            )

        @app.exception_handler(QuestionConflictError)
        async def conflict_handler(request: Request, exc: QuestionConflictError):
            return JSONResponse(
                status_code=status.HTTP_409_CONFLICT,
                content=error_envelope(exc.message)
            )

        @app.exception_handler(IntegrityError)
        async def integrity_error_handler(request: Request, exc: IntegrityError):
            conflict = DatabaseErrorHandler.to_conflict(exc)
            logger.warning(f"Integrity error on {request.method} {request.url.path}: {conflict.details}")
            return JSONResponse(
                status_code=status.HTTP_409_CONFLICT,
                content=error_envelope(conflict.message)
            )

        @app.exception_handler(UpstreamServiceError)
        async def upstream_handler(request: Request, exc: UpstreamServiceError):
            logger.error(f"Upstream failure on {request.method} {request.url.path}: {exc.message}")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content=error_envelope("Service temporarily unavailable. Please try again later.")
            )

        @app.exception_handler(PYQException)
        async def generic_handler(request: Request, exc: PYQException):
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=error_envelope(exc.message)
            )

        @app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(request: Request, exc: StarletteHTTPException):
            message = exc.detail if isinstance(exc.detail, str) else "Request failed"
            return JSONResponse(
                status_code=exc.status_code,
                content=error_envelope(message),
                headers=getattr(exc, "headers", None)
            )
