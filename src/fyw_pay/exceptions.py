"""
Domain errors and exception handlers with request ID support
Standardized error response format: { code, message, status_code, details?, request_id }
"""
import logging
from typing import Optional, Dict, Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .logging_config import get_request_id

logger = logging.getLogger(__name__)


# ============================================================================
# Domain errors
# ============================================================================

class AppError(Exception):
    """Base class for errors that map onto an HTTP response"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    """Malformed input or wrong day selection"""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class BadRequestError(AppError):
    """Business rule violation"""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "AUTH_ERROR"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class PaymentGatewayError(AppError):
    """The payment gateway failed or answered with an error"""
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "PAYMENT_GATEWAY_ERROR"


class InviteGenerationError(AppError):
    """Invite artifact could not be rendered or stored"""
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "INVITE_GENERATION_ERROR"


# ============================================================================
# Response format
# ============================================================================

class ErrorResponse:
    """
    Standard error response format

    Schema: { success, code, message, status_code, details?, request_id }
    """

    @staticmethod
    def create(
        message: str,
        code: str,
        status_code: int,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> dict:
        """
        Create standardized error response

        Args:
            message: Human-readable error message
            code: Error code (e.g., "VALIDATION_ERROR", "AUTH_ERROR", "NOT_FOUND")
            status_code: HTTP status code
            request_id: Request ID from context (auto-fetched if None)
            details: Optional additional error details

        Returns:
            Dictionary with error details
        """
        if request_id is None:
            request_id = get_request_id()

        response = {
            "success": False,
            "code": code,
            "message": message,
            "status_code": status_code,
        }
        if request_id:
            response["request_id"] = request_id
        if details:
            response["details"] = details
        return response


# ============================================================================
# Handlers
# ============================================================================

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain errors raised by services"""
    request_id = get_request_id()

    if exc.status_code >= 500:
        logger.error(
            f"{type(exc).__name__}: {exc.message}",
            extra={"request_id": request_id, "path": request.url.path}
        )
    else:
        logger.warning(
            f"{type(exc).__name__}: {exc.message}",
            extra={"request_id": request_id, "path": request.url.path}
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse.create(
            message=exc.message,
            code=exc.code,
            status_code=exc.status_code,
            request_id=request_id,
            details=exc.details,
        )
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions with request ID"""
    request_id = get_request_id()

    error_code_map = {
        400: "BAD_REQUEST",
        401: "AUTH_ERROR",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        422: "VALIDATION_ERROR",
        429: "RATE_LIMITED",
        500: "INTERNAL_ERROR",
        503: "SERVICE_UNAVAILABLE"
    }
    error_code = error_code_map.get(exc.status_code, "HTTP_ERROR")
    detail = exc.detail
    error_message = str(detail) if detail else f"HTTP {exc.status_code} error"

    logger.warning(
        f"HTTP {exc.status_code}: {detail}",
        extra={"request_id": request_id, "path": request.url.path}
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse.create(
            message=error_message,
            code=error_code,
            status_code=exc.status_code,
            request_id=request_id,
        ),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request body/query validation failures with safe field-level detail"""
    from .middleware.error_handler import ErrorSanitizer

    request_id = get_request_id()

    safe_errors = []
    for error in exc.errors():
        loc = error.get("loc", [])
        field = ".".join(str(part) for part in loc if part not in ("body", "query", "path"))
        safe_errors.append({
            "field": field,
            "message": ErrorSanitizer.sanitize_message(error.get("msg", "Validation error")),
            "type": error.get("type", "value_error"),
        })

    detail = "; ".join(f"{err['field']}: {err['message']}" for err in safe_errors)
    logger.warning(
        f"Validation error: {detail}",
        extra={"request_id": request_id, "path": request.url.path}
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse.create(
            message=f"Validation error: {detail}",
            code="VALIDATION_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST,
            request_id=request_id,
            details={"errors": safe_errors},
        )
    )


def make_general_exception_handler(expose_details: bool):
    """Build the catch-all handler; internals are exposed only in dev"""

    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = get_request_id()

        error_message = "Internal server error"
        error_details = None
        if expose_details:
            error_message = f"Internal server error: {str(exc)}"
            error_details = {"exception_type": type(exc).__name__}

        logger.error(
            f"Unhandled exception: {str(exc)}",
            exc_info=True,
            extra={"request_id": request_id, "path": request.url.path}
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse.create(
                message=error_message,
                code="INTERNAL_ERROR",
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                request_id=request_id,
                details=error_details,
            )
        )

    return general_exception_handler


def register_exception_handlers(app: FastAPI, expose_details: bool = False) -> None:
    """Attach every handler to the application"""
    from .middleware.error_handler import database_error_handler

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, make_general_exception_handler(expose_details))
