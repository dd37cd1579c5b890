"""
Error sanitization for client-visible messages
Keeps SQL, connection strings, file paths and student emails out of API responses
"""
import logging
import re
from typing import Any, Dict

from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from ..exceptions import ErrorResponse
from ..logging_config import get_request_id

logger = logging.getLogger(__name__)


class ErrorSanitizer:
    """Redacts sensitive fragments from error text before it leaves the API"""

    PATH_PATTERN = re.compile(r'(?:[A-Z]:\\|(?<![\w.])/)[^\s\'"<>|]+')
    SQL_PATTERN = re.compile(r'\b(SELECT|INSERT|UPDATE|DELETE|CREATE|DROP|ALTER)\s+.*', re.IGNORECASE)
    CONNECTION_PATTERN = re.compile(r'(postgresql(?:\+\w+)?|sqlite|mysql)://[^\s\'"<>]+')
    EMAIL_PATTERN = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b')
    SECRET_KEYS = {"password", "token", "secret", "api_key", "secret_key", "connection_string"}
    MAX_LENGTH = 500

    @classmethod
    def sanitize_message(cls, message: str) -> str:
        """
        Sanitize error message to remove sensitive information

        Args:
            message: Original error message

        Returns:
            Sanitized message safe for API response
        """
        if not message:
            return "An error occurred"

        # Connection strings first so the path pattern does not eat them
        message = cls.CONNECTION_PATTERN.sub('[REDACTED_CONNECTION]', message)
        message = cls.SQL_PATTERN.sub('SQL statement [REDACTED]', message)
        message = cls.PATH_PATTERN.sub('[REDACTED_PATH]', message)
        message = cls.EMAIL_PATTERN.sub('[REDACTED_EMAIL]', message)

        if len(message) > cls.MAX_LENGTH:
            message = message[:cls.MAX_LENGTH] + "... [truncated]"
        return message

    @classmethod
    def sanitize_details(cls, details: Dict[str, Any]) -> Dict[str, Any]:
        """Drop secret-looking keys and sanitize string values recursively"""
        if not details:
            return {}

        sanitized = {}
        for key, value in details.items():
            if key.lower() in cls.SECRET_KEYS:
                continue
            if isinstance(value, str):
                sanitized[key] = cls.sanitize_message(value)
            elif isinstance(value, dict):
                sanitized[key] = cls.sanitize_details(value)
            elif isinstance(value, (list, tuple)):
                sanitized[key] = [
                    cls.sanitize_message(item) if isinstance(item, str) else item
                    for item in value
                ]
            else:
                sanitized[key] = value
        return sanitized


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """
    Handle database errors without leaking SQL, schema or connection details
    """
    request_id = get_request_id()

    logger.error(
        f"Database error (request_id: {request_id}): {type(exc).__name__}",
        exc_info=True,
        extra={"request_id": request_id, "path": request.url.path, "method": request.method}
    )

    if isinstance(exc, IntegrityError):
        error_message = "Database constraint violation. The operation could not be completed."
        error_code = "DATABASE_CONSTRAINT_ERROR"
    elif isinstance(exc, OperationalError):
        error_message = "Database connection error. Please try again later."
        error_code = "DATABASE_CONNECTION_ERROR"
    else:
        error_message = "A database error occurred. Please try again later."
        error_code = "DATABASE_ERROR"

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse.create(
            message=error_message,
            code=error_code,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
            details={"error_type": type(exc).__name__},
        )
    )
