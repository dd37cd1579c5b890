"""
Structured logging configuration with request ID, payment reference and environment labels
"""
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

# Context variables for request ID and the payment reference being reconciled
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
payment_reference_var: ContextVar[Optional[str]] = ContextVar('payment_reference', default=None)


def get_request_id() -> Optional[str]:
    """Get current request ID from context"""
    return request_id_var.get()


def get_payment_reference() -> Optional[str]:
    """Get the payment reference currently being processed"""
    return payment_reference_var.get()


@contextmanager
def bind_payment_reference(reference: Optional[str]):
    """Tag every log line inside the block with a payment reference"""
    token = payment_reference_var.set(reference)
    try:
        yield
    finally:
        payment_reference_var.reset(token)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to add request ID to each request"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response


class StructuredFormatter(logging.Formatter):
    """Custom formatter that includes request ID, payment reference and environment"""

    DEFAULT_FORMAT = "%(asctime)s [%(env)s] [%(request_id)s] [%(reference)s] %(levelname)-8s %(name)s: %(message)s"

    def __init__(self, env: str = "dev", fmt: str = None, datefmt: str = None):
        self.env = env
        if fmt is None:
            fmt = self.DEFAULT_FORMAT
        if datefmt is None:
            datefmt = "%Y-%m-%d %H:%M:%S"
        super().__init__(fmt=fmt, datefmt=datefmt)

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = get_request_id() or "-"
        record.reference = get_payment_reference() or "-"
        record.env = self.env
        return super().format(record)


def setup_logging(env: str = "dev", log_level: str = "INFO"):
    """
    Set up structured logging with request ID and environment labels

    Args:
        env: Environment name (dev, test, staging, prod)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    # Format: timestamp [ENV] [REQUEST_ID] [REFERENCE] level logger message
    formatter = StructuredFormatter(env=env)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Third-party loggers
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return root_logger
