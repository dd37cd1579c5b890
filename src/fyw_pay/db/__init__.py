"""
Database module for FYW Pay
"""
from .base import Base
from .engine import build_engine, build_session_factory, init_db, get_db, session_scope
from .models import (
    Package,
    Student,
    PaymentStatus,
    Payment,
    PaymentProvider,
    TransactionStatus,
    WebhookEvent,
)

__all__ = [
    "Base",
    "build_engine",
    "build_session_factory",
    "init_db",
    "get_db",
    "session_scope",
    "Package",
    "Student",
    "PaymentStatus",
    "Payment",
    "PaymentProvider",
    "TransactionStatus",
    "WebhookEvent",
]
