"""
Database models for FYW Pay
"""
from .package import Package
from .student import Student, PaymentStatus
from .payment import Payment, PaymentProvider, TransactionStatus
from .webhook_event import WebhookEvent

__all__ = [
    "Package",
    "Student",
    "PaymentStatus",
    "Payment",
    "PaymentProvider",
    "TransactionStatus",
    "WebhookEvent",
]
