"""
Payment ledger model
"""
import enum

from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from ..base import Base, JSONType, utcnow


class TransactionStatus(str, enum.Enum):
    """Payment attempt status; SUCCESS and FAILED are terminal"""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class PaymentProvider(str, enum.Enum):
    """Payment provider enum"""
    PAYSTACK = "paystack"
    FLUTTERWAVE = "flutterwave"


class Payment(Base):
    """One row per payment initialization; reference is the idempotency key"""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    package_id_at_time = Column(Integer, ForeignKey("packages.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)  # amount requested at initialization
    amount_paid = Column(Numeric(12, 2), nullable=True)  # gateway-reported amount at settlement
    reference = Column(String(64), nullable=False, unique=True, index=True)
    provider = Column(String(20), nullable=False, default=PaymentProvider.PAYSTACK.value)
    status = Column(String(16), nullable=False, default=TransactionStatus.PENDING.value, index=True)
    paid_at = Column(DateTime, nullable=True)
    raw_gateway_payload = Column(JSONType, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    student = relationship("Student", back_populates="payments")
    package_at_time = relationship("Package")

    __table_args__ = (
        Index("ix_payments_student_status", "student_id", "status"),
    )

    def __repr__(self):
        return f"<Payment {self.reference} {self.status}>"
